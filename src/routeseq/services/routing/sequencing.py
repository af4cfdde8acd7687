"""Visiting-order heuristics over a directed cost matrix.

Every function here works on plain index lists and a square matrix of
numeric costs where ``math.inf`` marks a pair with no route. Index 0 is the
hub by convention; callers map indices back to points.
"""

from __future__ import annotations

import math
from typing import Sequence

DEFAULT_MAX_PASSES = 100

CostMatrix = Sequence[Sequence[float]]


def nearest_neighbor(costs: CostMatrix, start: int = 0) -> list[int]:
    """Build a tour by always moving to the closest unvisited index.

    Ties go to the lowest index. The tour stops early when nothing unvisited
    can be reached from the current index, so it may be shorter than the
    matrix.
    """
    node_count = len(costs)
    visited = [False] * node_count
    visited[start] = True
    tour = [start]

    while len(tour) < node_count:
        current = tour[-1]
        nearest = -1
        min_cost = math.inf
        for candidate in range(node_count):
            if not visited[candidate] and costs[current][candidate] < min_cost:
                nearest = candidate
                min_cost = costs[current][candidate]
        if nearest == -1:
            break
        visited[nearest] = True
        tour.append(nearest)

    return tour


def tour_distance(tour: Sequence[int], costs: CostMatrix) -> float:
    """Sum of consecutive legs. No return leg to the first index."""
    return sum(costs[tour[k]][tour[k + 1]] for k in range(len(tour) - 1))


def _reverse_segment(tour: Sequence[int], left: int, right: int) -> list[int]:
    candidate = list(tour)
    candidate[left : right + 1] = reversed(candidate[left : right + 1])
    return candidate


def two_opt(tour: Sequence[int], costs: CostMatrix, max_passes: int = DEFAULT_MAX_PASSES) -> list[int]:
    """Improve an open tour with first-improvement 2-opt moves.

    Each pass scans edge pairs ``(i, i+1)`` and ``(j, j+1)`` with ``j >= i + 2``
    and reverses positions ``i+1..j``. The first strictly shorter candidate is
    accepted and the scan restarts from it. Position 0 never moves.

    Args:
        tour: Initial visiting order as matrix indices.
        costs: Directed cost matrix.
        max_passes: Upper bound on scans; a pass that accepts a move counts as one.

    Returns:
        The best tour found. Its distance is never above the input's.
    """
    best_tour = list(tour)
    best_distance = tour_distance(best_tour, costs)
    improved = True
    passes = 0

    while improved and passes < max_passes:
        improved = False
        passes += 1
        for i in range(len(best_tour) - 2):
            for j in range(i + 2, len(best_tour)):
                candidate = _reverse_segment(best_tour, i + 1, j)
                candidate_distance = tour_distance(candidate, costs)
                if candidate_distance < best_distance:
                    best_tour = candidate
                    best_distance = candidate_distance
                    improved = True
                    break
            if improved:
                break

    return best_tour


def frontier_expansion(costs: CostMatrix, start: int = 0) -> list[int]:
    """Grow the visited set by annexing the unvisited index closest to it.

    ``best_edge[i]`` holds the cheapest direct cost from any visited index to
    ``i``. Each step relaxes it from the newest visited index only and picks
    the global minimum, so the order follows a spanning-tree style frontier
    rather than shortest paths from the start. Ties go to the lowest index;
    the walk stops early when nothing unvisited has a finite ``best_edge``.
    """
    node_count = len(costs)
    visited = [False] * node_count
    best_edge = [math.inf] * node_count
    best_edge[start] = 0.0
    visited[start] = True
    path = [start]
    current = start

    while len(path) < node_count:
        for candidate in range(node_count):
            if not visited[candidate] and costs[current][candidate] < best_edge[candidate]:
                best_edge[candidate] = costs[current][candidate]

        next_index = -1
        min_cost = math.inf
        for candidate in range(node_count):
            if not visited[candidate] and best_edge[candidate] < min_cost:
                min_cost = best_edge[candidate]
                next_index = candidate

        if next_index == -1:
            break
        visited[next_index] = True
        path.append(next_index)
        current = next_index

    return path


def truncate_at_gap(tour: Sequence[int], costs: CostMatrix) -> list[int]:
    """Cut ``tour`` before its first leg with no route.

    The frontier heuristic attaches an index to whichever visited index is
    closest, which need not be its predecessor in the path. Indices after
    such a gap cannot be driven in order and are dropped.
    """
    kept = list(tour[:1])
    for index in tour[1:]:
        if math.isinf(costs[kept[-1]][index]):
            break
        kept.append(index)
    return kept
