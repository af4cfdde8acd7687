"""Route sequencing engine: optimise, reoptimise and compare visiting orders."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Sequence

from ...config import settings
from ...models.domain import Point
from .errors import InvalidInput, OracleError
from .metrics import (
    calculate_route_metrics,
    compare_fuel,
    congestion_level,
    congestion_ratio,
    estimate_fuel,
)
from .models import (
    Algorithm,
    ComparisonResult,
    FuelSimulation,
    RouteMetrics,
    SequencingResult,
    TrafficReport,
)
from .oracle import TravelMatrixOracle
from .sequencing import frontier_expansion, nearest_neighbor, truncate_at_gap, two_opt

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SequencingOptions:
    max_passes: int = field(default_factory=lambda: settings.two_opt_max_passes)
    prefer_frontier_on_tie: bool = field(default_factory=lambda: settings.prefer_frontier_on_tie)
    traffic_aware_default: bool = field(default_factory=lambda: settings.traffic_aware_default)
    fuel_cost_per_liter: float = field(default_factory=lambda: settings.fuel_cost_per_liter)
    vehicle_consumption_l_per_100km: float = field(
        default_factory=lambda: settings.vehicle_consumption_l_per_100km
    )
    working_days_per_month: int = field(default_factory=lambda: settings.working_days_per_month)


def _coerce_algorithm(algorithm: Algorithm | str) -> Algorithm:
    try:
        return Algorithm(algorithm)
    except ValueError as exc:
        choices = ", ".join(item.value for item in Algorithm)
        raise InvalidInput(f"Unknown algorithm '{algorithm}'. Expected one of: {choices}.") from exc


def _validate_points(points: Sequence[Point]) -> None:
    for position, point in enumerate(points):
        if not isinstance(point, Point):
            raise InvalidInput(f"Item {position} is not a point: {point!r}")
        try:
            lat_ok = math.isfinite(point.latitude) and -90.0 <= point.latitude <= 90.0
            lon_ok = math.isfinite(point.longitude) and -180.0 <= point.longitude <= 180.0
        except TypeError as exc:
            raise InvalidInput(f"Point {position} has non-numeric coordinates.") from exc
        if not (lat_ok and lon_ok):
            raise InvalidInput(
                f"Point {position} has invalid coordinates ({point.latitude}, {point.longitude})."
            )


class RouteSequencingEngine:
    """Stateless facade over the heuristics, the oracle and the metrics.

    Every call fetches what it needs from ``oracle`` and keeps no state
    between calls, so one engine can serve concurrent requests.
    """

    def __init__(self, oracle: TravelMatrixOracle, options: SequencingOptions | None = None) -> None:
        self.oracle = oracle
        self.options = options or SequencingOptions()

    def _traffic(self, traffic_aware: bool | None) -> bool:
        return self.options.traffic_aware_default if traffic_aware is None else traffic_aware

    def _distance_costs(self, points: Sequence[Point], traffic_aware: bool) -> list[list[float]]:
        matrix = self.oracle.matrix(list(points), traffic_aware)
        if matrix.size != len(points) or not matrix.is_square():
            raise OracleError(f"Oracle returned a {matrix.size}-row matrix for {len(points)} points.")
        return matrix.distance_costs()

    def _sequence(self, costs: list[list[float]], algorithm: Algorithm) -> list[int]:
        if algorithm is Algorithm.NEAREST_NEIGHBOR_2OPT:
            initial = nearest_neighbor(costs, 0)
            return two_opt(initial, costs, self.options.max_passes)
        return truncate_at_gap(frontier_expansion(costs, 0), costs)

    def _timed_sequence(self, costs: list[list[float]], algorithm: Algorithm) -> tuple[list[int], float]:
        started = time.perf_counter()
        order = self._sequence(costs, algorithm)
        return order, (time.perf_counter() - started) * 1000.0

    def _build_result(
        self,
        stops: Sequence[Point],
        order: Sequence[int],
        algorithm: Algorithm,
        traffic_aware: bool,
        compute_time_ms: float,
        prefix: tuple[Point, ...] = (),
        tail: tuple[Point, ...] = (),
    ) -> SequencingResult:
        # stops[0] is the sequencing origin; when a prefix is given the prefix stands in for it.
        visited = set(order)
        unreachable = tuple(stops[i] for i in range(len(stops)) if i not in visited)
        if prefix:
            tour = prefix + tuple(stops[i] for i in order[1:]) + tail
        else:
            tour = tuple(stops[i] for i in order) + tail
        if unreachable:
            logger.warning(
                f"{algorithm.value}: {len(unreachable)} of {len(stops) - 1} points are unreachable "
                f"and were left out of the tour"
            )

        metrics = self.metrics(tour, traffic_aware)
        logger.info(
            f"Sequenced {len(tour)} points with {algorithm.value} in {compute_time_ms:.2f}ms: "
            f"{metrics.total_distance_km:.2f}km, {metrics.total_duration_min:.1f}min"
        )
        return SequencingResult(
            algorithm=algorithm,
            tour=tour,
            metrics=metrics,
            unreachable=unreachable,
            compute_time_ms=compute_time_ms,
        )

    def optimize(
        self,
        points: Sequence[Point],
        start: Point,
        algorithm: Algorithm | str = Algorithm.NEAREST_NEIGHBOR_2OPT,
        traffic_aware: bool | None = None,
    ) -> SequencingResult:
        """Order ``points`` into a tour that starts at ``start``."""
        algorithm = _coerce_algorithm(algorithm)
        if not points:
            raise InvalidInput("At least one delivery point is required.")
        stops = [start, *points]
        _validate_points(stops)
        traffic = self._traffic(traffic_aware)

        costs = self._distance_costs(stops, traffic)
        order, elapsed_ms = self._timed_sequence(costs, algorithm)
        return self._build_result(stops, order, algorithm, traffic, elapsed_ms)

    def reoptimize(
        self,
        current_tour: Sequence[Point],
        current_index: int,
        algorithm: Algorithm | str = Algorithm.NEAREST_NEIGHBOR_2OPT,
        traffic_aware: bool | None = None,
        current_position: Point | None = None,
    ) -> SequencingResult:
        """Resequence the stops after ``current_index``; earlier stops are kept as-is.

        ``current_position`` is the vehicle's live location. When given it is
        used as the origin for the remaining stops instead of
        ``current_tour[current_index]``, but it is not added to the tour.

        A closed tour, whose last stop sits on the first stop's coordinates,
        keeps that return stop last.
        """
        algorithm = _coerce_algorithm(algorithm)
        if not current_tour:
            raise InvalidInput("Current route must contain at least one point.")
        if isinstance(current_index, bool) or not isinstance(current_index, int):
            raise InvalidInput(f"Current index must be an integer, got {current_index!r}.")
        if not 0 <= current_index < len(current_tour):
            raise InvalidInput(
                f"Current index {current_index} is out of range for a route of {len(current_tour)} points."
            )
        _validate_points(current_tour)
        if current_position is not None:
            _validate_points([current_position])
        traffic = self._traffic(traffic_aware)

        prefix = tuple(current_tour[: current_index + 1])
        suffix = list(current_tour[current_index + 1 :])
        tail: tuple[Point, ...] = ()
        if suffix and current_tour[-1].coordinates == current_tour[0].coordinates:
            tail = (suffix.pop(),)
        origin = current_position if current_position is not None else current_tour[current_index]
        stops = [origin, *suffix]

        if suffix:
            costs = self._distance_costs(stops, traffic)
            order, elapsed_ms = self._timed_sequence(costs, algorithm)
        else:
            order, elapsed_ms = [0], 0.0
        return self._build_result(stops, order, algorithm, traffic, elapsed_ms, prefix=prefix, tail=tail)

    def compare(
        self,
        points: Sequence[Point],
        start: Point,
        traffic_aware: bool | None = None,
    ) -> ComparisonResult:
        """Run both heuristics on one matrix and recommend the shorter tour."""
        if len(points) < 2:
            raise InvalidInput("At least two delivery points are required to compare algorithms.")
        stops = [start, *points]
        _validate_points(stops)
        traffic = self._traffic(traffic_aware)

        costs = self._distance_costs(stops, traffic)
        runs: dict[Algorithm, SequencingResult] = {}
        for algorithm in (Algorithm.NEAREST_NEIGHBOR_2OPT, Algorithm.FRONTIER):
            order, elapsed_ms = self._timed_sequence(costs, algorithm)
            runs[algorithm] = self._build_result(stops, order, algorithm, traffic, elapsed_ms)

        tsp = runs[Algorithm.NEAREST_NEIGHBOR_2OPT]
        frontier = runs[Algorithm.FRONTIER]
        recommended = self._recommend(tsp, frontier)
        logger.info(
            f"Compared algorithms on {len(points)} points: "
            f"tsp={tsp.metrics.total_distance_km:.2f}km, frontier={frontier.metrics.total_distance_km:.2f}km, "
            f"recommended={recommended.value}"
        )
        return ComparisonResult(
            runs=runs,
            recommended=recommended,
            distance_difference_km=abs(tsp.metrics.total_distance_km - frontier.metrics.total_distance_km),
            duration_difference_min=abs(tsp.metrics.total_duration_min - frontier.metrics.total_duration_min),
            compute_time_difference_ms=abs(tsp.compute_time_ms - frontier.compute_time_ms),
        )

    def _recommend(self, tsp: SequencingResult, frontier: SequencingResult) -> Algorithm:
        if tsp.unreachable_partial != frontier.unreachable_partial:
            return Algorithm.FRONTIER if tsp.unreachable_partial else Algorithm.NEAREST_NEIGHBOR_2OPT
        if frontier.metrics.total_distance_km < tsp.metrics.total_distance_km:
            return Algorithm.FRONTIER
        if tsp.metrics.total_distance_km < frontier.metrics.total_distance_km:
            return Algorithm.NEAREST_NEIGHBOR_2OPT
        if self.options.prefer_frontier_on_tie:
            return Algorithm.FRONTIER
        return Algorithm.NEAREST_NEIGHBOR_2OPT

    def metrics(self, tour: Sequence[Point], traffic_aware: bool | None = None) -> RouteMetrics:
        if not tour:
            raise InvalidInput("Route must contain at least one point.")
        _validate_points(tour)
        return calculate_route_metrics(tour, self.oracle, self._traffic(traffic_aware))

    def simulate_fuel_savings(
        self,
        points: Sequence[Point],
        start: Point,
        fuel_cost_per_liter: float | None = None,
        consumption_l_per_100km: float | None = None,
        traffic_aware: bool | None = None,
    ) -> FuelSimulation:
        """Compare the caller's original order against the optimised tour."""
        price = self.options.fuel_cost_per_liter if fuel_cost_per_liter is None else fuel_cost_per_liter
        consumption = (
            self.options.vehicle_consumption_l_per_100km
            if consumption_l_per_100km is None
            else consumption_l_per_100km
        )
        if price < 0 or consumption < 0:
            raise InvalidInput("Fuel price and consumption must not be negative.")

        optimized = self.optimize(points, start, Algorithm.NEAREST_NEIGHBOR_2OPT, traffic_aware)
        baseline_tour = (start, *points)
        baseline_metrics = self.metrics(baseline_tour, traffic_aware)
        savings = compare_fuel(
            baseline_metrics,
            optimized.metrics,
            fuel_cost_per_liter=price,
            consumption_l_per_100km=consumption,
            working_days_per_month=self.options.working_days_per_month,
        )
        return FuelSimulation(
            baseline_tour=baseline_tour,
            baseline_metrics=baseline_metrics,
            baseline_fuel=estimate_fuel(baseline_metrics, price, consumption),
            optimized=optimized,
            optimized_fuel=estimate_fuel(optimized.metrics, price, consumption),
            savings=savings,
        )

    def traffic_report(self, tour: Sequence[Point]) -> TrafficReport:
        if len(tour) < 2:
            raise InvalidInput("A traffic report needs at least two points.")
        free_flow = self.metrics(tour, traffic_aware=False)
        in_traffic = self.metrics(tour, traffic_aware=True)
        ratio = congestion_ratio(free_flow, in_traffic)
        return TrafficReport(
            free_flow=free_flow,
            in_traffic=in_traffic,
            congestion_ratio=ratio,
            congestion_level=congestion_level(ratio),
            extra_minutes=in_traffic.total_duration_min - free_flow.total_duration_min,
        )
