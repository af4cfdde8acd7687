"""Routing domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from ...models.domain import Point


class Algorithm(str, Enum):
    NEAREST_NEIGHBOR_2OPT = "nearest-neighbor-2opt"
    FRONTIER = "frontier"


@dataclass(frozen=True, slots=True)
class Leg:
    distance_m: float
    duration_s: float


@dataclass(frozen=True, slots=True)
class TravelMatrix:
    """Directed N x N grid of legs. ``None`` marks a pair with no route."""

    legs: Tuple[Tuple[Optional[Leg], ...], ...]

    @classmethod
    def from_tables(
        cls,
        distances: Sequence[Sequence[float | None]],
        durations: Sequence[Sequence[float | None]],
    ) -> TravelMatrix:
        if len(distances) != len(durations):
            raise ValueError(
                f"Matrix size mismatch: distances={len(distances)}, durations={len(durations)}"
            )
        rows = []
        for distance_row, duration_row in zip(distances, durations):
            if len(distance_row) != len(duration_row):
                raise ValueError("Distance and duration rows differ in length.")
            rows.append(
                tuple(
                    Leg(float(distance), float(duration))
                    if distance is not None and duration is not None
                    else None
                    for distance, duration in zip(distance_row, duration_row)
                )
            )
        return cls(legs=tuple(rows))

    @property
    def size(self) -> int:
        return len(self.legs)

    def is_square(self) -> bool:
        return all(len(row) == self.size for row in self.legs)

    def leg(self, origin: int, destination: int) -> Optional[Leg]:
        return self.legs[origin][destination]

    def distance_costs(self) -> list[list[float]]:
        """Distances in metres, ``math.inf`` where there is no route, zero on the diagonal."""
        costs: list[list[float]] = []
        for i, row in enumerate(self.legs):
            costs.append(
                [
                    0.0 if i == j else (leg.distance_m if leg is not None else math.inf)
                    for j, leg in enumerate(row)
                ]
            )
        return costs


@dataclass(frozen=True, slots=True)
class RouteStop:
    point: Point
    sequence: int
    arrival_min: float
    distance_from_prev_km: float


@dataclass(frozen=True, slots=True)
class RouteMetrics:
    total_distance_km: float
    total_duration_min: float
    stops: Tuple[RouteStop, ...] = ()


@dataclass(frozen=True, slots=True)
class SequencingResult:
    algorithm: Algorithm
    tour: Tuple[Point, ...]
    metrics: RouteMetrics
    unreachable: Tuple[Point, ...] = ()
    compute_time_ms: float = 0.0

    @property
    def unreachable_partial(self) -> bool:
        return bool(self.unreachable)


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    runs: Dict[Algorithm, SequencingResult]
    recommended: Algorithm
    distance_difference_km: float
    duration_difference_min: float
    compute_time_difference_ms: float


@dataclass(frozen=True, slots=True)
class FuelEstimate:
    fuel_liters: float
    fuel_cost: float


@dataclass(frozen=True, slots=True)
class FuelSavings:
    distance_savings_km: float
    time_savings_min: float
    fuel_savings_liters: float
    fuel_savings_cost: float
    fuel_savings_percentage: float
    monthly_savings_liters: float
    monthly_savings_cost: float
    yearly_savings_liters: float
    yearly_savings_cost: float


@dataclass(frozen=True, slots=True)
class FuelSimulation:
    baseline_tour: Tuple[Point, ...]
    baseline_metrics: RouteMetrics
    baseline_fuel: FuelEstimate
    optimized: SequencingResult
    optimized_fuel: FuelEstimate
    savings: FuelSavings


@dataclass(frozen=True, slots=True)
class TrafficReport:
    free_flow: RouteMetrics
    in_traffic: RouteMetrics
    congestion_ratio: float
    congestion_level: str
    extra_minutes: float = 0.0
