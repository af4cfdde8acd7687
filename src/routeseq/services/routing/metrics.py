"""Route metrics and the figures derived from comparing two of them."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Point
from .errors import OracleError
from .models import FuelEstimate, FuelSavings, RouteMetrics, RouteStop
from .oracle import TravelMatrixOracle

MONTHS_PER_YEAR = 12

CONGESTION_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (1.1, "low"),
    (1.3, "moderate"),
    (1.5, "high"),
)


def calculate_route_metrics(
    tour: Sequence[Point],
    oracle: TravelMatrixOracle,
    traffic_aware: bool = False,
) -> RouteMetrics:
    """Sum the consecutive legs of ``tour`` using a fresh oracle matrix.

    The oracle is always asked for exactly this ordering. No return leg is
    added; a tour that should close must end with the hub.
    """
    if len(tour) < 2:
        return RouteMetrics(total_distance_km=0.0, total_duration_min=0.0)

    matrix = oracle.matrix(list(tour), traffic_aware)
    if matrix.size != len(tour) or not matrix.is_square():
        raise OracleError(f"Oracle returned a {matrix.size}-row matrix for {len(tour)} points.")

    total_distance_m = 0.0
    total_duration_s = 0.0
    stops: list[RouteStop] = []
    for index in range(len(tour) - 1):
        leg = matrix.leg(index, index + 1)
        if leg is None:
            raise OracleError(f"No route between stop {index} and stop {index + 1}.")
        total_distance_m += leg.distance_m
        total_duration_s += leg.duration_s
        stops.append(
            RouteStop(
                point=tour[index + 1],
                sequence=index + 1,
                arrival_min=total_duration_s / 60.0,
                distance_from_prev_km=leg.distance_m / 1000.0,
            )
        )

    return RouteMetrics(
        total_distance_km=total_distance_m / 1000.0,
        total_duration_min=total_duration_s / 60.0,
        stops=tuple(stops),
    )


def estimate_fuel(
    metrics: RouteMetrics,
    fuel_cost_per_liter: float,
    consumption_l_per_100km: float,
) -> FuelEstimate:
    liters = metrics.total_distance_km * consumption_l_per_100km / 100.0
    return FuelEstimate(fuel_liters=liters, fuel_cost=liters * fuel_cost_per_liter)


def compare_fuel(
    baseline: RouteMetrics,
    optimized: RouteMetrics,
    *,
    fuel_cost_per_liter: float,
    consumption_l_per_100km: float,
    working_days_per_month: int,
) -> FuelSavings:
    """Savings of ``optimized`` over ``baseline``, projected per month and year."""
    baseline_fuel = estimate_fuel(baseline, fuel_cost_per_liter, consumption_l_per_100km)
    optimized_fuel = estimate_fuel(optimized, fuel_cost_per_liter, consumption_l_per_100km)

    saved_liters = baseline_fuel.fuel_liters - optimized_fuel.fuel_liters
    saved_cost = baseline_fuel.fuel_cost - optimized_fuel.fuel_cost
    percentage = saved_liters / baseline_fuel.fuel_liters * 100.0 if baseline_fuel.fuel_liters > 0 else 0.0
    monthly_liters = saved_liters * working_days_per_month
    monthly_cost = saved_cost * working_days_per_month

    return FuelSavings(
        distance_savings_km=baseline.total_distance_km - optimized.total_distance_km,
        time_savings_min=baseline.total_duration_min - optimized.total_duration_min,
        fuel_savings_liters=saved_liters,
        fuel_savings_cost=saved_cost,
        fuel_savings_percentage=percentage,
        monthly_savings_liters=monthly_liters,
        monthly_savings_cost=monthly_cost,
        yearly_savings_liters=monthly_liters * MONTHS_PER_YEAR,
        yearly_savings_cost=monthly_cost * MONTHS_PER_YEAR,
    )


def congestion_ratio(free_flow: RouteMetrics, in_traffic: RouteMetrics) -> float:
    if free_flow.total_duration_min <= 0:
        return 1.0
    return in_traffic.total_duration_min / free_flow.total_duration_min


def congestion_level(ratio: float) -> str:
    for threshold, level in CONGESTION_THRESHOLDS:
        if ratio < threshold:
            return level
    return "severe"
