"""Routing orchestration service.

Translates API payloads into engine calls: resolves points (geocoding
address-only ones), applies request-level filters and turns engine results
back into response models with map overlay metadata.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import Point
from ...schemas.routing import (
    AlgorithmRunModel,
    CompareRequest,
    ComparisonResponse,
    FuelEstimateModel,
    FuelSavingsModel,
    FuelSimulationRequest,
    FuelSimulationResponse,
    MetricsRequest,
    OptimizeRequest,
    PointModel,
    ReoptimizeRequest,
    RouteMetricsModel,
    RouteStopModel,
    SequencingResponse,
    TrafficRequest,
    TrafficResponse,
)
from ..geospatial import bounding_box, centroid, filter_within_radius
from .engine import RouteSequencingEngine
from .errors import InvalidInput
from .models import RouteMetrics, SequencingResult
from .oracle import Geocoder

logger = logging.getLogger(__name__)


def _resolve_point(model: PointModel, geocoder: Geocoder | None) -> Point:
    if model.latitude is not None and model.longitude is not None:
        return Point(
            latitude=model.latitude,
            longitude=model.longitude,
            point_id=model.id,
            address=model.address,
        )
    if geocoder is None:
        raise InvalidInput(
            f"Point '{model.id or model.address}' has no coordinates and geocoding is not configured."
        )
    located = geocoder.geocode(model.address or "")
    logger.info(f"Geocoded '{model.address}' to ({located.latitude:.6f}, {located.longitude:.6f})")
    return Point(
        latitude=located.latitude,
        longitude=located.longitude,
        point_id=model.id,
        address=located.address or model.address,
    )


def _resolve_points(models: Sequence[PointModel], geocoder: Geocoder | None) -> list[Point]:
    return [_resolve_point(model, geocoder) for model in models]


def _point_model(point: Point) -> PointModel:
    return PointModel(
        id=point.point_id,
        latitude=point.latitude,
        longitude=point.longitude,
        address=point.address,
    )


def _metrics_model(metrics: RouteMetrics) -> RouteMetricsModel:
    return RouteMetricsModel(
        total_distance_km=metrics.total_distance_km,
        total_duration_min=metrics.total_duration_min,
        stops=[
            RouteStopModel(
                point=_point_model(stop.point),
                sequence=stop.sequence,
                arrival_min=stop.arrival_min,
                distance_from_prev_km=stop.distance_from_prev_km,
            )
            for stop in metrics.stops
        ],
    )


def _build_map_overlay(tour: Sequence[Point]) -> dict:
    center = centroid(tour)
    return {
        "coordinates": [[point.latitude, point.longitude] for point in tour],
        "centroid": list(center) if center else None,
        "bounding_box": bounding_box(tour),
    }


def _sequencing_response(
    result: SequencingResult,
    excluded: Sequence[Point] = (),
    metadata: dict | None = None,
) -> SequencingResponse:
    metadata = dict(metadata or {})
    metadata["map_overlay"] = _build_map_overlay(result.tour)
    return SequencingResponse(
        algorithm=result.algorithm,
        route=[_point_model(point) for point in result.tour],
        metrics=_metrics_model(result.metrics),
        unreachable_partial=result.unreachable_partial,
        unreachable=[_point_model(point) for point in result.unreachable],
        excluded=[_point_model(point) for point in excluded],
        compute_time_ms=result.compute_time_ms,
        metadata=metadata,
    )


def _run_model(result: SequencingResult) -> AlgorithmRunModel:
    return AlgorithmRunModel(
        route=[_point_model(point) for point in result.tour],
        metrics=_metrics_model(result.metrics),
        unreachable_partial=result.unreachable_partial,
        unreachable=[_point_model(point) for point in result.unreachable],
        compute_time_ms=result.compute_time_ms,
    )


def optimize_route(
    payload: OptimizeRequest,
    engine: RouteSequencingEngine,
    geocoder: Geocoder | None = None,
) -> SequencingResponse:
    start = _resolve_point(payload.start, geocoder)
    points = _resolve_points(payload.points, geocoder)

    excluded: list[Point] = []
    if payload.max_radius_km is not None:
        points, excluded = filter_within_radius(points, start, payload.max_radius_km)
        if excluded:
            logger.info(f"Excluded {len(excluded)} points beyond {payload.max_radius_km}km of the start")

    result = engine.optimize(points, start, payload.algorithm, payload.traffic_aware)
    return _sequencing_response(
        result,
        excluded=excluded,
        metadata={"requested_points": len(payload.points)},
    )


def reoptimize_route(
    payload: ReoptimizeRequest,
    engine: RouteSequencingEngine,
    geocoder: Geocoder | None = None,
) -> SequencingResponse:
    current_route = _resolve_points(payload.current_route, geocoder)
    current_position = (
        _resolve_point(payload.current_position, geocoder) if payload.current_position else None
    )
    result = engine.reoptimize(
        current_route,
        payload.current_index,
        payload.algorithm,
        payload.traffic_aware,
        current_position=current_position,
    )
    return _sequencing_response(
        result,
        metadata={"completed_stops": payload.current_index + 1},
    )


def compare_algorithms(
    payload: CompareRequest,
    engine: RouteSequencingEngine,
    geocoder: Geocoder | None = None,
) -> ComparisonResponse:
    start = _resolve_point(payload.start, geocoder)
    points = _resolve_points(payload.points, geocoder)
    comparison = engine.compare(points, start, payload.traffic_aware)
    return ComparisonResponse(
        runs={algorithm.value: _run_model(run) for algorithm, run in comparison.runs.items()},
        recommended=comparison.recommended,
        distance_difference_km=comparison.distance_difference_km,
        duration_difference_min=comparison.duration_difference_min,
        compute_time_difference_ms=comparison.compute_time_difference_ms,
    )


def route_metrics(
    payload: MetricsRequest,
    engine: RouteSequencingEngine,
    geocoder: Geocoder | None = None,
) -> RouteMetricsModel:
    tour = _resolve_points(payload.route, geocoder)
    return _metrics_model(engine.metrics(tour, payload.traffic_aware))


def simulate_fuel_savings(
    payload: FuelSimulationRequest,
    engine: RouteSequencingEngine,
    geocoder: Geocoder | None = None,
) -> FuelSimulationResponse:
    start = _resolve_point(payload.start, geocoder)
    points = _resolve_points(payload.points, geocoder)
    simulation = engine.simulate_fuel_savings(
        points,
        start,
        fuel_cost_per_liter=payload.fuel_cost_per_liter,
        consumption_l_per_100km=payload.vehicle_consumption_l_per_100km,
        traffic_aware=payload.traffic_aware,
    )
    savings = simulation.savings
    return FuelSimulationResponse(
        non_optimized=FuelEstimateModel(
            route=[_point_model(point) for point in simulation.baseline_tour],
            metrics=_metrics_model(simulation.baseline_metrics),
            fuel_liters=simulation.baseline_fuel.fuel_liters,
            fuel_cost=simulation.baseline_fuel.fuel_cost,
        ),
        optimized=FuelEstimateModel(
            route=[_point_model(point) for point in simulation.optimized.tour],
            metrics=_metrics_model(simulation.optimized.metrics),
            fuel_liters=simulation.optimized_fuel.fuel_liters,
            fuel_cost=simulation.optimized_fuel.fuel_cost,
        ),
        savings=FuelSavingsModel(
            distance_savings_km=savings.distance_savings_km,
            time_savings_min=savings.time_savings_min,
            fuel_savings_liters=savings.fuel_savings_liters,
            fuel_savings_cost=savings.fuel_savings_cost,
            fuel_savings_percentage=savings.fuel_savings_percentage,
            monthly_savings_liters=savings.monthly_savings_liters,
            monthly_savings_cost=savings.monthly_savings_cost,
            yearly_savings_liters=savings.yearly_savings_liters,
            yearly_savings_cost=savings.yearly_savings_cost,
        ),
    )


def route_traffic(
    payload: TrafficRequest,
    engine: RouteSequencingEngine,
    geocoder: Geocoder | None = None,
) -> TrafficResponse:
    tour = _resolve_points(payload.route, geocoder)
    report = engine.traffic_report(tour)
    return TrafficResponse(
        free_flow=_metrics_model(report.free_flow),
        in_traffic=_metrics_model(report.in_traffic),
        congestion_ratio=report.congestion_ratio,
        congestion_level=report.congestion_level,
        extra_minutes=report.extra_minutes,
    )
