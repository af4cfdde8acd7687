"""Routing request/response schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..services.routing.models import Algorithm


class PointModel(BaseModel):
    id: Optional[str] = Field(default=None, description="Order or stop reference.")
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    address: Optional[str] = Field(default=None, description="Used for geocoding when coordinates are missing.")

    @model_validator(mode="after")
    def _require_location(self) -> "PointModel":
        has_coordinates = self.latitude is not None and self.longitude is not None
        if not has_coordinates and not (self.address and self.address.strip()):
            raise ValueError("A point needs latitude and longitude, or an address to geocode.")
        return self


class OptimizeRequest(BaseModel):
    start: PointModel
    points: List[PointModel] = Field(..., description="Delivery points to sequence.")
    algorithm: Algorithm = Algorithm.NEAREST_NEIGHBOR_2OPT
    traffic_aware: Optional[bool] = None
    max_radius_km: Optional[float] = Field(
        default=None,
        gt=0,
        description="Exclude points farther than this straight-line distance from the start.",
    )


class ReoptimizeRequest(BaseModel):
    current_route: List[PointModel]
    current_index: int = Field(..., description="Index of the last completed or current stop.")
    algorithm: Algorithm = Algorithm.NEAREST_NEIGHBOR_2OPT
    traffic_aware: Optional[bool] = None
    current_position: Optional[PointModel] = Field(
        default=None,
        description="Live vehicle position used as the origin for the remaining stops.",
    )


class CompareRequest(BaseModel):
    start: PointModel
    points: List[PointModel]
    traffic_aware: Optional[bool] = None


class MetricsRequest(BaseModel):
    route: List[PointModel]
    traffic_aware: Optional[bool] = None


class FuelSimulationRequest(BaseModel):
    start: PointModel
    points: List[PointModel]
    fuel_cost_per_liter: Optional[float] = Field(default=None, ge=0)
    vehicle_consumption_l_per_100km: Optional[float] = Field(default=None, ge=0)
    traffic_aware: Optional[bool] = None


class TrafficRequest(BaseModel):
    route: List[PointModel]


class RouteStopModel(BaseModel):
    point: PointModel
    sequence: int
    arrival_min: float
    distance_from_prev_km: float


class RouteMetricsModel(BaseModel):
    total_distance_km: float
    total_duration_min: float
    stops: List[RouteStopModel]


class SequencingResponse(BaseModel):
    algorithm: Algorithm
    route: List[PointModel]
    metrics: RouteMetricsModel
    unreachable_partial: bool
    unreachable: List[PointModel]
    excluded: List[PointModel] = Field(default_factory=list)
    compute_time_ms: float
    metadata: dict = Field(default_factory=dict)


class AlgorithmRunModel(BaseModel):
    route: List[PointModel]
    metrics: RouteMetricsModel
    unreachable_partial: bool
    unreachable: List[PointModel]
    compute_time_ms: float


class ComparisonResponse(BaseModel):
    runs: Dict[str, AlgorithmRunModel]
    recommended: Algorithm
    distance_difference_km: float
    duration_difference_min: float
    compute_time_difference_ms: float


class FuelEstimateModel(BaseModel):
    route: List[PointModel]
    metrics: RouteMetricsModel
    fuel_liters: float
    fuel_cost: float


class FuelSavingsModel(BaseModel):
    distance_savings_km: float
    time_savings_min: float
    fuel_savings_liters: float
    fuel_savings_cost: float
    fuel_savings_percentage: float
    monthly_savings_liters: float
    monthly_savings_cost: float
    yearly_savings_liters: float
    yearly_savings_cost: float


class FuelSimulationResponse(BaseModel):
    non_optimized: FuelEstimateModel
    optimized: FuelEstimateModel
    savings: FuelSavingsModel


class TrafficResponse(BaseModel):
    free_flow: RouteMetricsModel
    in_traffic: RouteMetricsModel
    congestion_ratio: float
    congestion_level: str
    extra_minutes: float
