"""Routing endpoints."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.routing import (
    CompareRequest,
    ComparisonResponse,
    FuelSimulationRequest,
    FuelSimulationResponse,
    MetricsRequest,
    OptimizeRequest,
    ReoptimizeRequest,
    RouteMetricsModel,
    SequencingResponse,
    TrafficRequest,
    TrafficResponse,
)
from ...services.routing import service
from ...services.routing.engine import RouteSequencingEngine
from ...services.routing.errors import InvalidInput, OracleError
from ...services.routing.oracle import Geocoder, build_geocoder, build_oracle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])

T = TypeVar("T")


def get_engine() -> RouteSequencingEngine:
    try:
        return RouteSequencingEngine(build_oracle())
    except OracleError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


def get_geocoder() -> Geocoder | None:
    return build_geocoder()


def _run(action: str, call: Callable[[], T]) -> T:
    try:
        return call()
    except InvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OracleError as exc:
        logger.error(f"Travel data unavailable while trying to {action}: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error trying to {action}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(exc)}",
        ) from exc


@router.post("/optimize", response_model=SequencingResponse, status_code=status.HTTP_200_OK)
def optimize(
    payload: OptimizeRequest,
    engine: RouteSequencingEngine = Depends(get_engine),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> SequencingResponse:
    return _run("optimize route", lambda: service.optimize_route(payload, engine, geocoder))


@router.post("/reoptimize", response_model=SequencingResponse, status_code=status.HTTP_200_OK)
def reoptimize(
    payload: ReoptimizeRequest,
    engine: RouteSequencingEngine = Depends(get_engine),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> SequencingResponse:
    return _run("reoptimize route", lambda: service.reoptimize_route(payload, engine, geocoder))


@router.post("/compare", response_model=ComparisonResponse, status_code=status.HTTP_200_OK)
def compare(
    payload: CompareRequest,
    engine: RouteSequencingEngine = Depends(get_engine),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> ComparisonResponse:
    return _run("compare algorithms", lambda: service.compare_algorithms(payload, engine, geocoder))


@router.post("/metrics", response_model=RouteMetricsModel, status_code=status.HTTP_200_OK)
def metrics(
    payload: MetricsRequest,
    engine: RouteSequencingEngine = Depends(get_engine),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> RouteMetricsModel:
    return _run("calculate route metrics", lambda: service.route_metrics(payload, engine, geocoder))


@router.post("/fuel-savings", response_model=FuelSimulationResponse, status_code=status.HTTP_200_OK)
def fuel_savings(
    payload: FuelSimulationRequest,
    engine: RouteSequencingEngine = Depends(get_engine),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> FuelSimulationResponse:
    return _run("simulate fuel savings", lambda: service.simulate_fuel_savings(payload, engine, geocoder))


@router.post("/traffic", response_model=TrafficResponse, status_code=status.HTTP_200_OK)
def traffic(
    payload: TrafficRequest,
    engine: RouteSequencingEngine = Depends(get_engine),
    geocoder: Geocoder | None = Depends(get_geocoder),
) -> TrafficResponse:
    return _run("analyse traffic", lambda: service.route_traffic(payload, engine, geocoder))
