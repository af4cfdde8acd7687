"""Travel matrix oracle interface, caching wrapper and factory."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ...config import settings
from ...models.domain import Point
from .cache import ExpiringCache, MatrixCache, geocode_cache_key, matrix_cache_key
from .errors import OracleError
from .models import TravelMatrix

logger = logging.getLogger(__name__)


class TravelMatrixOracle(Protocol):
    def matrix(self, points: Sequence[Point], traffic_aware: bool = False) -> TravelMatrix: ...


class Geocoder(Protocol):
    def geocode(self, address: str) -> Point: ...


class CachingOracle:
    """Serve repeated matrix requests from a ``MatrixCache``."""

    def __init__(
        self,
        oracle: TravelMatrixOracle,
        cache: MatrixCache | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        self.oracle = oracle
        self.cache = cache if cache is not None else ExpiringCache()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.matrix_cache_ttl_seconds

    def matrix(self, points: Sequence[Point], traffic_aware: bool = False) -> TravelMatrix:
        key = matrix_cache_key(points, traffic_aware)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Matrix cache hit for {len(points)} points (traffic={traffic_aware})")
            return cached
        result = self.oracle.matrix(points, traffic_aware)
        if self.ttl_seconds > 0:
            self.cache.set(key, result, self.ttl_seconds)
        return result


class CachingGeocoder:
    def __init__(
        self,
        geocoder: Geocoder,
        cache: MatrixCache | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.cache = cache if cache is not None else ExpiringCache()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.geocode_cache_ttl_seconds

    def geocode(self, address: str) -> Point:
        key = geocode_cache_key(address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        result = self.geocoder.geocode(address)
        if self.ttl_seconds > 0:
            self.cache.set(key, result, self.ttl_seconds)
        return result


_shared_cache = ExpiringCache(max_entries=settings.cache_max_entries)


def build_oracle(provider: str | None = None, cache: MatrixCache | None = None) -> TravelMatrixOracle:
    """Create the configured matrix oracle wrapped in the shared cache."""
    provider = provider or settings.matrix_provider
    try:
        if provider == "google":
            from .google_client import GoogleMapsClient

            upstream: TravelMatrixOracle = GoogleMapsClient()
        elif provider == "osrm":
            from .osrm_client import OSRMClient

            upstream = OSRMClient()
        else:
            raise OracleError(f"Unknown matrix provider '{provider}'.")
    except ValueError as exc:
        raise OracleError(f"Matrix provider '{provider}' is not configured: {exc}") from exc
    return CachingOracle(upstream, cache if cache is not None else _shared_cache)


def build_geocoder(cache: MatrixCache | None = None) -> Geocoder | None:
    """Geocoding is only available through Google; returns None when no key is set."""
    if not settings.google_maps_api_key:
        return None
    from .google_client import GoogleMapsClient

    return CachingGeocoder(GoogleMapsClient(), cache if cache is not None else _shared_cache)
