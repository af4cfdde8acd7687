"""HTTP client for the Google Distance Matrix and Geocoding APIs."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Point
from .errors import OracleError
from .models import Leg, TravelMatrix

# Distance Matrix allows at most 100 elements per request, so blocks are 10 x 10.
MAX_LOCATIONS_PER_SIDE = 10

logger = logging.getLogger(__name__)


class GoogleMapsClient:
    """Travel matrix oracle and geocoder backed by Google Maps web services.

    In traffic-aware mode the request asks for ``departure_time=now`` and each
    cell's duration comes from ``duration_in_traffic`` when Google returns it.
    Distances are the same in both modes.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = (base_url or settings.google_maps_base_url).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else settings.google_maps_max_retries
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.google_maps_backoff_seconds
        )
        self.timeout = timeout

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def _get_json(self, endpoint: str, params: dict) -> dict:
        url = f"{self.base_url}/{endpoint}/json"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params={**params, "key": self.api_key})
                    response.raise_for_status()
                    return response.json()
                except (httpx.HTTPStatusError, httpx.TimeoutException, httpx.TransportError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise OracleError(f"Google Maps {endpoint} request failed: {exc}") from exc
                    wait_time = self.backoff_seconds * attempt
                    logger.warning(
                        f"Google Maps {endpoint} request failed ({exc}), retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries})"
                    )
                    time.sleep(wait_time)
                except ValueError as exc:
                    raise OracleError(f"Google Maps {endpoint} returned an unreadable response: {exc}") from exc
        finally:
            client.close()

    def _matrix_block(
        self,
        origins: Sequence[Point],
        destinations: Sequence[Point],
        traffic_aware: bool,
    ) -> list[list[Leg | None]]:
        params = {
            "origins": "|".join(f"{point.latitude},{point.longitude}" for point in origins),
            "destinations": "|".join(f"{point.latitude},{point.longitude}" for point in destinations),
            "mode": "driving",
        }
        if traffic_aware:
            params["departure_time"] = "now"
            params["traffic_model"] = "best_guess"

        data = self._get_json("distancematrix", params)
        status = data.get("status")
        if status != "OK":
            detail = data.get("error_message", "")
            raise OracleError(f"Google Maps distance matrix error: {status} {detail}".strip())

        rows = data.get("rows", [])
        if len(rows) != len(origins):
            raise OracleError(f"Google Maps returned {len(rows)} rows for {len(origins)} origins.")

        block: list[list[Leg | None]] = []
        for row in rows:
            cells: list[Leg | None] = []
            for element in row.get("elements", []):
                if element.get("status") != "OK":
                    cells.append(None)
                    continue
                duration = element["duration"]["value"]
                if traffic_aware and "duration_in_traffic" in element:
                    duration = element["duration_in_traffic"]["value"]
                cells.append(Leg(float(element["distance"]["value"]), float(duration)))
            if len(cells) != len(destinations):
                raise OracleError("Google Maps returned a row of unexpected length.")
            block.append(cells)
        return block

    def matrix(self, points: Sequence[Point], traffic_aware: bool = False) -> TravelMatrix:
        if not points:
            raise ValueError("At least one point is required for a distance matrix.")
        n = len(points)
        legs: list[list[Leg | None]] = [[None] * n for _ in range(n)]
        side = MAX_LOCATIONS_PER_SIDE
        for src_start in range(0, n, side):
            for dst_start in range(0, n, side):
                origins = points[src_start : src_start + side]
                destinations = points[dst_start : dst_start + side]
                block = self._matrix_block(origins, destinations, traffic_aware)
                for i, row in enumerate(block):
                    legs[src_start + i][dst_start : dst_start + len(row)] = row
        return TravelMatrix(legs=tuple(tuple(row) for row in legs))

    def geocode(self, address: str) -> Point:
        data = self._get_json("geocode", {"address": address})
        status = data.get("status")
        if status != "OK" or not data.get("results"):
            raise OracleError(f"Geocoding error for '{address}': {status}")
        result = data["results"][0]
        location = result["geometry"]["location"]
        return Point(
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
            address=result.get("formatted_address", address),
        )


def check_health(api_key: str | None = None) -> bool:
    """Google has no health endpoint; a configured key is the best local signal."""
    return bool(api_key or settings.google_maps_api_key)
