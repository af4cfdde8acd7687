"""HTTP client for the OSRM table service."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Point
from .errors import OracleError
from .models import Leg, TravelMatrix

logger = logging.getLogger(__name__)


class OSRMClient:
    """Travel matrix oracle backed by an OSRM ``/table`` endpoint.

    OSRM has no live traffic feed, so ``traffic_aware`` requests return the
    same durations as free-flow ones.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float = 60.0,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_coordinates_per_request: int | None = None,
        max_parallel_requests: int | None = None,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.base_url = self.base_url.rstrip("/")
        self.profile = profile or settings.osrm_profile
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.max_coordinates_per_request = (
            max_coordinates_per_request or settings.osrm_max_coordinates_per_request
        )
        self.max_parallel_requests = max_parallel_requests or settings.osrm_max_parallel_requests
        self.timeout = timeout

    def _get_client(self) -> httpx.Client:
        # One client per call; chunk requests run on worker threads.
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def _get_json(self, url: str, params: dict) -> dict:
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    if response.status_code >= 500 or response.status_code == 429:
                        response.raise_for_status()
                    data = response.json()
                    if data.get("code") != "Ok":
                        message = data.get("message") or data.get("code") or f"HTTP {response.status_code}"
                        raise OracleError(f"OSRM request failed: {message}")
                    return data
                except (httpx.HTTPStatusError, httpx.TimeoutException, httpx.TransportError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise OracleError(
                            f"OSRM service at {self.base_url} did not answer after {attempt} attempts: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.warning(
                        f"OSRM request failed ({exc}), retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries})"
                    )
                    time.sleep(wait_time)
                except ValueError as exc:
                    raise OracleError(f"OSRM returned an unreadable response: {exc}") from exc
        finally:
            client.close()

    def _table(
        self,
        coordinates: Sequence[tuple[float, float]],
        sources: Sequence[int] | None = None,
        destinations: Sequence[int] | None = None,
    ) -> dict:
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        params = {"annotations": "duration,distance"}
        if sources is not None:
            params["sources"] = ";".join(str(i) for i in sources)
        if destinations is not None:
            params["destinations"] = ";".join(str(i) for i in destinations)
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinate_str}"
        data = self._get_json(url, params)
        if "durations" not in data or "distances" not in data:
            raise OracleError("OSRM response missing durations/distances.")
        return data

    def matrix(self, points: Sequence[Point], traffic_aware: bool = False) -> TravelMatrix:
        if not points:
            raise ValueError("At least one point is required for an OSRM table.")
        if traffic_aware:
            logger.debug("OSRM has no traffic model; returning free-flow durations.")
        if len(points) == 1:
            return TravelMatrix(legs=((Leg(0.0, 0.0),),))

        coordinates = [point.coordinates for point in points]
        if len(coordinates) <= self.max_coordinates_per_request:
            data = self._table(coordinates)
            return TravelMatrix.from_tables(data["distances"], data["durations"])
        return self._chunked_matrix(coordinates)

    def _chunked_matrix(self, coordinates: list[tuple[float, float]]) -> TravelMatrix:
        start_time = time.perf_counter()
        chunk_size = max(1, self.max_coordinates_per_request // 2)
        ranges = [(i, min(i + chunk_size, len(coordinates))) for i in range(0, len(coordinates), chunk_size)]
        n = len(coordinates)
        distances: list[list[float | None]] = [[None] * n for _ in range(n)]
        durations: list[list[float | None]] = [[None] * n for _ in range(n)]

        def fetch(src: tuple[int, int], dst: tuple[int, int]) -> tuple[tuple[int, int], tuple[int, int], dict]:
            chunk = coordinates[src[0] : src[1]] + coordinates[dst[0] : dst[1]]
            src_count = src[1] - src[0]
            data = self._table(chunk, range(src_count), range(src_count, len(chunk)))
            return src, dst, data

        logger.info(
            f"Chunking OSRM table request: {n} coordinates into {len(ranges) ** 2} requests "
            f"(max {self.max_parallel_requests} concurrent)"
        )
        with ThreadPoolExecutor(max_workers=self.max_parallel_requests) as executor:
            futures = [executor.submit(fetch, src, dst) for src in ranges for dst in ranges]
            for future in as_completed(futures):
                (src_start, src_end), (dst_start, dst_end), data = future.result()
                for local_src, global_src in enumerate(range(src_start, src_end)):
                    for local_dst, global_dst in enumerate(range(dst_start, dst_end)):
                        distances[global_src][global_dst] = data["distances"][local_src][local_dst]
                        durations[global_src][global_dst] = data["durations"][local_src][local_dst]

        logger.info(f"Completed chunked OSRM table in {time.perf_counter() - start_time:.2f}s")
        return TravelMatrix.from_tables(distances, durations)


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM reachability with a minimal two-point table request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base.rstrip('/')}/table/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return "durations" in data and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError):
        return False
