from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

import pytest

from routeseq.models.domain import Point
from routeseq.services.routing.models import Leg, TravelMatrix


def make_point(point_id: Optional[str], lat: Optional[float] = None, lon: float = 39.2) -> Point:
    # Distinct ids get distinct default latitudes so no stop accidentally sits on the hub.
    if lat is None:
        lat = 21.5 + sum(map(ord, point_id or "")) / 10000
    return Point(latitude=lat, longitude=lon, point_id=point_id)


class FixedOracle:
    """Serves legs from a cost table keyed by point id, mirrored unless ``directed``.

    A cost of ``c`` becomes ``c`` km and ``c`` minutes, multiplied by
    ``traffic_factor`` for durations when traffic is requested. Pairs
    missing from the table have no route.
    """

    def __init__(
        self,
        costs: Dict[Tuple[str, str], float],
        traffic_factor: float = 1.0,
        directed: bool = False,
    ) -> None:
        self.costs: Dict[Tuple[str, str], float] = {}
        for (a, b), cost in costs.items():
            self.costs[(a, b)] = cost
            if not directed:
                self.costs.setdefault((b, a), cost)
        self.traffic_factor = traffic_factor
        self.calls: list[tuple[tuple[Optional[str], ...], bool]] = []

    def _leg(self, a: Point, b: Point, traffic_aware: bool) -> Optional[Leg]:
        if a.point_id == b.point_id:
            return Leg(0.0, 0.0)
        cost = self.costs.get((a.point_id, b.point_id))
        if cost is None:
            return None
        factor = self.traffic_factor if traffic_aware else 1.0
        return Leg(distance_m=cost * 1000.0, duration_s=cost * 60.0 * factor)

    def matrix(self, points: Sequence[Point], traffic_aware: bool = False) -> TravelMatrix:
        self.calls.append((tuple(point.point_id for point in points), traffic_aware))
        return TravelMatrix(
            legs=tuple(tuple(self._leg(a, b, traffic_aware) for b in points) for a in points)
        )


# H, A, B, C: nearest neighbour and the frontier both give H-A-B-C (3 km).
SMALL_COSTS = {
    ("H", "A"): 1,
    ("H", "B"): 10,
    ("H", "C"): 10,
    ("A", "B"): 1,
    ("A", "C"): 9,
    ("B", "C"): 1,
}

# The frontier heuristic finds H-A-D-B-C (10.5 km); nearest neighbour plus 2-opt stops at H-A-B-C-D (11 km).
FRONTIER_WINS_COSTS = {
    ("H", "A"): 1,
    ("H", "D"): 1.5,
    ("H", "B"): 5,
    ("H", "C"): 6,
    ("A", "B"): 2,
    ("A", "C"): 3,
    ("A", "D"): 2.5,
    ("B", "C"): 1,
    ("B", "D"): 6,
    ("C", "D"): 7,
}


@pytest.fixture
def small_oracle() -> FixedOracle:
    return FixedOracle(SMALL_COSTS)


@pytest.fixture
def hub() -> Point:
    return make_point("H")
