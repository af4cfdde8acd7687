"""Domain models for delivery points."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Point:
    """A hub or delivery location. Immutable once handed to the engine."""

    latitude: float
    longitude: float
    point_id: Optional[str] = None
    address: Optional[str] = None

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)
