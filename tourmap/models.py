"""Core dataclasses: travel profile, stop, leg, and trip statistics."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Final, List, Optional

from shapely.geometry import LineString, Point

# Schema of one boundary record inside a regions GeoDataFrame.
REGION_COLUMNS: Final[List[str]] = ["region_id", "region_code", "geometry"]


class Profile(str, Enum):
    BIKE = "bike"
    FOOT = "foot"


@dataclass(frozen=True)
class Stop:
    sequence_index: int
    name: str
    point: Optional[Point] = None

    def __post_init__(self):
        if self.sequence_index < 0:
            raise ValueError("sequence_index must be >= 0")
        if not self.name:
            raise ValueError("stop name must not be empty")

    @property
    def resolved(self) -> bool:
        return self.point is not None


@dataclass(frozen=True)
class Leg:
    origin: Stop
    destination: Stop
    route_geometry: Optional[LineString] = None
    distance_meters: Optional[float] = None
    duration_minutes: Optional[float] = None
    failure: Optional[str] = None

    def __post_init__(self):
        if self.origin.sequence_index + 1 != self.destination.sequence_index:
            raise ValueError(
                f"leg {self.origin.name!r} → {self.destination.name!r} skips a stop "
                f"({self.origin.sequence_index} → {self.destination.sequence_index})"
            )
        if self.distance_meters is not None and self.distance_meters < 0:
            raise ValueError("distance_meters must be >= 0")
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValueError("duration_minutes must be >= 0")

    @property
    def position(self) -> int:
        """0-based index of the leg inside its trip."""
        return self.origin.sequence_index

    @property
    def resolved(self) -> bool:
        return (
            self.failure is None
            and self.distance_meters is not None
            and self.duration_minutes is not None
        )

    @property
    def label(self) -> str:
        return f"{self.origin.name} → {self.destination.name}"

    def with_route(self, geometry: LineString, distance_meters: float,
                   duration_minutes: float) -> "Leg":
        return replace(self, route_geometry=geometry,
                       distance_meters=distance_meters,
                       duration_minutes=duration_minutes,
                       failure=None)

    def with_failure(self, reason: str) -> "Leg":
        return replace(self, route_geometry=None, distance_meters=None,
                       duration_minutes=None, failure=reason)


@dataclass(frozen=True)
class TripStatistics:
    total_distance_meters: float
    total_duration_minutes: float
    resolved_legs: int = 0
    unresolved_legs: int = 0

    @property
    def distance_label(self) -> str:
        from .stats import format_distance
        return format_distance(self.total_distance_meters)

    @property
    def duration_label(self) -> str:
        from .stats import format_duration
        return format_duration(self.total_duration_minutes)

    def __str__(self):
        text = f"{self.distance_label}, {self.duration_label}"
        if self.unresolved_legs:
            text += f" ({self.unresolved_legs} leg(s) without route)"
        return text
