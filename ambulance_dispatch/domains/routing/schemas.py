"""
Routing data models
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .geo_math import Coordinates


class RouteSource(str, Enum):
    OPENROUTESERVICE = "openrouteservice"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Hazard:
    """Rectangular zone that delays any route passing through it"""
    id: int
    hazard_type: str
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    active: bool = True
    description: Optional[str] = None

    def contains(self, point: Coordinates) -> bool:
        return (
            self.min_lat <= point.lat <= self.max_lat
            and self.min_lng <= point.lng <= self.max_lng
        )


@dataclass(frozen=True)
class RouteResult:
    """Route between two points"""
    geometry: List[Coordinates]
    distance_m: float
    eta_s: int
    source: RouteSource = RouteSource.FALLBACK
    hazard_penalty_s: int = 0
    hazards: Tuple[Hazard, ...] = field(default_factory=tuple)

    @property
    def origin(self) -> Coordinates:
        return self.geometry[0]

    @property
    def destination(self) -> Coordinates:
        return self.geometry[-1]

    def to_geojson(self) -> dict:
        return {
            "type": "LineString",
            "coordinates": [p.to_geojson() for p in self.geometry],
        }
