"""
Geographic primitives

Great-circle distance, road-distance and ETA estimation, and position
sampling along a polyline.
"""
from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import List, Sequence


# Earth radius (metres)
EARTH_RADIUS_M = 6371000.0

# Straight line to road distance multiplier
TORTUOSITY_FACTOR = 1.4

# Average ambulance speed in urban traffic
AVERAGE_SPEED_KMH = 50.0


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 point"""
    lat: float
    lng: float

    def to_geojson(self) -> List[float]:
        return [self.lng, self.lat]

    @classmethod
    def from_geojson(cls, pair: Sequence[float]) -> "Coordinates":
        return cls(lat=float(pair[1]), lng=float(pair[0]))


def distance(a: Coordinates, b: Coordinates) -> float:
    """
    Haversine distance between two points in metres
    """
    lat1_rad = math.radians(a.lat)
    lat2_rad = math.radians(b.lat)
    delta_lat = math.radians(b.lat - a.lat)
    delta_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def estimate_road_distance(straight_line_m: float, factor: float = TORTUOSITY_FACTOR) -> float:
    return straight_line_m * factor


def estimate_eta(distance_m: float, speed_kmh: float = AVERAGE_SPEED_KMH) -> int:
    """Travel time in whole seconds at the average speed"""
    speed_mps = speed_kmh / 3.6
    return int(round(distance_m / speed_mps))


def total_length(path: Sequence[Coordinates]) -> float:
    return sum(distance(path[i], path[i + 1]) for i in range(len(path) - 1))


def bearing(a: Coordinates, b: Coordinates) -> float:
    """
    Initial bearing from a to b in degrees

    Range 0-360, north is 0, clockwise.
    """
    lat1_rad = math.radians(a.lat)
    lat2_rad = math.radians(b.lat)
    delta_lng = math.radians(b.lng - a.lng)

    x = math.sin(delta_lng) * math.cos(lat2_rad)
    y = (
        math.cos(lat1_rad) * math.sin(lat2_rad) -
        math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lng)
    )

    return (math.degrees(math.atan2(x, y)) + 360) % 360


def interpolate(a: Coordinates, b: Coordinates, fraction: float) -> Coordinates:
    return Coordinates(
        lat=a.lat + (b.lat - a.lat) * fraction,
        lng=a.lng + (b.lng - a.lng) * fraction,
    )


def densify(a: Coordinates, b: Coordinates, points: int) -> List[Coordinates]:
    """Straight segment from a to b sampled at `points` evenly spaced points"""
    if points < 2:
        raise ValueError("densify needs at least 2 points")
    last = points - 1
    coords = [interpolate(a, b, i / last) for i in range(last)]
    coords.append(b)
    return coords


class PolylineWalker:
    """
    Samples positions along a fixed path

    Segment lengths are computed once so that repeated sampling on every
    simulation tick only costs a binary search.
    """

    def __init__(self, path: Sequence[Coordinates]) -> None:
        if not path:
            raise ValueError("path must contain at least one point")

        self._path = list(path)
        self._cumulative: List[float] = [0.0]
        for i in range(len(self._path) - 1):
            self._cumulative.append(
                self._cumulative[-1] + distance(self._path[i], self._path[i + 1])
            )

    @property
    def total_length_m(self) -> float:
        return self._cumulative[-1]

    @property
    def start(self) -> Coordinates:
        return self._path[0]

    @property
    def end(self) -> Coordinates:
        return self._path[-1]

    def position_at(self, progress: float) -> Coordinates:
        if len(self._path) == 1 or progress <= 0:
            return self._path[0]
        if progress >= 1:
            return self._path[-1]

        total = self.total_length_m
        if total == 0:
            return self._path[0]

        target = progress * total
        index = self._segment_index(target)
        seg_start = self._cumulative[index]
        seg_length = self._cumulative[index + 1] - seg_start
        fraction = (target - seg_start) / seg_length if seg_length > 0 else 0.0

        return interpolate(self._path[index], self._path[index + 1], fraction)

    def heading_at(self, progress: float) -> float:
        """Bearing of the segment containing `progress`"""
        if len(self._path) < 2:
            return 0.0
        target = min(max(progress, 0.0), 1.0) * self.total_length_m
        index = self._segment_index(target)
        return bearing(self._path[index], self._path[index + 1])

    def _segment_index(self, target_m: float) -> int:
        index = bisect.bisect_right(self._cumulative, target_m) - 1
        return min(max(index, 0), len(self._path) - 2)


def position_at_progress(path: Sequence[Coordinates], progress: float) -> Coordinates:
    """
    Position a fraction `progress` of the way along `path`

    Raises:
        ValueError: path is empty
    """
    return PolylineWalker(path).position_at(progress)
