"""
Hazard advisor

Detects whether a route passes through an active hazard zone and converts
that into a fixed time penalty. The penalty models delay, the route geometry
is never altered.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, List, Protocol, Sequence

from .geo_math import Coordinates
from .schemas import Hazard, RouteResult

logger = logging.getLogger(__name__)


# Delay per hazard crossed (seconds)
HAZARD_PENALTY_SECONDS = 600


class HazardSource(Protocol):
    async def list_active_hazards(self) -> List[Hazard]:
        ...


def hazards_on_path(hazards: Iterable[Hazard], path: Sequence[Coordinates]) -> List[Hazard]:
    """Active hazards containing at least one point of the path"""
    found: List[Hazard] = []
    seen = set()
    for hazard in hazards:
        if not hazard.active or hazard.id in seen:
            continue
        if any(hazard.contains(point) for point in path):
            found.append(hazard)
            seen.add(hazard.id)
    return found


class HazardAdvisor:

    def __init__(self, source: HazardSource, penalty_s: int = HAZARD_PENALTY_SECONDS) -> None:
        self._source = source
        self._penalty_s = penalty_s

    @property
    def penalty_per_hazard_s(self) -> int:
        return self._penalty_s

    async def _active_hazards(self) -> List[Hazard]:
        try:
            return list(await self._source.list_active_hazards())
        except Exception as e:
            logger.warning(f"Hazard source unavailable, assuming no hazards: {e}")
            return []

    async def affecting_hazards(self, path: Sequence[Coordinates]) -> List[Hazard]:
        return hazards_on_path(await self._active_hazards(), path)

    async def penalty(self, path: Sequence[Coordinates]) -> int:
        hazards = await self.affecting_hazards(path)
        return len(hazards) * self._penalty_s

    async def apply_penalty(self, route: RouteResult) -> RouteResult:
        """
        Copy of the route with the hazard delay added to its ETA
        """
        hazards = await self.affecting_hazards(route.geometry)
        if not hazards:
            return route

        penalty = len(hazards) * self._penalty_s
        logger.info(
            f"Route crosses {len(hazards)} hazard(s) "
            f"{[h.id for h in hazards]}, ETA +{penalty}s"
        )
        return dataclasses.replace(
            route,
            eta_s=route.eta_s + penalty,
            hazard_penalty_s=route.hazard_penalty_s + penalty,
            hazards=tuple(hazards),
        )

    async def is_point_in_hazard_zone(self, point: Coordinates) -> bool:
        hazards = await self._active_hazards()
        return any(h.active and h.contains(point) for h in hazards)
