"""
Ambulance candidate selection

Filters the fleet to IDLE units of sufficient tier and ranks them by ETA.
Pure selection: the caller claims the chosen unit.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from ambulance_dispatch.domains.fleet.schemas import AmbulanceRecord, AmbulanceStatus, AmbulanceTier
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from ambulance_dispatch.domains.routing.providers import RoutingProvider
from .schemas import AmbulanceCandidate

logger = logging.getLogger(__name__)


def filter_eligible(
    fleet: Iterable[AmbulanceRecord],
    required_tier: Optional[AmbulanceTier] = None,
) -> List[AmbulanceRecord]:
    """IDLE ambulances whose tier is at or above `required_tier`"""
    return [
        a for a in fleet
        if a.status == AmbulanceStatus.IDLE and a.tier.satisfies(required_tier)
    ]


class CandidateSelector:

    def __init__(self, router: RoutingProvider) -> None:
        self._router = router

    async def select(
        self,
        incident_location: Coordinates,
        fleet: Iterable[AmbulanceRecord],
        required_tier: Optional[AmbulanceTier] = None,
    ) -> List[AmbulanceCandidate]:
        """
        Rank eligible ambulances for an incident

        Sorted by ETA, then road distance, then ambulance id. An empty list
        means no unit is available and is not an error.
        """
        eligible = filter_eligible(fleet, required_tier)
        if not eligible:
            logger.info(
                f"No eligible ambulance for ({incident_location.lat},{incident_location.lng}), "
                f"required tier={required_tier.value if required_tier else 'Any'}"
            )
            return []

        routes = await asyncio.gather(*[
            self._router.get_route(a.location, incident_location) for a in eligible
        ])

        candidates = [
            AmbulanceCandidate(ambulance=a, route=r) for a, r in zip(eligible, routes)
        ]
        candidates.sort(key=lambda c: (c.eta_s, c.distance_m, c.ambulance_id))

        best = candidates[0]
        logger.debug(
            f"{len(candidates)} candidate(s), best={best.ambulance.callsign} "
            f"eta={best.eta_s}s distance={best.distance_m:.0f}m"
        )
        return candidates
