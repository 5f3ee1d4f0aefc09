"""
Destination hospital selection

1. Derive the capabilities the patient needs from triage (HIGH severity only)
   and from the ambulance tier
2. Keep hospitals offering at least one of them, or every hospital if none does
3. Route incident -> hospital, add hazard delay, rank by the configured policy
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from ambulance_dispatch.domains.fleet.schemas import (
    AmbulanceTier, HospitalRecord, Severity, TriageType,
)
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from ambulance_dispatch.domains.routing.hazards import HazardAdvisor
from ambulance_dispatch.domains.routing.providers import RoutingProvider
from .schemas import HospitalChoice, HospitalRankingPolicy

logger = logging.getLogger(__name__)


TRIAGE_CAPABILITIES: Dict[TriageType, FrozenSet[str]] = {
    TriageType.STEMI: frozenset({"PCI"}),
    TriageType.STROKE: frozenset({"STROKE", "NEURO", "CT"}),
    TriageType.TRAUMA: frozenset({"TRAUMA"}),
    TriageType.BURNS: frozenset({"BURNS"}),
    TriageType.PEDIATRIC: frozenset({"PEDIATRIC"}),
    TriageType.GENERAL: frozenset(),
}

TIER_CAPABILITIES: Dict[AmbulanceTier, FrozenSet[str]] = {
    AmbulanceTier.RRV: frozenset(),
    AmbulanceTier.BLS: frozenset(),
    AmbulanceTier.ALS: frozenset({"PCI", "TRAUMA", "STROKE"}),
    AmbulanceTier.CCT: frozenset({"PCI", "TRAUMA", "NEURO", "BURNS"}),
}

# Weighted policy
LOAD_WEIGHT = 0.4
ETA_WEIGHT = 0.6
MAX_ETA_SECONDS = 3600
DEFAULT_LOAD = 50


def required_capabilities(
    severity: Severity,
    required_tier: Optional[AmbulanceTier] = None,
    triage: Optional[TriageType] = None,
) -> Set[str]:
    required: Set[str] = set()
    if severity == Severity.HIGH and triage is not None:
        required |= TRIAGE_CAPABILITIES.get(triage, frozenset())
    if required_tier is not None:
        required |= TIER_CAPABILITIES.get(required_tier, frozenset())
    return required


def filter_by_capabilities(hospitals: Iterable[HospitalRecord], required: Set[str]) -> List[HospitalRecord]:
    """
    Hospitals offering at least one required capability

    Falls back to every hospital when nothing matches, so a patient always
    has somewhere to go.
    """
    hospitals = list(hospitals)
    if not required:
        return hospitals

    matching = [
        h for h in hospitals
        if required & {c.upper() for c in h.capabilities}
    ]
    if not matching:
        logger.info(f"No hospital offers any of {sorted(required)}, considering all {len(hospitals)}")
        return hospitals
    return matching


def weighted_score(load: Optional[int], eta_s: int) -> float:
    load_pct = DEFAULT_LOAD if load is None else load
    load_score = 1 - load_pct / 100
    eta_score = 1 - min(eta_s / MAX_ETA_SECONDS, 1)
    return LOAD_WEIGHT * load_score + ETA_WEIGHT * eta_score


class DestinationSelector:

    def __init__(
        self,
        router: RoutingProvider,
        hazard_advisor: HazardAdvisor,
        policy: HospitalRankingPolicy = HospitalRankingPolicy.DISTANCE,
    ) -> None:
        self._router = router
        self._hazard_advisor = hazard_advisor
        self._policy = policy

    @property
    def policy(self) -> HospitalRankingPolicy:
        return self._policy

    async def _route_to(self, origin: Coordinates, hospital: HospitalRecord) -> HospitalChoice:
        route = await self._router.get_route(origin, hospital.location)
        route = await self._hazard_advisor.apply_penalty(route)
        return HospitalChoice(hospital=hospital, route=route)

    def _order(self, choices: List[HospitalChoice]) -> List[HospitalChoice]:
        if self._policy == HospitalRankingPolicy.WEIGHTED:
            scored = [
                HospitalChoice(
                    hospital=c.hospital,
                    route=c.route,
                    score=weighted_score(c.hospital.load, c.eta_s),
                )
                for c in choices
            ]
            return sorted(scored, key=lambda c: (-c.score, c.distance_m, c.hospital_id))
        return sorted(choices, key=lambda c: (c.distance_m, c.eta_s, c.hospital_id))

    async def rank(
        self,
        incident_location: Coordinates,
        hospitals: Iterable[HospitalRecord],
        severity: Severity = Severity.LOW,
        required_tier: Optional[AmbulanceTier] = None,
        triage: Optional[TriageType] = None,
        limit: Optional[int] = None,
    ) -> List[HospitalChoice]:
        """
        Ranked hospitals for an incident, best first

        Args:
            incident_location: where the patient is picked up
            hospitals: hospitals to consider
            severity: only HIGH severity adds triage requirements
            required_tier: tier of the transporting ambulance
            triage: medical nature of the incident
            limit: keep only the first `limit` entries

        Returns:
            choices with hazard-penalised routes; empty only if `hospitals` is
        """
        required = required_capabilities(severity, required_tier, triage)
        eligible = filter_by_capabilities(hospitals, required)
        if not eligible:
            return []

        choices = await asyncio.gather(*[
            self._route_to(incident_location, h) for h in eligible
        ])
        ranked = self._order(list(choices))
        if limit is not None:
            ranked = ranked[:limit]
        return ranked

    async def select(
        self,
        incident_location: Coordinates,
        hospitals: Iterable[HospitalRecord],
        severity: Severity = Severity.LOW,
        required_tier: Optional[AmbulanceTier] = None,
        triage: Optional[TriageType] = None,
    ) -> Optional[HospitalChoice]:
        ranked = await self.rank(incident_location, hospitals, severity, required_tier, triage)
        if not ranked:
            logger.warning(
                f"No hospital available for ({incident_location.lat},{incident_location.lng})"
            )
            return None

        best = ranked[0]
        logger.info(
            f"Selected hospital {best.hospital.name} (id={best.hospital_id}) "
            f"policy={self._policy.value} distance={best.distance_m:.0f}m eta={best.eta_s}s"
        )
        return best
