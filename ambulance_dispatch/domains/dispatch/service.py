"""
Dispatch service

Turns a dispatch request into an assigned ambulance and a running lifecycle
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from ambulance_dispatch.core.exceptions import IncidentClosedError, IncidentNotFoundError
from ambulance_dispatch.domains.fleet.schemas import (
    AmbulanceStatus, AmbulanceTier, AmbulanceUpdate, Severity, TriageType,
)
from ambulance_dispatch.domains.fleet.store import DispatchStore
from ambulance_dispatch.domains.lifecycle.schemas import LifecycleConfig
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from .candidate_selector import CandidateSelector
from .destination_selector import DestinationSelector
from .schemas import AmbulanceCandidate, DispatchRequest, DispatchResult, HospitalChoice

if TYPE_CHECKING:
    from ambulance_dispatch.domains.lifecycle.coordinator import LifecycleCoordinator

logger = logging.getLogger(__name__)


class DispatchService:

    def __init__(
        self,
        store: DispatchStore,
        candidate_selector: CandidateSelector,
        destination_selector: DestinationSelector,
        coordinator: "LifecycleCoordinator",
    ) -> None:
        self._store = store
        self._candidate_selector = candidate_selector
        self._destination_selector = destination_selector
        self._coordinator = coordinator

    async def dispatch_to_incident(self, request: DispatchRequest) -> DispatchResult:
        """
        Assign the best available ambulance to an incident

        Candidates are tried best first; a candidate claimed by a concurrent
        dispatch in the meantime is skipped.

        Raises:
            IncidentNotFoundError: the incident does not exist
            IncidentClosedError: the incident is already completed or cancelled
        """
        incident = await self._store.get_incident(request.incident_id)
        if incident is None:
            raise IncidentNotFoundError(request.incident_id)
        if incident.status.is_terminal:
            raise IncidentClosedError(request.incident_id, incident.status.value)

        if self._coordinator.is_active(request.incident_id):
            state = self._coordinator.lifecycle_status(request.incident_id)
            return DispatchResult(
                success=True,
                message=f"Incident {request.incident_id} already has an active dispatch",
                ambulance_id=state.ambulance_id if state else incident.assigned_ambulance_id,
            )

        location = Coordinates(lat=request.lat, lng=request.lng)
        fleet = await self._store.list_idle_ambulances()
        candidates = await self._candidate_selector.select(location, fleet, request.required_tier)
        if not candidates:
            tier = request.required_tier.value if request.required_tier else "any"
            return DispatchResult(
                success=False,
                message=f"No available ambulance (required tier: {tier})",
            )

        for candidate in candidates:
            claimed = await self._store.update_ambulance(
                candidate.ambulance_id,
                AmbulanceUpdate(status=AmbulanceStatus.EN_ROUTE),
                expected_status=AmbulanceStatus.IDLE,
            )
            if claimed is None:
                logger.info(f"Ambulance {candidate.ambulance.callsign} was claimed concurrently, trying next")
                continue
            return await self._assign(request, location, candidate)

        return DispatchResult(success=False, message="All candidate ambulances were claimed concurrently")

    async def _assign(
        self,
        request: DispatchRequest,
        location: Coordinates,
        candidate: AmbulanceCandidate,
    ) -> DispatchResult:
        ambulance = candidate.ambulance
        route = candidate.route

        # the coordinator records the assignment on the incident when it starts
        try:
            started = await self._coordinator.start_lifecycle(LifecycleConfig(
                incident_id=request.incident_id,
                ambulance_id=ambulance.id,
                ambulance_location=ambulance.location,
                incident_location=location,
                severity=request.severity,
                ambulance_tier=ambulance.tier,
                triage=request.triage,
                precomputed_route=route,
            ))
        except Exception:
            await self._release_claim(ambulance.id)
            raise

        if not started:
            # another request started this incident while we were claiming
            await self._release_claim(ambulance.id)
            state = self._coordinator.lifecycle_status(request.incident_id)
            return DispatchResult(
                success=True,
                message=f"Incident {request.incident_id} already has an active dispatch",
                ambulance_id=state.ambulance_id if state else None,
            )

        logger.info(
            f"Dispatched {ambulance.callsign} ({ambulance.tier.value}) to incident {request.incident_id}, "
            f"eta={route.eta_s}s distance={route.distance_m:.0f}m"
        )
        return DispatchResult(
            success=True,
            message=f"Ambulance {ambulance.callsign} dispatched, ETA {round(route.eta_s / 60)} min",
            ambulance_id=ambulance.id,
            ambulance_callsign=ambulance.callsign,
            ambulance_tier=ambulance.tier,
            eta_seconds=route.eta_s,
            distance_meters=route.distance_m,
            route=route.to_geojson(),
        )

    async def _release_claim(self, ambulance_id: int) -> None:
        await self._store.update_ambulance(
            ambulance_id,
            AmbulanceUpdate(status=AmbulanceStatus.IDLE),
            expected_status=AmbulanceStatus.EN_ROUTE,
        )

    async def get_candidates(
        self,
        location: Coordinates,
        required_tier: Optional[AmbulanceTier] = None,
    ) -> List[AmbulanceCandidate]:
        """Ranked idle ambulances for a location, without claiming any"""
        fleet = await self._store.list_ambulances()
        return await self._candidate_selector.select(location, fleet, required_tier)

    async def get_top_hospitals(
        self,
        location: Coordinates,
        severity: Severity = Severity.LOW,
        required_tier: Optional[AmbulanceTier] = None,
        triage: Optional[TriageType] = None,
        limit: int = 3,
    ) -> List[HospitalChoice]:
        hospitals = await self._store.list_hospitals()
        return await self._destination_selector.rank(
            location, hospitals, severity, required_tier, triage, limit=limit
        )
