"""
Storage interface consumed by the dispatch core, plus an in-memory implementation

Every call is individually atomic. The only conditional write is the
ambulance claim: update_ambulance(..., expected_status=IDLE) succeeds only if
the ambulance is still IDLE at the moment of the write.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from ambulance_dispatch.domains.routing.schemas import Hazard
from .schemas import (
    AmbulanceRecord, AmbulanceStatus, AmbulanceUpdate,
    HospitalRecord, IncidentRecord, IncidentUpdate,
)

logger = logging.getLogger(__name__)


class DispatchStore(Protocol):

    async def get_ambulance(self, ambulance_id: int) -> Optional[AmbulanceRecord]:
        ...

    async def update_ambulance(
        self,
        ambulance_id: int,
        changes: AmbulanceUpdate,
        expected_status: Optional[AmbulanceStatus] = None,
    ) -> Optional[AmbulanceRecord]:
        """
        Apply a partial update

        Returns:
            the updated record, or None if the ambulance does not exist or its
            status differs from `expected_status`
        """
        ...

    async def list_ambulances(self) -> List[AmbulanceRecord]:
        ...

    async def list_idle_ambulances(self) -> List[AmbulanceRecord]:
        ...

    async def get_hospital(self, hospital_id: int) -> Optional[HospitalRecord]:
        ...

    async def list_hospitals(self) -> List[HospitalRecord]:
        ...

    async def get_incident(self, incident_id: str) -> Optional[IncidentRecord]:
        ...

    async def update_incident(self, incident_id: str, changes: IncidentUpdate) -> Optional[IncidentRecord]:
        """
        Apply a partial update

        Returns:
            the updated record, or None if the incident does not exist
        """
        ...

    async def list_active_hazards(self) -> List[Hazard]:
        ...


class InMemoryDispatchStore:
    """
    Dict-backed store

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(
        self,
        ambulances: Iterable[AmbulanceRecord] = (),
        hospitals: Iterable[HospitalRecord] = (),
        incidents: Iterable[IncidentRecord] = (),
        hazards: Iterable[Hazard] = (),
    ) -> None:
        self._ambulances = {a.id: a.model_copy() for a in ambulances}
        self._hospitals = {h.id: h.model_copy(deep=True) for h in hospitals}
        self._incidents = {i.id: i.model_copy(deep=True) for i in incidents}
        self._hazards = {h.id: h for h in hazards}

    # ------------------------------------------------------------------ ambulances

    async def get_ambulance(self, ambulance_id: int) -> Optional[AmbulanceRecord]:
        ambulance = self._ambulances.get(ambulance_id)
        return ambulance.model_copy() if ambulance else None

    async def update_ambulance(
        self,
        ambulance_id: int,
        changes: AmbulanceUpdate,
        expected_status: Optional[AmbulanceStatus] = None,
    ) -> Optional[AmbulanceRecord]:
        current = self._ambulances.get(ambulance_id)
        if current is None:
            return None
        if expected_status is not None and current.status != expected_status:
            return None

        updated = current.model_copy(update=changes.model_dump(exclude_unset=True))
        self._ambulances[ambulance_id] = updated
        return updated.model_copy()

    async def list_ambulances(self) -> List[AmbulanceRecord]:
        return [a.model_copy() for a in self._ambulances.values()]

    async def list_idle_ambulances(self) -> List[AmbulanceRecord]:
        return [
            a.model_copy() for a in self._ambulances.values()
            if a.status == AmbulanceStatus.IDLE
        ]

    def add_ambulance(self, ambulance: AmbulanceRecord) -> None:
        self._ambulances[ambulance.id] = ambulance.model_copy()

    # ------------------------------------------------------------------ hospitals

    async def get_hospital(self, hospital_id: int) -> Optional[HospitalRecord]:
        hospital = self._hospitals.get(hospital_id)
        return hospital.model_copy(deep=True) if hospital else None

    async def list_hospitals(self) -> List[HospitalRecord]:
        return [h.model_copy(deep=True) for h in self._hospitals.values()]

    def add_hospital(self, hospital: HospitalRecord) -> None:
        self._hospitals[hospital.id] = hospital.model_copy(deep=True)

    # ------------------------------------------------------------------ incidents

    async def get_incident(self, incident_id: str) -> Optional[IncidentRecord]:
        incident = self._incidents.get(incident_id)
        return incident.model_copy(deep=True) if incident else None

    async def update_incident(self, incident_id: str, changes: IncidentUpdate) -> Optional[IncidentRecord]:
        current = self._incidents.get(incident_id)
        if current is None:
            return None

        data = changes.model_dump(exclude_unset=True)
        target = data.get("status")
        if target is not None and target != current.status and not current.status.can_transition_to(target):
            logger.warning(
                f"Ignoring incident {incident_id} status change "
                f"{current.status.value} -> {target.value}"
            )
            data.pop("status")

        data["updated_at"] = datetime.utcnow()
        updated = current.model_copy(update=data, deep=True)
        self._incidents[incident_id] = updated
        return updated.model_copy(deep=True)

    def add_incident(self, incident: IncidentRecord) -> None:
        self._incidents[incident.id] = incident.model_copy(deep=True)

    # ------------------------------------------------------------------ hazards

    async def list_active_hazards(self) -> List[Hazard]:
        return [h for h in self._hazards.values() if h.active]

    def add_hazard(self, hazard: Hazard) -> None:
        self._hazards[hazard.id] = hazard
