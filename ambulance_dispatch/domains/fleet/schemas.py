"""
Fleet, hospital and incident records

Plain pydantic records exchanged with the storage layer. Update models carry
only the fields that change (model_dump(exclude_unset=True)).
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ambulance_dispatch.domains.routing.geo_math import Coordinates


class AmbulanceTier(str, Enum):
    """Equipment level, ordered RRV < BLS < ALS < CCT"""
    RRV = "RRV"    # Rapid Response Vehicle
    BLS = "BLS"    # Basic Life Support
    ALS = "ALS"    # Advanced Life Support
    CCT = "CCT"    # Critical Care Transport

    @property
    def rank(self) -> int:
        return TIER_HIERARCHY[self]

    def satisfies(self, required: Optional["AmbulanceTier"]) -> bool:
        return required is None or self.rank >= required.rank


TIER_HIERARCHY: dict[AmbulanceTier, int] = {
    AmbulanceTier.RRV: 0,
    AmbulanceTier.BLS: 1,
    AmbulanceTier.ALS: 2,
    AmbulanceTier.CCT: 3,
}


class AmbulanceStatus(str, Enum):
    IDLE = "IDLE"
    EN_ROUTE = "EN_ROUTE"
    ON_SCENE = "ON_SCENE"
    TRANSPORTING = "TRANSPORTING"


class Severity(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"


class TriageType(str, Enum):
    """Medical nature of an incident"""
    STEMI = "STEMI"           # heart attack, needs PCI
    STROKE = "Stroke"
    TRAUMA = "Trauma"
    BURNS = "Burns"
    PEDIATRIC = "Pediatric"
    GENERAL = "General"

    @classmethod
    def _missing_(cls, value: Any) -> Optional["TriageType"]:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class IncidentStatus(str, Enum):
    PENDING = "PENDING"
    DISPATCHED = "DISPATCHED"
    EN_ROUTE = "EN_ROUTE"
    ON_SCENE = "ON_SCENE"
    TRANSPORTING = "TRANSPORTING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (IncidentStatus.COMPLETED, IncidentStatus.CANCELLED)

    def can_transition_to(self, target: "IncidentStatus") -> bool:
        """Forward-only progression; CANCELLED from any non-terminal state"""
        if self.is_terminal:
            return False
        if target == IncidentStatus.CANCELLED:
            return True
        return _INCIDENT_ORDER.index(target) >= _INCIDENT_ORDER.index(self)


_INCIDENT_ORDER = [
    IncidentStatus.PENDING,
    IncidentStatus.DISPATCHED,
    IncidentStatus.EN_ROUTE,
    IncidentStatus.ON_SCENE,
    IncidentStatus.TRANSPORTING,
    IncidentStatus.COMPLETED,
]


# ============================================================================
# Records
# ============================================================================

class AmbulanceRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    callsign: str
    tier: AmbulanceTier
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    hospital_id: Optional[int] = Field(None, description="Home base hospital")
    status: AmbulanceStatus = AmbulanceStatus.IDLE

    @property
    def location(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class HospitalRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    capabilities: list[str] = Field(default_factory=list)
    load: Optional[int] = Field(None, ge=0, le=100, description="Reported load percentage")

    @property
    def location(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class IncidentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    severity: Severity = Severity.LOW
    triage: Optional[TriageType] = None
    status: IncidentStatus = IncidentStatus.PENDING
    assigned_ambulance_id: Optional[int] = None
    destination_hospital_id: Optional[int] = None
    eta_seconds: Optional[int] = None
    route: Optional[dict[str, Any]] = Field(None, description="GeoJSON LineString")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def location(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


# ============================================================================
# Partial updates
# ============================================================================

class AmbulanceUpdate(BaseModel):
    status: Optional[AmbulanceStatus] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    hospital_id: Optional[int] = None


class IncidentUpdate(BaseModel):
    status: Optional[IncidentStatus] = None
    assigned_ambulance_id: Optional[int] = None
    destination_hospital_id: Optional[int] = None
    eta_seconds: Optional[int] = None
    route: Optional[dict[str, Any]] = None
