"""
Incident lifecycle data models
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ambulance_dispatch.domains.fleet.schemas import AmbulanceTier, Severity, TriageType
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from ambulance_dispatch.domains.routing.schemas import RouteResult


class LifecyclePhase(str, Enum):
    OUTBOUND = "OUTBOUND"      # driving to the incident
    ON_SCENE = "ON_SCENE"      # dwelling at the incident
    DECISION = "DECISION"      # choosing a hospital
    INBOUND = "INBOUND"        # transporting to the hospital
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class LifecycleConfig:
    """Everything needed to start one incident lifecycle"""
    incident_id: str
    ambulance_id: int
    ambulance_location: Coordinates
    incident_location: Coordinates
    severity: Severity
    ambulance_tier: AmbulanceTier
    triage: Optional[TriageType] = None
    precomputed_route: Optional[RouteResult] = None


@dataclass
class LifecycleState:
    """
    Mutable progress of one incident lifecycle

    Owned by the lifecycle task; readers only ever see deep copies.
    """
    incident_id: str
    ambulance_id: int
    ambulance_tier: AmbulanceTier
    severity: Severity
    triage: Optional[TriageType]
    incident_location: Coordinates
    position: Coordinates
    phase: LifecyclePhase = LifecyclePhase.OUTBOUND
    progress: float = 0.0
    heading: float = 0.0
    phase_duration_s: float = 0.0
    route: Optional[RouteResult] = None
    destination_hospital_id: Optional[int] = None
    destination_location: Optional[Coordinates] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    phase_started_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_config(cls, config: LifecycleConfig) -> "LifecycleState":
        return cls(
            incident_id=config.incident_id,
            ambulance_id=config.ambulance_id,
            ambulance_tier=config.ambulance_tier,
            severity=config.severity,
            triage=config.triage,
            incident_location=config.incident_location,
            position=config.ambulance_location,
        )

    def enter(self, phase: LifecyclePhase) -> None:
        self.phase = phase
        self.progress = 0.0
        self.phase_started_at = datetime.utcnow()

    def to_response(self) -> "LifecycleStatusResponse":
        return LifecycleStatusResponse(
            incident_id=self.incident_id,
            ambulance_id=self.ambulance_id,
            phase=self.phase,
            progress=round(self.progress, 4),
            lat=self.position.lat,
            lng=self.position.lng,
            heading=self.heading,
            eta_seconds=self.route.eta_s if self.route else None,
            route=self.route.to_geojson() if self.route else None,
            destination_hospital_id=self.destination_hospital_id,
            started_at=self.started_at,
            phase_started_at=self.phase_started_at,
        )


# ============================================================================
# API response models
# ============================================================================

class LifecycleStatusResponse(BaseModel):
    incident_id: str
    ambulance_id: int
    phase: LifecyclePhase
    progress: float = Field(..., ge=0, le=1)
    lat: float
    lng: float
    heading: float
    eta_seconds: Optional[int] = None
    route: Optional[dict[str, Any]] = None
    destination_hospital_id: Optional[int] = None
    started_at: datetime
    phase_started_at: datetime


class ActiveLifecyclesResponse(BaseModel):
    count: int
    lifecycles: list[LifecycleStatusResponse]


class CancelLifecycleResponse(BaseModel):
    incident_id: str
    cancelled: bool
