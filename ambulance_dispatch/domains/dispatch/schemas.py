"""
Dispatch data models
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ambulance_dispatch.domains.fleet.schemas import (
    AmbulanceRecord, AmbulanceTier, HospitalRecord, Severity, TriageType,
)
from ambulance_dispatch.domains.routing.schemas import RouteResult


class HospitalRankingPolicy(str, Enum):
    DISTANCE = "distance"    # nearest by road distance
    WEIGHTED = "weighted"    # 40% load, 60% ETA


@dataclass(frozen=True)
class AmbulanceCandidate:
    """An eligible ambulance with its route to the incident"""
    ambulance: AmbulanceRecord
    route: RouteResult

    @property
    def ambulance_id(self) -> int:
        return self.ambulance.id

    @property
    def eta_s(self) -> int:
        return self.route.eta_s

    @property
    def distance_m(self) -> float:
        return self.route.distance_m

    def to_response(self) -> "CandidateResponse":
        return CandidateResponse(
            id=self.ambulance.id,
            callsign=self.ambulance.callsign,
            tier=self.ambulance.tier,
            lat=self.ambulance.lat,
            lng=self.ambulance.lng,
            hospital_id=self.ambulance.hospital_id,
            eta_seconds=self.route.eta_s,
            distance_meters=self.route.distance_m,
        )


@dataclass(frozen=True)
class HospitalChoice:
    """A ranked hospital with its (hazard-penalised) route from the incident"""
    hospital: HospitalRecord
    route: RouteResult
    score: Optional[float] = None

    @property
    def hospital_id(self) -> int:
        return self.hospital.id

    @property
    def eta_s(self) -> int:
        return self.route.eta_s

    @property
    def distance_m(self) -> float:
        return self.route.distance_m

    def to_response(self) -> "HospitalChoiceResponse":
        return HospitalChoiceResponse(
            id=self.hospital.id,
            name=self.hospital.name,
            lat=self.hospital.lat,
            lng=self.hospital.lng,
            capabilities=self.hospital.capabilities,
            distance_meters=self.route.distance_m,
            eta_seconds=self.route.eta_s,
            hazard_penalty_seconds=self.route.hazard_penalty_s,
            score=self.score,
        )


# ============================================================================
# API request/response models
# ============================================================================

class DispatchRequest(BaseModel):
    incident_id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    required_tier: Optional[AmbulanceTier] = Field(None, description="Minimum ambulance tier")
    severity: Severity = Severity.LOW
    triage: Optional[TriageType] = None


class DispatchResult(BaseModel):
    success: bool
    message: str
    ambulance_id: Optional[int] = None
    ambulance_callsign: Optional[str] = None
    ambulance_tier: Optional[AmbulanceTier] = None
    eta_seconds: Optional[int] = None
    distance_meters: Optional[float] = None
    route: Optional[dict[str, Any]] = Field(None, description="GeoJSON LineString")


class CandidateResponse(BaseModel):
    id: int
    callsign: str
    tier: AmbulanceTier
    lat: float
    lng: float
    hospital_id: Optional[int]
    eta_seconds: int
    distance_meters: float


class HospitalChoiceResponse(BaseModel):
    id: int
    name: str
    lat: float
    lng: float
    capabilities: list[str]
    distance_meters: float
    eta_seconds: int
    hazard_penalty_seconds: int = 0
    score: Optional[float] = None
