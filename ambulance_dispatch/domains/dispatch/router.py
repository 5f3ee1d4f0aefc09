"""
Dispatch API routes

Prefix: /dispatch
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ambulance_dispatch.core.dependencies import get_container
from ambulance_dispatch.domains.fleet.schemas import AmbulanceTier, Severity, TriageType
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from .schemas import CandidateResponse, DispatchRequest, DispatchResult, HospitalChoiceResponse
from .service import DispatchService


router = APIRouter(prefix="/dispatch", tags=["dispatch"])


def get_dispatch_service(container=Depends(get_container)) -> DispatchService:
    return container.dispatch_service


@router.post("", response_model=DispatchResult)
async def dispatch_to_incident(
    request: DispatchRequest,
    service: DispatchService = Depends(get_dispatch_service),
) -> DispatchResult:
    """
    Dispatch the best available ambulance to an incident

    - **incident_id**: existing incident
    - **lat**/**lng**: incident location
    - **required_tier**: minimum tier RRV/BLS/ALS/CCT (optional)
    - **severity**: HIGH or LOW
    - **triage**: STEMI/Stroke/Trauma/Burns/Pediatric/General (optional)

    `success=false` means no ambulance was available; it is not an HTTP error.
    """
    return await service.dispatch_to_incident(request)


@router.get("/candidates", response_model=list[CandidateResponse])
async def get_candidates(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    required_tier: Optional[AmbulanceTier] = Query(None),
    service: DispatchService = Depends(get_dispatch_service),
) -> list[CandidateResponse]:
    """Idle ambulances ranked by ETA to the location"""
    candidates = await service.get_candidates(Coordinates(lat=lat, lng=lng), required_tier)
    return [c.to_response() for c in candidates]


@router.get("/hospitals", response_model=list[HospitalChoiceResponse])
async def get_top_hospitals(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    severity: Severity = Query(Severity.LOW),
    required_tier: Optional[AmbulanceTier] = Query(None),
    triage: Optional[TriageType] = Query(None),
    limit: int = Query(3, ge=1, le=20),
    service: DispatchService = Depends(get_dispatch_service),
) -> list[HospitalChoiceResponse]:
    """Best hospitals for a patient picked up at the location"""
    choices = await service.get_top_hospitals(
        Coordinates(lat=lat, lng=lng),
        severity=severity,
        required_tier=required_tier,
        triage=triage,
        limit=limit,
    )
    return [c.to_response() for c in choices]
