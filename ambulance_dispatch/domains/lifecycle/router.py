"""
Lifecycle simulation API routes

Prefix: /simulation
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ambulance_dispatch.core.dependencies import get_container
from ambulance_dispatch.core.exceptions import LifecycleNotFoundError
from .coordinator import LifecycleCoordinator
from .schemas import ActiveLifecyclesResponse, CancelLifecycleResponse, LifecycleStatusResponse


router = APIRouter(prefix="/simulation", tags=["simulation"])


def get_coordinator(container=Depends(get_container)) -> LifecycleCoordinator:
    return container.coordinator


@router.get("/active", response_model=ActiveLifecyclesResponse)
async def list_active(
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> ActiveLifecyclesResponse:
    states = coordinator.active_lifecycles()
    return ActiveLifecyclesResponse(
        count=len(states),
        lifecycles=[s.to_response() for s in states],
    )


@router.get("/{incident_id}", response_model=LifecycleStatusResponse)
async def get_status(
    incident_id: str,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> LifecycleStatusResponse:
    state = coordinator.lifecycle_status(incident_id)
    if state is None:
        raise LifecycleNotFoundError(incident_id)
    return state.to_response()


@router.post("/{incident_id}/cancel", response_model=CancelLifecycleResponse)
async def cancel(
    incident_id: str,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> CancelLifecycleResponse:
    """
    Cancel an active lifecycle

    The ambulance returns to IDLE where it is and the incident is CANCELLED.
    """
    if not await coordinator.cancel_lifecycle(incident_id):
        raise LifecycleNotFoundError(incident_id)
    return CancelLifecycleResponse(incident_id=incident_id, cancelled=True)
