"""
Incident lifecycle

Moves the assigned ambulance through OUTBOUND, ON_SCENE, DECISION, INBOUND
and COMPLETE, writing its position back to storage and publishing events on
every tick and phase change.
"""

from .schemas import (
    LifecyclePhase,
    LifecycleConfig,
    LifecycleState,
    LifecycleStatusResponse,
    ActiveLifecyclesResponse,
    CancelLifecycleResponse,
)
from .events import (
    AmbulanceUpdateEvent,
    HospitalSelectedEvent,
    SimulationCompleteEvent,
    SimulationCancelledEvent,
    SimulationAbortedEvent,
    DispatchEvent,
    EventBus,
)
from .coordinator import LifecycleCoordinator
from .router import router as simulation_router

__all__ = [
    "LifecyclePhase",
    "LifecycleConfig",
    "LifecycleState",
    "LifecycleStatusResponse",
    "ActiveLifecyclesResponse",
    "CancelLifecycleResponse",
    "AmbulanceUpdateEvent",
    "HospitalSelectedEvent",
    "SimulationCompleteEvent",
    "SimulationCancelledEvent",
    "SimulationAbortedEvent",
    "DispatchEvent",
    "EventBus",
    "LifecycleCoordinator",
    "simulation_router",
]
