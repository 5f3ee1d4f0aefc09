"""
Lifecycle events

Each event serialises to a JSON object whose `type` field names its kind;
dispatcher sessions receive them through the websocket bus.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field

from ambulance_dispatch.domains.fleet.schemas import AmbulanceStatus
from .schemas import LifecyclePhase


class AmbulanceUpdateEvent(BaseModel):
    """Position and status of the ambulance bound to an incident"""
    type: Literal["AMBULANCE_UPDATE"] = "AMBULANCE_UPDATE"
    incident_id: str
    ambulance_id: int
    lat: float
    lng: float
    heading: float = Field(0.0, ge=0, lt=360)
    status: AmbulanceStatus
    phase: LifecyclePhase
    route: Optional[dict[str, Any]] = Field(None, description="GeoJSON LineString, sent on phase entry")
    eta_seconds: Optional[int] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class HospitalSelectedEvent(BaseModel):
    type: Literal["HOSPITAL_SELECTED"] = "HOSPITAL_SELECTED"
    incident_id: str
    ambulance_id: int
    hospital_id: int
    hospital_name: str
    lat: float
    lng: float
    eta_seconds: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SimulationCompleteEvent(BaseModel):
    type: Literal["SIMULATION_COMPLETE"] = "SIMULATION_COMPLETE"
    incident_id: str
    ambulance_id: int
    hospital_id: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SimulationCancelledEvent(BaseModel):
    type: Literal["SIMULATION_CANCELLED"] = "SIMULATION_CANCELLED"
    incident_id: str
    ambulance_id: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SimulationAbortedEvent(BaseModel):
    """Lifecycle ended early without reaching a hospital"""
    type: Literal["SIMULATION_ABORTED"] = "SIMULATION_ABORTED"
    incident_id: str
    ambulance_id: int
    reason: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


DispatchEvent = Union[
    AmbulanceUpdateEvent,
    HospitalSelectedEvent,
    SimulationCompleteEvent,
    SimulationCancelledEvent,
    SimulationAbortedEvent,
]


class EventBus(Protocol):
    async def publish(self, event: DispatchEvent) -> None:
        """Fire-and-forget delivery to current subscribers"""
        ...
