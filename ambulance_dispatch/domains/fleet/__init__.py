"""
Fleet records and storage

Ambulances, hospitals, incidents and hazards as seen by the dispatch core.
"""

from .schemas import (
    AmbulanceTier,
    AmbulanceStatus,
    Severity,
    TriageType,
    IncidentStatus,
    AmbulanceRecord,
    HospitalRecord,
    IncidentRecord,
    AmbulanceUpdate,
    IncidentUpdate,
)
from .store import DispatchStore, InMemoryDispatchStore
from .repository import SqlDispatchStore

__all__ = [
    "AmbulanceTier",
    "AmbulanceStatus",
    "Severity",
    "TriageType",
    "IncidentStatus",
    "AmbulanceRecord",
    "HospitalRecord",
    "IncidentRecord",
    "AmbulanceUpdate",
    "IncidentUpdate",
    "DispatchStore",
    "InMemoryDispatchStore",
    "SqlDispatchStore",
]
