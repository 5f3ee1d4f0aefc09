"""
Fleet ORM models

Tables: ambulances, hospitals, incidents, hazards
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    ARRAY, JSON, Boolean, DateTime, Enum as SAEnum, Float, ForeignKey,
    Integer, String, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from ambulance_dispatch.core.database import Base
from .schemas import AmbulanceStatus, AmbulanceTier, IncidentStatus, Severity, TriageType


def _enum(enum_cls: type, name: str) -> SAEnum:
    return SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


class Hospital(Base):
    __tablename__ = "hospitals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    capabilities: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=list,
        comment="PCI/TRAUMA/STROKE/NEURO/BURNS/PEDIATRIC/GENERAL/CT",
    )
    load: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="0-100")


class Ambulance(Base):
    __tablename__ = "ambulances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    callsign: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    tier: Mapped[AmbulanceTier] = mapped_column(_enum(AmbulanceTier, "ambulance_tier"), nullable=False)
    status: Mapped[AmbulanceStatus] = mapped_column(
        _enum(AmbulanceStatus, "ambulance_status"),
        nullable=False,
        default=AmbulanceStatus.IDLE,
        index=True,
    )
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    hospital_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("hospitals.id"), nullable=True, comment="Home base"
    )


class Incident(Base):
    __tablename__ = "incidents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    severity: Mapped[Severity] = mapped_column(_enum(Severity, "incident_severity"), nullable=False)
    triage: Mapped[Optional[TriageType]] = mapped_column(_enum(TriageType, "triage_type"), nullable=True)
    status: Mapped[IncidentStatus] = mapped_column(
        _enum(IncidentStatus, "incident_status"),
        nullable=False,
        default=IncidentStatus.PENDING,
    )
    assigned_ambulance_id: Mapped[Optional[int]] = mapped_column(ForeignKey("ambulances.id"), nullable=True)
    destination_hospital_id: Mapped[Optional[int]] = mapped_column(ForeignKey("hospitals.id"), nullable=True)
    eta_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    route: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True, comment="GeoJSON LineString")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, onupdate=func.now(), nullable=True)


class Hazard(Base):
    __tablename__ = "hazards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hazard_type: Mapped[str] = mapped_column(String(50), nullable=False, comment="FLOOD/ACCIDENT/ROADBLOCK/...")
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    min_lat: Mapped[float] = mapped_column(Float, nullable=False)
    max_lat: Mapped[float] = mapped_column(Float, nullable=False)
    min_lng: Mapped[float] = mapped_column(Float, nullable=False)
    max_lng: Mapped[float] = mapped_column(Float, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
