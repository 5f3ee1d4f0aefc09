"""
SQLAlchemy-backed DispatchStore

One short-lived session per call; each call commits on its own.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ambulance_dispatch.domains.routing.schemas import Hazard
from . import models
from .schemas import (
    AmbulanceRecord, AmbulanceStatus, AmbulanceUpdate,
    HospitalRecord, IncidentRecord, IncidentUpdate,
)

logger = logging.getLogger(__name__)


def hazard_from_row(row: models.Hazard) -> Hazard:
    return Hazard(
        id=row.id,
        hazard_type=row.hazard_type,
        min_lat=row.min_lat,
        max_lat=row.max_lat,
        min_lng=row.min_lng,
        max_lng=row.max_lng,
        active=row.active,
        description=row.description,
    )


class SqlDispatchStore:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_ambulance(self, ambulance_id: int) -> Optional[AmbulanceRecord]:
        async with self._session_factory() as db:
            row = await db.get(models.Ambulance, ambulance_id)
            return AmbulanceRecord.model_validate(row) if row else None

    async def update_ambulance(
        self,
        ambulance_id: int,
        changes: AmbulanceUpdate,
        expected_status: Optional[AmbulanceStatus] = None,
    ) -> Optional[AmbulanceRecord]:
        values = changes.model_dump(exclude_unset=True)

        stmt = update(models.Ambulance).where(models.Ambulance.id == ambulance_id)
        if expected_status is not None:
            # compare-and-set: only one concurrent claim can match
            stmt = stmt.where(models.Ambulance.status == expected_status)
        stmt = stmt.values(**values).returning(models.Ambulance)

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            row = result.scalar_one_or_none()
            record = AmbulanceRecord.model_validate(row) if row else None
            await db.commit()

        if record is None and expected_status is not None:
            logger.info(f"Ambulance {ambulance_id} is no longer {expected_status.value}, update skipped")
        return record

    async def list_ambulances(self) -> List[AmbulanceRecord]:
        async with self._session_factory() as db:
            result = await db.execute(select(models.Ambulance).order_by(models.Ambulance.id))
            return [AmbulanceRecord.model_validate(r) for r in result.scalars().all()]

    async def list_idle_ambulances(self) -> List[AmbulanceRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(models.Ambulance)
                .where(models.Ambulance.status == AmbulanceStatus.IDLE)
                .order_by(models.Ambulance.id)
            )
            return [AmbulanceRecord.model_validate(r) for r in result.scalars().all()]

    async def get_hospital(self, hospital_id: int) -> Optional[HospitalRecord]:
        async with self._session_factory() as db:
            row = await db.get(models.Hospital, hospital_id)
            return HospitalRecord.model_validate(row) if row else None

    async def list_hospitals(self) -> List[HospitalRecord]:
        async with self._session_factory() as db:
            result = await db.execute(select(models.Hospital).order_by(models.Hospital.id))
            return [HospitalRecord.model_validate(r) for r in result.scalars().all()]

    async def get_incident(self, incident_id: str) -> Optional[IncidentRecord]:
        async with self._session_factory() as db:
            row = await db.get(models.Incident, incident_id)
            return IncidentRecord.model_validate(row) if row else None

    async def update_incident(self, incident_id: str, changes: IncidentUpdate) -> Optional[IncidentRecord]:
        values = changes.model_dump(exclude_unset=True)

        async with self._session_factory() as db:
            row = await db.get(models.Incident, incident_id, with_for_update=True)
            if row is None:
                return None

            target = values.get("status")
            if target is not None and target != row.status and not row.status.can_transition_to(target):
                logger.warning(
                    f"Ignoring incident {incident_id} status change "
                    f"{row.status.value} -> {target.value}"
                )
                values.pop("status")

            for key, value in values.items():
                setattr(row, key, value)
            await db.flush()
            await db.refresh(row)
            record = IncidentRecord.model_validate(row)
            await db.commit()
            return record

    async def list_active_hazards(self) -> List[Hazard]:
        async with self._session_factory() as db:
            result = await db.execute(select(models.Hazard).where(models.Hazard.active.is_(True)))
            return [hazard_from_row(r) for r in result.scalars().all()]

    async def close(self) -> None:
        """Dispose the engine behind the session factory"""
        engine = self._session_factory.kw.get("bind")
        if engine is not None:
            await engine.dispose()
