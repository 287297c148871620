# handoff_ai/services/repo.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from handoff_ai.db.models import AuditLog, Patient
from handoff_ai.schemas.chat import utcnow
from handoff_ai.schemas.patient import PatientRecord, VitalsSnapshot


def _dump(record: PatientRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def _load(row: Patient) -> PatientRecord:
    return PatientRecord.model_validate({**row.record_json, "id": row.id})


class Repo:
    """
    Patient store and audit trail, isolated per tenant.
    The assistant engine never talks to this class; API handlers load a
    PatientRecord here and hand the value to the session.

    Every method takes an optional ``session``:
      - omitted: the method opens its own session and commits (writes) or
        rolls back before closing it
      - given: the method only flushes; the caller owns the transaction

          async with repo.transaction() as s:
              await repo.update_vitals(..., session=s)
              await repo.audit(..., session=s)
              # any error -> full rollback
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session with an active transaction. Rollbacks on exception."""
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def _scope(self, session: Optional[AsyncSession], *, write: bool = False) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        own = self._session_factory()
        try:
            yield own
            if write:
                await own.commit()
        except Exception:
            if write:
                await own.rollback()
            raise
        finally:
            await own.close()

    # ---------------------------
    # Patients
    # ---------------------------
    async def _get_row(self, session: AsyncSession, tenant_id: str, patient_id: str) -> Optional[Patient]:
        stmt = select(Patient).where(Patient.tenant_id == tenant_id, Patient.id == patient_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def create_patient(
        self, tenant_id: str, record: PatientRecord, *, session: Optional[AsyncSession] = None
    ) -> PatientRecord:
        async with self._scope(session, write=True) as s:
            s.add(Patient(tenant_id=tenant_id, id=record.id, name=record.name, record_json=_dump(record)))
            await s.flush()
        return record

    async def get_patient(
        self, tenant_id: str, patient_id: str, *, session: Optional[AsyncSession] = None
    ) -> Optional[PatientRecord]:
        async with self._scope(session) as s:
            row = await self._get_row(s, tenant_id, patient_id)
            return _load(row) if row is not None else None

    async def list_patients(
        self,
        tenant_id: str,
        *,
        name_query: Optional[str] = None,
        limit: int = 50,
        session: Optional[AsyncSession] = None,
    ) -> list[PatientRecord]:
        """Patients of a tenant, newest first; optional ILIKE name filter."""
        stmt = select(Patient).where(Patient.tenant_id == tenant_id)
        if name_query:
            stmt = stmt.where(Patient.name.ilike(f"%{name_query}%"))
        stmt = stmt.order_by(Patient.created_at.desc()).limit(limit)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return [_load(row) for row in result.scalars().all()]

    async def update_patient(
        self, tenant_id: str, record: PatientRecord, *, session: Optional[AsyncSession] = None
    ) -> Optional[PatientRecord]:
        """Replace a stored record. Returns None when the patient does not exist."""
        async with self._scope(session, write=True) as s:
            row = await self._get_row(s, tenant_id, record.id)
            if row is None:
                return None
            row.name = record.name
            row.record_json = _dump(record)
            row.updated_at = utcnow()
            s.add(row)
            await s.flush()
        return record

    async def update_vitals(
        self,
        tenant_id: str,
        patient_id: str,
        vitals: VitalsSnapshot,
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[PatientRecord]:
        """Merge newly measured values into the stored snapshot; unset fields keep their value."""
        current = await self.get_patient(tenant_id, patient_id, session=session)
        if current is None:
            return None
        merged = VitalsSnapshot.model_validate(
            {**current.vitals.model_dump(), **vitals.model_dump(exclude_unset=True)}
        )
        return await self.update_patient(
            tenant_id, current.model_copy(update={"vitals": merged}), session=session
        )

    async def delete_patient(
        self, tenant_id: str, patient_id: str, *, session: Optional[AsyncSession] = None
    ) -> bool:
        async with self._scope(session, write=True) as s:
            row = await self._get_row(s, tenant_id, patient_id)
            if row is None:
                return False
            await s.delete(row)
            await s.flush()
        return True

    # ---------------------------
    # Audits
    # ---------------------------
    async def audit(
        self,
        tenant_id: str,
        action: str,
        resource_type: str,
        resource_id: str,
        meta_json: Optional[dict[str, Any]] = None,
        *,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """Append an audit entry, e.g. ("assistant.turn", "session", <id>)."""
        async with self._scope(session, write=True) as s:
            s.add(
                AuditLog(
                    tenant_id=tenant_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    meta_json=meta_json,
                )
            )
            await s.flush()

    async def list_audits(
        self,
        tenant_id: str,
        *,
        resource_id: Optional[str] = None,
        session: Optional[AsyncSession] = None,
    ) -> list[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.tenant_id == tenant_id)
        if resource_id is not None:
            stmt = stmt.where(AuditLog.resource_id == resource_id)
        async with self._scope(session) as s:
            result = await s.execute(stmt.order_by(AuditLog.created_at.asc()))
            return list(result.scalars().all())
