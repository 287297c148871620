from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from handoff_ai import config
from handoff_ai.db.session import get_session
from handoff_ai.runtime.registry import SessionRegistry, get_registry
from handoff_ai.schemas.patient import PatientRecord, PatientView, VitalsSnapshot, VitalsUpdateOut
from handoff_ai.services.repo import Repo

router = APIRouter(prefix="/patients", tags=["patients"])

TENANT_ID = config.TENANT_ID


def _view(p: PatientRecord) -> PatientView:
    return PatientView(id=p.id, name=p.name, room=p.room, risk_level=p.risk_level, acuity_level=p.acuity_level)


@router.get("", response_model=List[PatientView])
async def list_or_search_patients(
    query: Optional[str] = Query(None),
    limit: int = 50,
    session: AsyncSession = Depends(get_session),
):
    repo = Repo(lambda: session)
    patients = await repo.list_patients(TENANT_ID, name_query=query, limit=limit)
    return [_view(p) for p in patients]


@router.post("", response_model=PatientRecord, status_code=201)
async def create_patient(
    payload: PatientRecord,
    session: AsyncSession = Depends(get_session),
):
    repo = Repo(lambda: session)
    if await repo.get_patient(TENANT_ID, payload.id) is not None:
        raise HTTPException(status_code=409, detail=f"patient {payload.id} already exists")
    return await repo.create_patient(TENANT_ID, payload)


@router.get("/{patient_id}", response_model=PatientRecord)
async def get_patient(
    patient_id: str,
    session: AsyncSession = Depends(get_session),
):
    repo = Repo(lambda: session)
    patient = await repo.get_patient(TENANT_ID, patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="patient not found")
    return patient


@router.put("/{patient_id}", response_model=PatientRecord)
async def replace_patient(
    patient_id: str,
    payload: PatientRecord,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    if payload.id != patient_id:
        raise HTTPException(status_code=422, detail="patient id in body does not match the URL")
    repo = Repo(lambda: session)
    updated = await repo.update_patient(TENANT_ID, payload)
    if updated is None:
        raise HTTPException(status_code=404, detail="patient not found")
    registry.notify_patient_updated(updated)
    return updated


@router.put("/{patient_id}/vitals", response_model=VitalsUpdateOut)
async def update_vitals(
    patient_id: str,
    payload: VitalsSnapshot,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    """Record new measurements and push proactive alerts to open assistant sessions."""
    repo = Repo(lambda: session)
    updated = await repo.update_vitals(TENANT_ID, patient_id, payload)
    if updated is None:
        raise HTTPException(status_code=404, detail="patient not found")
    alerts = registry.notify_patient_updated(updated)
    await repo.audit(
        TENANT_ID,
        "patient.vitals",
        "patient",
        patient_id,
        {"fields": sorted(payload.model_dump(exclude_unset=True)), "alerts": len(alerts)},
    )
    return VitalsUpdateOut(patient=updated, alerts=alerts)


@router.delete("/{patient_id}", status_code=204)
async def delete_patient(
    patient_id: str,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    repo = Repo(lambda: session)
    if not await repo.delete_patient(TENANT_ID, patient_id):
        raise HTTPException(status_code=404, detail="patient not found")
    for s in registry.sessions_for(patient_id):
        s.close()
    return Response(status_code=204)
