# handoff_ai/db/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel

from handoff_ai.schemas.chat import utcnow


def new_id() -> str:
    return uuid.uuid4().hex


class TimeStamped(SQLModel):
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class PatientBase(SQLModel):
    tenant_id: str = Field(index=True, nullable=False, description="Multi-tenant isolation key")
    # duplicated out of record_json for name search
    name: str = Field(nullable=False)
    record_json: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="PatientRecord as camelCase JSON (vitals, medications, allergies ...)",
    )


class Patient(PatientBase, TimeStamped, table=True):
    """One row per patient; the clinical snapshot is opaque JSON to the database."""
    __tablename__ = "patient"

    id: str = Field(default_factory=new_id, primary_key=True, description="Caller-supplied id or UUID hex")


class AuditLogBase(SQLModel):
    tenant_id: str = Field(nullable=False)
    action: str = Field(index=True, description="e.g. assistant.turn, patient.vitals")
    resource_type: str = Field(description="patient | session")
    resource_id: str = Field(description="Patient id or assistant session id")
    meta_json: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=Column(JSON, nullable=True), description="Topic, entities, alert counts ..."
    )
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


class AuditLog(AuditLogBase, table=True):
    """Append-only record of assistant turns and vitals updates."""
    __tablename__ = "audit_log"

    id: str = Field(default_factory=new_id, primary_key=True, description="UUID hex")


Index("ix_patient_tenant_name", Patient.__table__.c.tenant_id, Patient.__table__.c.name)
Index(
    "ix_audit_tenant_resource_time",
    AuditLog.__table__.c.tenant_id,
    AuditLog.__table__.c.resource_id,
    AuditLog.__table__.c.created_at,
)
