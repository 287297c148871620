from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RiskLevel = Literal["low", "medium", "high", "critical"]
MedicationStatus = Literal["active", "given", "held", "discontinued"]


class CamelModel(BaseModel):
    """snake_case attributes, camelCase on the wire; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BloodPressure(CamelModel):
    systolic: int
    diastolic: int


class VitalsSnapshot(CamelModel):
    # every field may be missing: "not recorded", never zero
    temperature: Optional[float] = None
    blood_pressure: Optional[BloodPressure] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    oxygen_saturation: Optional[float] = None
    pain_level: Optional[int] = Field(default=None, ge=0, le=10)
    weight: Optional[float] = None
    height: Optional[float] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())

    def fingerprint(self) -> str:
        """Stable identity of the measured values, used for alert de-duplication."""
        return self.model_dump_json(exclude_none=True)


class Medication(CamelModel):
    name: str
    dosage: str = ""
    route: str = ""
    frequency: str = ""
    status: MedicationStatus = "active"
    indication: str = ""
    next_due: Optional[str] = None
    last_given: Optional[str] = None


class PainDetails(CamelModel):
    location: Optional[str] = None
    quality: Optional[str] = None
    duration: Optional[str] = None
    aggravating_factors: Optional[str] = None
    relieving_factors: Optional[str] = None


class PatientRecord(CamelModel):
    """Read-only patient snapshot handed to the assistant by the patient store."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    room: str
    primary_diagnosis: Optional[str] = None
    risk_level: RiskLevel = "low"
    acuity_level: int = Field(default=1, ge=1, le=5)
    allergies: List[str] = Field(default_factory=list)
    vitals: VitalsSnapshot = Field(default_factory=VitalsSnapshot)
    medications: List[Medication] = Field(default_factory=list)
    age: Optional[int] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    pain: Optional[PainDetails] = None

    def active_medications(self) -> List[Medication]:
        return [m for m in self.medications if m.status == "active"]

    def held_medications(self) -> List[Medication]:
        return [m for m in self.medications if m.status == "held"]


class PatientView(CamelModel):
    id: str
    name: str
    room: str
    risk_level: RiskLevel
    acuity_level: int


class VitalsUpdateOut(CamelModel):
    patient: PatientRecord
    alerts: List[str] = Field(default_factory=list)
