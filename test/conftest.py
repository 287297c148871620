# test/conftest.py
import pytest

from handoff_ai.schemas.patient import PatientRecord


def build_patient(**overrides) -> PatientRecord:
    """Critical, high-acuity post-op patient with a full vitals snapshot."""
    data = {
        "id": "p-001",
        "name": "Maria Lopez",
        "room": "412B",
        "primaryDiagnosis": "Post-op hip replacement",
        "riskLevel": "critical",
        "acuityLevel": 4,
        "allergies": ["Penicillin"],
        "age": 72,
        "gender": "Female",
        "vitals": {
            "temperature": 103,
            "bloodPressure": {"systolic": 150, "diastolic": 95},
            "heartRate": 110,
            "respiratoryRate": 26,
            "oxygenSaturation": 92,
            "painLevel": 8,
        },
        "medications": [
            {"name": "Morphine", "dosage": "2 mg", "route": "IV", "frequency": "q4h PRN",
             "indication": "Pain", "nextDue": "14:00", "lastGiven": "10:00"},
            {"name": "Aspirin", "dosage": "81 mg", "route": "PO", "frequency": "daily"},
            {"name": "Metoprolol", "dosage": "25 mg", "route": "PO", "status": "held"},
        ],
        "pain": {"location": "Right hip", "quality": "Sharp", "duration": "2 days"},
    }
    data.update(overrides)
    return PatientRecord.model_validate(data)


def build_stable_patient(**overrides) -> PatientRecord:
    """Low-risk patient with normal vitals, no allergies and no medications."""
    data = {
        "id": "p-002",
        "name": "James Park",
        "room": "210",
        "primaryDiagnosis": "Pneumonia",
        "riskLevel": "low",
        "acuityLevel": 2,
        "vitals": {
            "temperature": 98.6,
            "bloodPressure": {"systolic": 120, "diastolic": 80},
            "heartRate": 72,
            "respiratoryRate": 16,
            "oxygenSaturation": 98,
            "painLevel": 0,
        },
    }
    data.update(overrides)
    return PatientRecord.model_validate(data)


@pytest.fixture()
def patient() -> PatientRecord:
    return build_patient()


@pytest.fixture()
def stable_patient() -> PatientRecord:
    return build_stable_patient()


@pytest.fixture()
def make_patient():
    return build_patient


@pytest.fixture()
def make_stable_patient():
    return build_stable_patient
