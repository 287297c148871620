from __future__ import annotations

import logging
from typing import Dict, List

from handoff_ai.schemas.patient import PatientRecord
from handoff_ai.services.vitals import (
    DIASTOLIC_HIGH,
    DIASTOLIC_LOW,
    PAIN_SEVERE,
    SYSTOLIC_HIGH,
    SYSTOLIC_LOW,
    fmt_number,
    heart_rate_label,
    oxygen_label,
    temperature_label,
)

logger = logging.getLogger(__name__)


def build_alerts(patient: PatientRecord) -> List[str]:
    """Alert sentences for the alert-worthy subset of thresholds.

    Conditions are independent; several may fire for one snapshot.
    """
    v = patient.vitals
    name = patient.name
    alerts: List[str] = []

    if v.pain_level is not None and v.pain_level >= PAIN_SEVERE:
        alerts.append(
            f"Severe pain detected for {name} ({v.pain_level}/10). Immediate intervention recommended."
        )

    if v.temperature is not None:
        label = temperature_label(v.temperature)
        temp = fmt_number(v.temperature)
        if label == "Fever":
            alerts.append(
                f"Fever detected for {name} ({temp}°F). Consider antipyretics and infection workup."
            )
        elif label == "Hypothermia":
            alerts.append(
                f"Hypothermia detected for {name} ({temp}°F). Warming measures needed, assess circulation."
            )

    if v.blood_pressure is not None:
        bp = v.blood_pressure
        reading = f"{bp.systolic}/{bp.diastolic} mmHg"
        # high and low are checked separately; a wide pulse pressure can raise both
        if bp.systolic > SYSTOLIC_HIGH or bp.diastolic > DIASTOLIC_HIGH:
            alerts.append(
                f"High blood pressure detected for {name} ({reading}). Monitor closely, consider antihypertensives."
            )
        if bp.systolic < SYSTOLIC_LOW or bp.diastolic < DIASTOLIC_LOW:
            alerts.append(
                f"Low blood pressure detected for {name} ({reading}). Assess fluid status, consider IV fluids."
            )

    if v.heart_rate is not None:
        label = heart_rate_label(v.heart_rate)
        if label == "Tachycardia":
            alerts.append(
                f"Tachycardia detected for {name} ({v.heart_rate} bpm). "
                "Assess for causes (pain, fever, anxiety, dehydration)."
            )
        elif label == "Bradycardia":
            alerts.append(
                f"Bradycardia detected for {name} ({v.heart_rate} bpm). Monitor for symptoms, assess medications."
            )

    if v.oxygen_saturation is not None and oxygen_label(v.oxygen_saturation):
        alerts.append(
            f"Low oxygen saturation detected for {name} ({fmt_number(v.oxygen_saturation)}%). "
            "Consider oxygen therapy, assess respiratory status."
        )

    return alerts


class AlertMonitor:
    """Watches one session's patient and reports a vitals snapshot once.

    Only the latest fingerprint per patient is kept, so a value that moves
    away and later comes back is reported again.
    """

    def __init__(self) -> None:
        self._last: Dict[str, str] = {}

    def on_vitals_changed(self, patient: PatientRecord) -> List[str]:
        fingerprint = patient.vitals.fingerprint()
        if self._last.get(patient.id) == fingerprint:
            return []
        self._last[patient.id] = fingerprint
        alerts = build_alerts(patient)
        if alerts:
            logger.info("raised %d vitals alert(s) for patient %s", len(alerts), patient.id)
        return alerts

    def reset(self) -> None:
        self._last.clear()
