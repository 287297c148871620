# handoff_ai/services/vitals.py
"""Threshold evaluation of a vitals snapshot.

Every classification here is a pure function of the snapshot value and the
fixed table below; bounds are exclusive (96.0 and 101.0 °F are normal).

    temperature       < 96  Hypothermia     > 101  Fever
    blood pressure    < 90/60 Hypotension   > 140/90 Hypertension
    heart rate        < 60  Bradycardia     > 100  Tachycardia
    respiratory rate  < 12  Bradypnea       > 24   Tachypnea
    oxygen saturation                       < 95   Low oxygen saturation
    pain              >= 7 severe, 4-6 moderate, 1-3 mild, 0 none
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from handoff_ai.schemas.patient import VitalsSnapshot

NO_VITALS_TEXT = "No recent vital signs recorded. Please obtain baseline measurements."

TEMP_LOW = 96
TEMP_HIGH = 101
SYSTOLIC_LOW, DIASTOLIC_LOW = 90, 60
SYSTOLIC_HIGH, DIASTOLIC_HIGH = 140, 90
HR_LOW, HR_HIGH = 60, 100
RR_LOW, RR_HIGH = 12, 24
SPO2_LOW = 95
PAIN_SEVERE, PAIN_MODERATE = 7, 4

VITAL_ORDER = (
    "temperature",
    "blood_pressure",
    "heart_rate",
    "respiratory_rate",
    "oxygen_saturation",
    "pain_level",
)


class FindingStatus(str, Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"


class PainTier(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


PAIN_TIER_TEXT = {
    PainTier.SEVERE: "severe, immediate intervention needed",
    PainTier.MODERATE: "moderate, management indicated",
    PainTier.MILD: "mild, monitor closely",
    PainTier.NONE: "no pain",
}


@dataclass(frozen=True)
class Finding:
    vital: str
    value: Any
    status: FindingStatus
    label: str
    advice: Optional[str] = None
    display: str = ""

    @property
    def abnormal(self) -> bool:
        return self.status is FindingStatus.ABNORMAL

    def line(self) -> str:
        if self.abnormal:
            return f"{self.label}: {self.display}. Suggest: {self.advice}"
        return f"{self.label}: {self.display} ({self.advice or 'Normal'})"


def fmt_number(value: Any) -> str:
    """Render 103.0 as '103' and 98.6 as '98.6'."""
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def pain_tier(level: int) -> PainTier:
    if level >= PAIN_SEVERE:
        return PainTier.SEVERE
    if level >= PAIN_MODERATE:
        return PainTier.MODERATE
    if level > 0:
        return PainTier.MILD
    return PainTier.NONE


def temperature_label(temp: float) -> Optional[str]:
    if temp > TEMP_HIGH:
        return "Fever"
    if temp < TEMP_LOW:
        return "Hypothermia"
    return None


def blood_pressure_label(systolic: int, diastolic: int) -> Optional[str]:
    if systolic > SYSTOLIC_HIGH or diastolic > DIASTOLIC_HIGH:
        return "Hypertension"
    if systolic < SYSTOLIC_LOW or diastolic < DIASTOLIC_LOW:
        return "Hypotension"
    return None


def heart_rate_label(hr: int) -> Optional[str]:
    if hr > HR_HIGH:
        return "Tachycardia"
    if hr < HR_LOW:
        return "Bradycardia"
    return None


def respiratory_rate_label(rr: int) -> Optional[str]:
    if rr > RR_HIGH:
        return "Tachypnea"
    if rr < RR_LOW:
        return "Bradypnea"
    return None


def oxygen_label(spo2: float) -> Optional[str]:
    return "Low oxygen saturation" if spo2 < SPO2_LOW else None


_ADVICE = {
    "Fever": "Give antipyretics, monitor for infection, increase fluids, notify provider if persistent.",
    "Hypothermia": "Apply warming blankets, monitor for shivering, check for sepsis or exposure.",
    "Hypertension": (
        "Recheck BP, assess for headache or vision changes, review antihypertensive meds, "
        "notify provider if sustained."
    ),
    "Hypotension": (
        "Check for dizziness, increase fluids if allowed, lay patient flat, "
        "notify provider if symptomatic."
    ),
    "Tachycardia": "Assess for pain, fever, dehydration, anxiety, check ECG if new.",
    "Bradycardia": "Assess for dizziness, check medications (beta-blockers), monitor for syncope.",
    "Tachypnea": "Assess for respiratory distress, check oxygen, encourage deep breathing.",
    "Bradypnea": "Assess sedation, check for opioid use, stimulate patient, notify provider if <10.",
    "Low oxygen saturation": (
        "Apply oxygen if ordered, check airway, encourage coughing/deep breathing, "
        "notify provider if <92%."
    ),
    "Severe pain": "Administer prescribed analgesics, reassess in 30 min, notify provider if not relieved.",
    "Moderate pain": "Give pain meds as ordered, use non-pharmacological methods, reassess.",
}


def _binary(vital: str, value: Any, display: str, label: Optional[str], normal_label: str) -> Finding:
    if label is None:
        return Finding(vital, value, FindingStatus.NORMAL, normal_label, None, display)
    return Finding(vital, value, FindingStatus.ABNORMAL, label, _ADVICE[label], display)


def _pain_finding(level: int) -> Finding:
    tier = pain_tier(level)
    display = f"{level}/10"
    if tier is PainTier.SEVERE:
        return Finding("pain_level", level, FindingStatus.ABNORMAL, "Severe pain", _ADVICE["Severe pain"], display)
    if tier is PainTier.MODERATE:
        return Finding("pain_level", level, FindingStatus.ABNORMAL, "Moderate pain", _ADVICE["Moderate pain"], display)
    if tier is PainTier.MILD:
        return Finding("pain_level", level, FindingStatus.NORMAL, "Mild pain", "Monitor", display)
    return Finding("pain_level", level, FindingStatus.NORMAL, "Pain Level", "No pain", display)


def evaluate(vitals: VitalsSnapshot) -> List[Finding]:
    """Return one finding per recorded vital, in the fixed reporting order."""
    findings: List[Finding] = []

    if vitals.temperature is not None:
        t = vitals.temperature
        findings.append(_binary("temperature", t, f"{fmt_number(t)}°F", temperature_label(t), "Temperature"))

    if vitals.blood_pressure is not None:
        bp = vitals.blood_pressure
        findings.append(
            _binary(
                "blood_pressure",
                (bp.systolic, bp.diastolic),
                f"{bp.systolic}/{bp.diastolic} mmHg",
                blood_pressure_label(bp.systolic, bp.diastolic),
                "Blood Pressure",
            )
        )

    if vitals.heart_rate is not None:
        hr = vitals.heart_rate
        findings.append(_binary("heart_rate", hr, f"{hr} bpm", heart_rate_label(hr), "Heart Rate"))

    if vitals.respiratory_rate is not None:
        rr = vitals.respiratory_rate
        findings.append(
            _binary("respiratory_rate", rr, f"{rr}/min", respiratory_rate_label(rr), "Respiratory Rate")
        )

    if vitals.oxygen_saturation is not None:
        ox = vitals.oxygen_saturation
        findings.append(
            _binary("oxygen_saturation", ox, f"{fmt_number(ox)}%", oxygen_label(ox), "Oxygen Saturation")
        )

    if vitals.pain_level is not None:
        findings.append(_pain_finding(vitals.pain_level))

    return findings


def format_analysis(findings: List[Finding]) -> str:
    """Abnormal block first, normal block second, each in reporting order."""
    concerns = [f.line() for f in findings if f.abnormal]
    normal = [f.line() for f in findings if not f.abnormal]
    if not concerns and not normal:
        return NO_VITALS_TEXT

    blocks: List[str] = []
    if concerns:
        blocks.append("Abnormal findings & suggestions:\n" + "\n".join(concerns))
    if normal:
        blocks.append("Normal findings:\n" + "\n".join(normal))
    return "\n\n".join(blocks)


def monitoring_frequency(acuity_level: int) -> str:
    if acuity_level >= 4:
        return "every 1-2 hours"
    if acuity_level == 3:
        return "every 4 hours"
    return "every 6-8 hours"


# ---------------------------
# Focused single-vital readings
# ---------------------------

def describe_reading(vital: str, vitals: VitalsSnapshot, patient_name: str) -> str:
    """One sentence for one named vital, or an explicit 'not recorded' sentence."""
    if vital == "temperature":
        t = vitals.temperature
        if t is None:
            return f"No temperature recorded for {patient_name}."
        status = {
            "Fever": "This is considered a fever (abnormal).",
            "Hypothermia": "This is considered hypothermia (abnormal).",
        }.get(temperature_label(t) or "", "This is within the normal range.")
        return f"Current temperature: {fmt_number(t)}°F. {status}"

    if vital == "blood_pressure":
        bp = vitals.blood_pressure
        if bp is None:
            return f"No blood pressure recorded for {patient_name}."
        status = {
            "Hypertension": "This is considered high (hypertension, abnormal).",
            "Hypotension": "This is considered low (hypotension, abnormal).",
        }.get(blood_pressure_label(bp.systolic, bp.diastolic) or "", "This is within the normal range.")
        return f"Current blood pressure: {bp.systolic}/{bp.diastolic} mmHg. {status}"

    if vital == "heart_rate":
        hr = vitals.heart_rate
        if hr is None:
            return f"No heart rate recorded for {patient_name}."
        status = {
            "Tachycardia": "This is considered tachycardia (abnormal).",
            "Bradycardia": "This is considered bradycardia (abnormal).",
        }.get(heart_rate_label(hr) or "", "This is within the normal range.")
        return f"Current heart rate: {hr} bpm. {status}"

    if vital == "respiratory_rate":
        rr = vitals.respiratory_rate
        if rr is None:
            return f"No respiratory rate recorded for {patient_name}."
        status = {
            "Tachypnea": "This is considered tachypnea (abnormal).",
            "Bradypnea": "This is considered bradypnea (abnormal).",
        }.get(respiratory_rate_label(rr) or "", "This is within the normal range.")
        return f"Current respiratory rate: {rr}/min. {status}"

    if vital == "oxygen_saturation":
        ox = vitals.oxygen_saturation
        if ox is None:
            return f"No oxygen saturation recorded for {patient_name}."
        status = "This is considered low (abnormal)." if oxygen_label(ox) else "This is within the normal range."
        return f"Current oxygen saturation: {fmt_number(ox)}%. {status}"

    if vital == "pain_level":
        pain = vitals.pain_level
        if pain is None:
            return f"No pain level recorded for {patient_name}."
        return f"Current pain level: {pain}/10 ({PAIN_TIER_TEXT[pain_tier(pain)]})."

    if vital == "weight":
        if vitals.weight is None:
            return f"No weight recorded for {patient_name}."
        return f"Current weight: {fmt_number(vitals.weight)} kg."

    if vital == "height":
        if vitals.height is None:
            return f"No height recorded for {patient_name}."
        return f"Current height: {fmt_number(vitals.height)} cm."

    raise ValueError(f"unknown vital: {vital!r}")
