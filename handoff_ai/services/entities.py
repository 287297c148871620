from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Dict, Iterable, List, Optional, Tuple

from handoff_ai.schemas.patient import PatientRecord
from handoff_ai.services.vitals import describe_reading

# term -> canonical vital key used by the vitals evaluator
VITAL_TERMS: Dict[str, str] = {
    "temperature": "temperature",
    "temp": "temperature",
    "blood pressure": "blood_pressure",
    "bp": "blood_pressure",
    "heart rate": "heart_rate",
    "pulse": "heart_rate",
    "oxygen": "oxygen_saturation",
    "spo2": "oxygen_saturation",
    "saturation": "oxygen_saturation",
    "pain": "pain_level",
    "respiratory rate": "respiratory_rate",
    "resp rate": "respiratory_rate",
    "rr": "respiratory_rate",
    "weight": "weight",
    "height": "height",
}
SYMPTOM_TERMS = ("fever", "cough", "nausea", "vomiting", "diarrhea", "fatigue", "dizziness")
LAB_TERMS = ("wbc", "white blood cell", "hemoglobin", "creatinine", "potassium", "sodium")
DIAGNOSIS_TERMS = ("diabetes", "hypertension", "infection", "sepsis", "stroke")
PROCEDURE_TERMS = ("iv", "catheter", "surgery", "intubation", "dialysis")

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class EntityMatches:
    """Matched vocabulary per category; field order is the response precedence."""
    vitals: Tuple[str, ...] = ()
    symptoms: Tuple[str, ...] = ()
    labs: Tuple[str, ...] = ()
    diagnoses: Tuple[str, ...] = ()
    procedures: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    allergies: Tuple[str, ...] = ()

    def primary(self) -> Optional[Tuple[str, Tuple[str, ...]]]:
        for f in fields(self):
            terms = getattr(self, f.name)
            if terms:
                return f.name, terms
        return None

    def __bool__(self) -> bool:
        return self.primary() is not None


def _normalize(s: str) -> str:
    return (s or "").strip().lower()


def _matches(text: str, tokens: set[str], term: str) -> bool:
    term_tokens = _TOKEN_RE.findall(term)
    if not term_tokens:
        return False
    if len(term_tokens) == 1:
        return term_tokens[0] in tokens
    # multi-word terms match as a whole phrase
    return re.search(r"\b" + r"\s+".join(map(re.escape, term_tokens)) + r"\b", text) is not None


def _find(text: str, tokens: set[str], vocabulary: Iterable[str]) -> Tuple[str, ...]:
    found: List[str] = []
    for term in vocabulary:
        if term and term not in found and _matches(text, tokens, term):
            found.append(term)
    return tuple(found)


def extract(message: str, patient: PatientRecord) -> EntityMatches:
    """Scan a message against the fixed vocabularies and the patient's own lists."""
    if message is None:
        raise TypeError("message must be a string")
    text = _normalize(message)
    tokens = set(_TOKEN_RE.findall(text))

    medication_terms = [_normalize(m.name) for m in patient.medications]
    allergy_terms = [_normalize(a) for a in patient.allergies]

    return EntityMatches(
        vitals=_find(text, tokens, VITAL_TERMS),
        symptoms=_find(text, tokens, SYMPTOM_TERMS),
        labs=_find(text, tokens, LAB_TERMS),
        diagnoses=_find(text, tokens, DIAGNOSIS_TERMS),
        procedures=_find(text, tokens, PROCEDURE_TERMS),
        medications=_find(text, tokens, medication_terms),
        allergies=_find(text, tokens, allergy_terms),
    )


def vital_keys(terms: Iterable[str]) -> List[str]:
    """Distinct canonical vitals for matched terms, first mention first."""
    keys: List[str] = []
    for term in terms:
        key = VITAL_TERMS[term]
        if key not in keys:
            keys.append(key)
    return keys


_CATEGORY_TEMPLATES = {
    "symptoms": "Symptom(s) detected: {terms}. Please monitor and document appropriately.",
    "labs": "Lab(s) detected: {terms}. Please review latest results in the chart.",
    "diagnoses": "Diagnosis detected: {terms}. Refer to protocols for management.",
    "procedures": "Procedure(s) detected: {terms}. Ensure all safety and documentation protocols are followed.",
    "medications": "Medication(s) detected: {terms}. Review administration schedule and monitor for side effects.",
    "allergies": "Allergy detected: {terms}. Ensure strict avoidance and monitor for reactions.",
}


def describe_entities(matches: EntityMatches, patient: PatientRecord) -> Optional[str]:
    """Single response for the highest-precedence matched category."""
    primary = matches.primary()
    if primary is None:
        return None
    category, terms = primary
    if category == "vitals":
        return "\n".join(describe_reading(k, patient.vitals, patient.name) for k in vital_keys(terms))
    return _CATEGORY_TEMPLATES[category].format(terms=", ".join(terms))
