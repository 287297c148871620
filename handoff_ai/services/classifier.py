"""Ordered keyword rules that route a nurse's message to a response topic.

Rules are tried strictly in list order and the first match wins. There is no
scoring: a message that mentions both "pain" and "discharge" is a pain
question because the pain rule is evaluated first.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern

from handoff_ai.schemas.patient import PatientRecord
from handoff_ai.services.entities import VITAL_TERMS

logger = logging.getLogger(__name__)


class Topic(str, Enum):
    END_CONVERSATION = "end_conversation"
    VITALS = "vitals"
    MEDICATION = "medication"
    PAIN = "pain"
    CARE_PRIORITIES = "care_priorities"
    DISCHARGE = "discharge"
    ALLERGY = "allergy"
    ASSESSMENT = "assessment"
    PERSONAL_LOOKUP = "personal_lookup"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TopicRule:
    pattern: Pattern[str]
    topic: Topic
    field: Optional[str] = None


@dataclass(frozen=True)
class Classification:
    topic: Topic
    # only set for PERSONAL_LOOKUP
    field: Optional[str] = None


END_PHRASE_RE = re.compile(r"\b(thank you|thanks|end|bye|close)\b", re.I)


def _alternatives(terms) -> str:
    return "|".join(r"\b" + re.escape(t).replace(r"\ ", r"\s+") + r"\b" for t in terms)


# "pain" is a vital-sign entity but has its own topic further down the list
_VITAL_SIGN_TERMS = [t for t in VITAL_TERMS if t != "pain"]


def _default_rules() -> List[TopicRule]:
    ordered = [
        (END_PHRASE_RE.pattern, Topic.END_CONVERSATION, None),
        (r"vital|assessment|monitor|" + _alternatives(_VITAL_SIGN_TERMS), Topic.VITALS, None),
        (r"medication|\bmeds?\b|\bdrugs?\b", Topic.MEDICATION, None),
        (r"\bpain", Topic.PAIN, None),
        (r"priorit|intervention|care\s+plan|concern|important", Topic.CARE_PRIORITIES, None),
        (r"discharge|planning|\bhome\b|\bready\b", Topic.DISCHARGE, None),
        (r"allerg|safety|precaution", Topic.ALLERGY, None),
        (r"assess|\bexam|\bcheck", Topic.ASSESSMENT, None),
        (r"\bname\b", Topic.PERSONAL_LOOKUP, "name"),
        (r"\bgender\b|\bsex\b", Topic.PERSONAL_LOOKUP, "gender"),
        (r"\bage\b|\bhow\s+old\b", Topic.PERSONAL_LOOKUP, "age"),
        (r"marital\s+status|\bmarried\b", Topic.PERSONAL_LOOKUP, "marital_status"),
        (r"\broom\b", Topic.PERSONAL_LOOKUP, "room"),
        (r"diagnosis", Topic.PERSONAL_LOOKUP, "diagnosis"),
        (r"\brisk\b", Topic.PERSONAL_LOOKUP, "risk"),
        (r"acuity", Topic.PERSONAL_LOOKUP, "acuity"),
    ]
    return [TopicRule(re.compile(p, re.I), topic, field) for p, topic, field in ordered]


DEFAULT_RULES: List[TopicRule] = _default_rules()


def _medication_name_rule(patient: Optional[PatientRecord]) -> Optional[TopicRule]:
    names = [m.name.strip().lower() for m in patient.medications if m.name.strip()] if patient else []
    if not names:
        return None
    return TopicRule(re.compile(_alternatives(names), re.I), Topic.MEDICATION)


def is_end_phrase(message: str) -> bool:
    return END_PHRASE_RE.search(message or "") is not None


def classify(
    message: str,
    patient: Optional[PatientRecord] = None,
    rules: Optional[List[TopicRule]] = None,
) -> Classification:
    """Map a message to the first topic whose rule matches.

    When a patient is given, that patient's medication names count as
    medication keywords, tested right after the built-in medication rule.
    """
    if message is None:
        raise TypeError("message must be a string")
    text = message.strip().lower()

    ordered = list(rules if rules is not None else DEFAULT_RULES)
    med_rule = _medication_name_rule(patient)
    if med_rule is not None:
        idx = next((i for i, r in enumerate(ordered) if r.topic is Topic.MEDICATION), len(ordered))
        ordered.insert(idx + 1, med_rule)

    if text:
        for rule in ordered:
            if rule.pattern.search(text):
                logger.debug("classified %r as %s", text[:80], rule.topic.value)
                return Classification(rule.topic, rule.field)

    logger.debug("no topic rule matched %r, using fallback", text[:80])
    return Classification(Topic.FALLBACK)
