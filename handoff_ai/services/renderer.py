# handoff_ai/services/renderer.py
"""Templated guidance text, one pure function per topic.

Output depends only on (topic, message, patient); nothing here reads the
clock or a random source. Missing data is rendered as "Not specified",
"N/A" or "not recorded" instead of raising.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

from handoff_ai.schemas.patient import Medication, PatientRecord
from handoff_ai.services.classifier import Classification, Topic
from handoff_ai.services.entities import EntityMatches, describe_entities, extract, vital_keys
from handoff_ai.services.vitals import (
    PAIN_TIER_TEXT,
    TEMP_HIGH,
    TEMP_LOW,
    describe_reading,
    evaluate,
    fmt_number,
    format_analysis,
    monitoring_frequency,
    pain_tier,
)

NOT_SPECIFIED = "Not specified"

FAREWELL_MESSAGE = (
    "You're welcome! If you need further assistance, just ask. Ending the AI assistant chat."
)


# ---------------------------
# Small formatting helpers
# ---------------------------

def _or(value, default: str = NOT_SPECIFIED) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return fmt_number(value)


def _diagnosis(p: PatientRecord) -> str:
    return _or(p.primary_diagnosis)


def _risk(p: PatientRecord) -> str:
    return p.risk_level.upper()


def _bullets(lines: List[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def _frequency_lines(p: PatientRecord) -> List[str]:
    lines = [f"Acuity level {p.acuity_level}: reassess {monitoring_frequency(p.acuity_level)}"]
    if p.risk_level == "critical":
        lines.append("CRITICAL risk: continuous monitoring required between scheduled checks")
    return lines


# ---------------------------
# Vitals
# ---------------------------

def render_vitals(message: str, p: PatientRecord, entities: Optional[EntityMatches] = None) -> str:
    sections = [f"Vital signs analysis for {p.name}:"]

    if entities is None:
        entities = extract(message, p)
    requested = vital_keys(entities.vitals)
    if requested:
        readings = [describe_reading(k, p.vitals, p.name) for k in requested]
        sections.append("Requested readings:\n" + "\n".join(readings))

    sections.append(format_analysis(evaluate(p.vitals)))
    sections.append("Monitoring frequency:\n" + _bullets(_frequency_lines(p)))
    sections.append(
        "Next steps:\n"
        + _bullets([
            "Trend values against previous readings, not just single measurements",
            "Recheck any abnormal value and notify the provider if it persists",
            "Reassess pain and comfort with every set of vital signs",
            "Document all readings, interventions and patient responses",
        ])
    )
    return "\n\n".join(sections)


# ---------------------------
# Medications
# ---------------------------

def _medication_line(med: Medication) -> str:
    dose = " ".join(part for part in (med.dosage, med.route) if part) or "dose not specified"
    freq = f", {med.frequency}" if med.frequency else ""
    indication = med.indication or NOT_SPECIFIED
    return (
        f"- {med.name} ({dose}{freq}) - {indication}\n"
        f"  Next due: {_or(med.next_due, 'Not scheduled')} | Last given: {_or(med.last_given, 'Not recorded')}"
    )


def render_medication(message: str, p: PatientRecord, entities: Optional[EntityMatches] = None) -> str:
    active = p.active_medications()
    held = p.held_medications()

    out = f"Medication management for {p.name}:\n\n"

    if active:
        out += f"Active medications ({len(active)}):\n"
        out += "\n".join(_medication_line(m) for m in active) + "\n\n"
    else:
        out += "No active medications found.\n\n"

    if held:
        out += f"Held medications ({len(held)}):\n"
        out += "\n".join(_medication_line(m) for m in held) + "\n\n"
    else:
        out += "No held medications found.\n\n"

    if entities is None:
        entities = extract(message, p)
    mentioned = entities.medications
    if mentioned:
        out += f"Medications named in your question: {', '.join(mentioned)}. Review administration schedule and monitor for side effects.\n\n"

    if p.allergies:
        out += (
            f"Allergy cross-check: {', '.join(p.allergies)} - verify every medication above "
            "against these allergies before administration.\n\n"
        )

    out += f"""General medication safety recommendations:
- Verify patient allergies before administering any medications
- Double-check all high-risk medications (e.g., anticoagulants, insulin)
- Ensure correct patient, drug, dose, route, and time (5 rights of medication administration)
- Monitor for and document any side effects or adverse reactions
- Educate patient about their medications, including purpose, dosage, and potential side effects
- Encourage adherence to prescribed medication regimen

Special considerations for {p.name}:
- {_diagnosis(p)} may require specific medication adjustments
- Renal or hepatic impairment? Adjust doses accordingly and monitor closely
- Elderly patients may be more sensitive to medications - start low, go slow
- Be cautious with medications that can cause sedation or respiratory depression

Consult pharmacy for:
- Any drug interaction concerns
- Clarification of medication orders
- Patient-specific medication counseling"""
    return out


# ---------------------------
# Pain
# ---------------------------

def render_pain(message: str, p: PatientRecord) -> str:
    level = p.vitals.pain_level
    if level is None:
        level_line = "- Pain level: not recorded - obtain a 0-10 pain score now"
    else:
        level_line = f"- Pain level: {level}/10 ({PAIN_TIER_TEXT[pain_tier(level)]})"

    pain = p.pain
    return f"""Pain management for {p.name}:

Current pain status:
{level_line}
- Location: {_or(pain.location if pain else None)}
- Quality: {_or(pain.quality if pain else None)}
- Duration: {_or(pain.duration if pain else None)}
- Aggravating factors: {_or(pain.aggravating_factors if pain else None)}
- Alleviating factors: {_or(pain.relieving_factors if pain else None)}

Assessment priorities:
- Use the 0-10 scale and document location, quality, and duration
- Compare with the previous score and the patient's comfort goal
- Look for non-verbal signs of pain and for sedation before giving opioids

Recommended interventions:
- Pharmacological:
  - Administer prescribed analgesics (e.g., acetaminophen, ibuprofen, opioids)
  - Consider adjuvant medications (e.g., anticonvulsants, antidepressants) for neuropathic pain
  - Use patient-controlled analgesia (PCA) if appropriate
- Non-pharmacological:
  - Positioning and comfort measures
  - Heat/cold therapy as appropriate
  - Relaxation techniques and distraction
  - Environmental modifications (lighting, noise)

Monitoring requirements:
- Reassessment every 30-60 minutes after intervention
- Document pain scores, interventions, effectiveness
- Alert if pain >7/10 or sudden increase in pain level

Special considerations:
- Diagnosis: {_diagnosis(p)} may cause specific pain patterns
- Age: {_or(p.age, 'N/A')} years - consider age-related factors
- Risk Level: {_risk(p)} - may affect medication choices"""


# ---------------------------
# Discharge
# ---------------------------

def render_discharge(message: str, p: PatientRecord) -> str:
    dx = _diagnosis(p)
    caveats = [
        f"Age: {_or(p.age, 'N/A')} years - may need additional support",
        f"Risk Level: {_risk(p)} - enhanced monitoring needed",
    ]
    if p.allergies:
        caveats.append(f"Allergies: {', '.join(p.allergies)} - ensure awareness")

    return f"""Discharge planning for {p.name}:

Readiness assessment:
- Medical stability: Vital signs stable for 24+ hours, pain controlled with oral medications, no acute complications from {dx}
- Functional status: Able to perform activities of daily living, mobility appropriate for home environment, cognitive function adequate for self-care
- Medication management: Medication reconciliation completed, patient/family understands medication regimen, pharmacy arrangements made

Discharge checklist:
Medical clearance:
- Physician discharge order obtained
- All treatments completed
- Follow-up appointments scheduled
- Diagnostic results reviewed

Medications:
- Reconcile home vs. hospital medications
- Provide written medication list
- Ensure patient has adequate supply
- Review administration instructions

Patient education:
- Diagnosis and treatment explanation
- Activity restrictions and guidelines
- When to seek medical attention
- Emergency contact information

Home preparation:
- Home safety assessment completed
- Medical equipment arranged if needed
- Home health services coordinated
- Transportation arranged

Follow-up care:
- Primary care physician appointment
- Specialist referrals as needed
- Home health nursing if indicated
- Physical therapy if required

Warning signs to report (specific to {dx}):
- Worsening symptoms
- New or increased pain
- Signs of infection
- Medication side effects
Teach {p.name} and family the warning signs of worsening {dx} and when to return for care.

Special considerations:
{_bullets(caveats)}"""


# ---------------------------
# Allergies
# ---------------------------

_CROSS_REACTIONS = (
    ("penicillin", "Penicillin allergy: Avoid all beta-lactam antibiotics, use alternative antibiotics"),
    ("latex", "Latex allergy: Use latex-free gloves and equipment, watch for cross-reactions with banana, avocado, kiwi"),
    ("sulfa", "Sulfa allergy: Avoid sulfonamide antibiotics, use caution with thiazide and loop diuretics"),
)


def cross_reaction_line(allergy: str) -> str:
    lowered = allergy.lower()
    for needle, text in _CROSS_REACTIONS:
        if needle in lowered:
            return text
    return f"{allergy}: Research potential cross-reactions before new medications"


def render_allergy(message: str, p: PatientRecord) -> str:
    if not p.allergies:
        return f"""Allergy status for {p.name}:

No known allergies documented.

Safety protocols:
- Always ask about allergies before any intervention
- Monitor for new allergic reactions
- Document any new allergies immediately
- Educate patient about reporting reactions

Vigilance required:
Even with no known allergies, remain alert for:
- First-time medication reactions
- Food allergies during meal service
- Environmental allergens (latex, cleaning products)
- Cross-reactions with new substances"""

    critical = _bullets([f"{a.upper()} - Verify before any intervention" for a in p.allergies])
    cross = _bullets([cross_reaction_line(a) for a in p.allergies])
    return f"""Allergy management for {p.name}:

Critical allergies:
{critical}

Safety protocols:
Before any medication/treatment:
- Verify allergy band is present and accurate
- Check electronic medical record
- Ask patient to confirm allergies
- Cross-reference with medication orders

Emergency preparedness:
- Know location of emergency medications (epinephrine, Benadryl)
- Have crash cart readily available
- Know rapid response activation process
- Ensure allergy information is visible on chart

Cross-reaction awareness:
{cross}

Documentation requirements:
- All allergies clearly documented in chart
- Allergy band present and legible
- Reaction type and severity noted
- Date of last reaction if known

Patient education:
- Ensure patient knows their allergies
- Provide written allergy list for discharge
- Teach importance of informing all healthcare providers
- Discuss medical alert jewelry/cards"""


# ---------------------------
# Head-to-toe assessment
# ---------------------------

def render_assessment(message: str, p: PatientRecord) -> str:
    v = p.vitals
    bp = f"{v.blood_pressure.systolic}/{v.blood_pressure.diastolic} mmHg" if v.blood_pressure else "N/A"
    allergy_line = (
        f"- {', '.join(p.allergies)} (verify before interventions)" if p.allergies else "- No known allergies"
    )
    return f"""Assessment guidance for {p.name}:

Assessment frequency:
{_bullets(_frequency_lines(p))}

1. General Appearance:
- Observe for distress, discomfort, or changes in mental status
- Note posture, mobility, and ability to communicate

2. Vital Signs:
- Temperature: {_or(v.temperature, 'N/A')}°F
- Blood Pressure: {bp}
- Heart Rate: {_or(v.heart_rate, 'N/A')} bpm
- Respiratory Rate: {_or(v.respiratory_rate, 'N/A')}/min
- Oxygen Saturation: {_or(v.oxygen_saturation, 'N/A')}%
- Pain Level: {_or(v.pain_level, 'N/A')}/10

3. Cardiovascular:
- Heart sounds, peripheral pulses, capillary refill, edema

4. Respiratory:
- Breath sounds, work of breathing, cough and sputum

5. Neurological:
- Level of consciousness, orientation, pupils, motor and sensory function

6. Gastrointestinal:
- Bowel sounds, abdominal tenderness, nausea, last bowel movement, diet tolerance

7. Genitourinary:
- Urine output and character, catheter care if present

8. Integumentary:
- Skin color and temperature, pressure points, wounds and IV sites

9. Psychosocial:
- Assess mood, coping, and support systems
- Identify any barriers to care or discharge

10. Focused Assessment:
- Primary diagnosis: {_diagnosis(p)}
- Assess for complications or changes related to diagnosis

11. Allergies:
{allergy_line}

12. Medication Review:
- Check for new, held, or high-risk medications
- Monitor for side effects or adverse reactions

Documentation:
- Record all findings, interventions, and patient responses
- Notify provider of any abnormal or concerning findings

Would you like a more detailed assessment in a specific area?"""


# ---------------------------
# Care priorities
# ---------------------------

def care_priorities(p: PatientRecord) -> List[str]:
    priorities: List[str] = []
    if p.risk_level == "critical":
        priorities.append("Critical monitoring: Continuous assessment required")
    if p.acuity_level >= 4:
        priorities.append("High acuity: Frequent vital signs and assessments")
    if p.allergies:
        priorities.append("Allergy safety: Verify all medications and treatments")
    if p.vitals.pain_level is not None and p.vitals.pain_level > 5:
        priorities.append("Pain management: Address elevated pain level")
    if p.active_medications():
        priorities.append("Medication safety: Monitor for interactions and effects")
    return priorities


def render_care_priorities(message: str, p: PatientRecord) -> str:
    priorities = care_priorities(p) or ["No high-priority concerns identified - continue routine care"]
    safety = [
        f"Continuous monitoring per acuity level {p.acuity_level}",
        "Fall risk assessment and precautions",
        "Infection control measures",
    ]
    if p.allergies:
        safety.append(f"Allergy precautions: {', '.join(p.allergies)}")

    return f"""Nursing care priorities for {p.name}:

Immediate priorities:
{_bullets(priorities)}

Systematic care plan:

1. Safety & Monitoring
{_bullets(safety)}

2. Physiological Needs
- Vital signs monitoring and trending
- Pain assessment and management
- Medication administration and monitoring
- Nutrition and hydration status

3. Psychosocial Support
- Patient and family education
- Emotional support and coping strategies
- Communication with healthcare team
- Discharge planning preparation

4. Documentation
- Accurate and timely charting
- Incident reporting as needed
- Care plan updates
- Handoff communication

Condition-specific interventions:
Based on {_diagnosis(p)}:
- Monitor for specific complications
- Implement evidence-based protocols
- Coordinate with interdisciplinary team
- Patient education on condition management"""


# ---------------------------
# Single-field lookups
# ---------------------------

_LOOKUPS: Dict[str, Callable[[PatientRecord], str]] = {
    "name": lambda p: f"Patient name: {p.name}",
    "gender": lambda p: f"Patient gender: {_or(p.gender)}",
    "age": lambda p: f"Patient age: {_or(p.age)}",
    "marital_status": lambda p: f"Patient marital status: {_or(p.marital_status)}",
    "room": lambda p: f"Patient room: {_or(p.room)}",
    "diagnosis": lambda p: f"Primary diagnosis: {_diagnosis(p)}",
    "risk": lambda p: f"Risk level: {p.risk_level}",
    "acuity": lambda p: f"Acuity level: {p.acuity_level}",
}


def render_personal_lookup(field: Optional[str], p: PatientRecord) -> str:
    lookup = _LOOKUPS.get(field or "")
    if lookup is None:
        return f"{(field or 'Field').replace('_', ' ').capitalize()}: {NOT_SPECIFIED}"
    return lookup(p)


# ---------------------------
# Fallback
# ---------------------------

def render_fallback(message: str, p: PatientRecord, entities: Optional[EntityMatches] = None) -> str:
    risk_note = "requires continuous monitoring" if p.risk_level == "critical" else "requires regular assessment"
    acuity_note = "high priority" if p.acuity_level >= 4 else "standard monitoring"

    considerations = [
        f"Monitor for complications related to {_diagnosis(p)}",
        f"Maintain safety precautions for {p.risk_level} risk patients",
        f"Follow protocols for acuity level {p.acuity_level}",
    ]
    if p.allergies:
        considerations.append(f"ALLERGY ALERT: {', '.join(p.allergies)}")

    out = f"""Clinical guidance for {p.name}:

Based on your question about "{message}", here's my analysis:
"""
    if entities is None:
        entities = extract(message, p)
    noted = describe_entities(entities, p)
    if noted:
        out += f"\n{noted}\n"

    out += f"""
Current status:
- Condition: {_diagnosis(p)}
- Risk Level: {_risk(p)} ({risk_note})
- Acuity: Level {p.acuity_level} ({acuity_note})

Immediate considerations:
{_bullets(considerations)}

Recommendations:
- Perform systematic head-to-toe assessment
- Review medication administration record
- Assess pain and comfort level
- Monitor for signs of deterioration
- Document all findings and interventions

Would you like specific guidance on any particular aspect of {p.name}'s care?"""
    return out


# ---------------------------
# Welcome
# ---------------------------

def render_welcome(p: PatientRecord) -> str:
    alerts: List[str] = []
    if p.risk_level == "critical":
        alerts.append("CRITICAL risk level - requires continuous monitoring.")
    if p.acuity_level >= 4:
        alerts.append(f"High acuity level {p.acuity_level} - frequent assessments needed.")
    if p.allergies:
        alerts.append(f"Allergies: {', '.join(p.allergies)} - verify before any interventions.")

    concerns: List[str] = []
    pain = p.vitals.pain_level
    if pain is not None and pain > 5:
        concerns.append(f"Pain level {pain}/10 - requires intervention.")
    temp = p.vitals.temperature
    if temp is not None and (temp > TEMP_HIGH or temp < TEMP_LOW):
        concerns.append(f"Temperature {fmt_number(temp)}°F - monitor closely.")

    active = p.active_medications()

    out = f"""Hello! I'm your clinical assistant for {p.name}.

Patient overview:
Diagnosis: {_diagnosis(p)}
Room: {p.room} | Age: {_or(p.age, 'N/A')} | {_or(p.gender, 'N/A')}
Risk: {_risk(p)} | Acuity: {p.acuity_level}

"""
    if alerts:
        out += "Alerts:\n" + _bullets(alerts) + "\n\n"
    if concerns:
        out += "Vital signs concerns:\n" + _bullets(concerns) + "\n\n"
    if active:
        out += f"Medication status:\n- {len(active)} active medications - check for interactions.\n\n"

    out += f"""I can help with:
- Clinical assessments and monitoring priorities
- Medication management and safety checks
- Pain management strategies
- Discharge planning and readiness
- Evidence-based nursing interventions
- Documentation guidance

Use the quick actions or ask me anything about {p.name}'s care."""
    return out


# ---------------------------
# Dispatch
# ---------------------------

_RENDERERS: Dict[Topic, Callable[[str, PatientRecord], str]] = {
    Topic.PAIN: render_pain,
    Topic.DISCHARGE: render_discharge,
    Topic.ALLERGY: render_allergy,
    Topic.ASSESSMENT: render_assessment,
    Topic.CARE_PRIORITIES: render_care_priorities,
}

# these also echo the entities named in the message
_ENTITY_RENDERERS: Dict[Topic, Callable[[str, PatientRecord, Optional[EntityMatches]], str]] = {
    Topic.VITALS: render_vitals,
    Topic.MEDICATION: render_medication,
    Topic.FALLBACK: render_fallback,
}


def render(
    classification: Classification,
    message: str,
    patient: PatientRecord,
    entities: Optional[EntityMatches] = None,
) -> str:
    """Reply text for one classified message.

    ``entities`` is the extraction already done for this turn; when omitted
    it is computed from ``message``.
    """
    topic = classification.topic
    if topic is Topic.END_CONVERSATION:
        return FAREWELL_MESSAGE
    if topic is Topic.PERSONAL_LOOKUP:
        return render_personal_lookup(classification.field, patient)
    if topic in _ENTITY_RENDERERS:
        return _ENTITY_RENDERERS[topic](message, patient, entities)
    return _RENDERERS[topic](message, patient)
