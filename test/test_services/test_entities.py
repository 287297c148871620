import pytest

from handoff_ai.services.entities import EntityMatches, describe_entities, extract, vital_keys


def test_vital_terms_match_words_and_phrases(patient):
    found = extract("Check her BP, heart rate and temp", patient)
    assert found.vitals == ("temp", "bp", "heart rate")
    assert vital_keys(found.vitals) == ["temperature", "blood_pressure", "heart_rate"]


def test_single_word_terms_do_not_match_inside_words(patient):
    # "iv" must not fire on "give", "rr" not on "worry"
    found = extract("Should I give fluids? I worry about her", patient)
    assert found.procedures == ()
    assert found.vitals == ()


def test_patient_vocabulary_for_medications_and_allergies(patient):
    found = extract("Is morphine okay given the penicillin allergy?", patient)
    assert found.medications == ("morphine",)
    assert found.allergies == ("penicillin",)


def test_primary_category_follows_precedence(patient):
    found = extract("She has a fever and a cough, WBC pending, on morphine", patient)
    assert found.symptoms == ("fever", "cough")
    assert found.labs == ("wbc",)
    assert found.primary() == ("symptoms", ("fever", "cough"))

    found = extract("What is the temperature with this fever?", patient)
    assert found.primary()[0] == "vitals"


def test_no_entities(patient):
    found = extract("Good morning", patient)
    assert found == EntityMatches()
    assert not found
    assert describe_entities(found, patient) is None


def test_describe_vitals_uses_current_readings(patient):
    text = describe_entities(extract("what is the temperature", patient), patient)
    assert text == "Current temperature: 103°F. This is considered a fever (abnormal)."


def test_describe_vitals_reports_missing_reading(patient):
    text = describe_entities(extract("what is her weight", patient), patient)
    assert text == "No weight recorded for Maria Lopez."


def test_describe_other_categories(patient):
    assert describe_entities(extract("any dizziness?", patient), patient) == (
        "Symptom(s) detected: dizziness. Please monitor and document appropriately."
    )
    assert describe_entities(extract("is the catheter still in?", patient), patient) == (
        "Procedure(s) detected: catheter. Ensure all safety and documentation protocols are followed."
    )
    assert describe_entities(extract("aspirin timing", patient), patient) == (
        "Medication(s) detected: aspirin. Review administration schedule and monitor for side effects."
    )


def test_extract_rejects_none(patient):
    with pytest.raises(TypeError):
        extract(None, patient)


def test_vital_outranks_medication_in_description(patient):
    text = describe_entities(extract("temp before the morphine?", patient), patient)
    assert text == "Current temperature: 103°F. This is considered a fever (abnormal)."
    assert "Medication" not in text
