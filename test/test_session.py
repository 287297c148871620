# test/test_session.py
import asyncio

import pytest

from handoff_ai.runtime.registry import SessionRegistry
from handoff_ai.runtime.session import ConversationSession, SessionState
from handoff_ai.runtime.speech import pump_transcripts
from handoff_ai.services.classifier import Topic
from handoff_ai.services.renderer import FAREWELL_MESSAGE


class FakeSpeaker:
    def __init__(self) -> None:
        self.spoken = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)


class FakeTranscripts:
    def __init__(self, utterances) -> None:
        self._utterances = list(utterances)

    async def __aiter__(self):
        for u in self._utterances:
            yield u


def _open(patient, **kwargs) -> ConversationSession:
    kwargs.setdefault("thinking_delay", 0)
    kwargs.setdefault("close_delay", 0.01)
    return ConversationSession(patient, **kwargs)


@pytest.mark.asyncio
async def test_new_session_has_welcome_then_alerts(patient):
    s = _open(patient)

    msgs = s.messages
    assert msgs[0].role == "assistant"
    assert msgs[0].content.startswith("Hello! I'm your clinical assistant for Maria Lopez.")
    assert [m.content.split(" detected")[0] for m in msgs[1:]] == [
        "Severe pain",
        "Fever",
        "High blood pressure",
        "Tachycardia",
        "Low oxygen saturation",
    ]
    assert s.state is SessionState.OPEN


@pytest.mark.asyncio
async def test_stable_patient_gets_only_welcome(stable_patient):
    s = _open(stable_patient)
    assert len(s.messages) == 1


@pytest.mark.asyncio
async def test_submit_appends_user_then_assistant(stable_patient):
    s = _open(stable_patient)

    reply = await s.submit("  How is his pain?  ")

    user, assistant = s.messages[-2:]
    assert user.role == "user" and user.content == "How is his pain?"
    assert assistant is reply
    assert assistant.role == "assistant"
    assert assistant.content.startswith("Pain management for James Park:")
    assert s.last_classification.topic is Topic.PAIN
    assert user.timestamp <= assistant.timestamp


@pytest.mark.asyncio
async def test_blank_message_is_a_no_op(stable_patient):
    s = _open(stable_patient)
    before = s.messages

    assert await s.submit("   ") is None
    assert s.messages == before


@pytest.mark.asyncio
async def test_none_message_is_rejected(stable_patient):
    s = _open(stable_patient)
    with pytest.raises(TypeError):
        await s.submit(None)


def test_session_requires_patient_record():
    with pytest.raises(TypeError):
        ConversationSession({"id": "p-1"})


@pytest.mark.asyncio
async def test_end_phrase_closes_after_delay(stable_patient):
    closed = []
    s = _open(stable_patient, close_delay=0.01, on_close=closed.append)

    reply = await s.submit("thanks, bye")

    assert reply.content == FAREWELL_MESSAGE
    assert s.state is SessionState.CLOSING
    assert s.last_classification.topic is Topic.END_CONVERSATION

    # input after the farewell is ignored
    assert await s.submit("what about the vitals?") is None
    assert s.messages[-1].content == FAREWELL_MESSAGE

    await asyncio.sleep(0.05)
    assert s.state is SessionState.CLOSED
    assert closed == [s]


@pytest.mark.asyncio
async def test_close_cancels_pending_timer(stable_patient):
    closed = []
    s = _open(stable_patient, close_delay=0.01, on_close=closed.append)
    await s.submit("bye")

    s.close()
    s.close()
    await asyncio.sleep(0.05)

    assert s.state is SessionState.CLOSED
    assert closed == [s]


@pytest.mark.asyncio
async def test_update_same_patient_appends_new_alerts_once(make_stable_patient):
    s = _open(make_stable_patient())
    feverish = make_stable_patient(vitals={"temperature": 102.5})

    alerts = s.update_patient(feverish)
    assert alerts == ["Fever detected for James Park (102.5°F). Consider antipyretics and infection workup."]
    assert s.messages[-1].content == alerts[0]

    assert s.update_patient(feverish) == []
    assert s.patient.vitals.temperature == 102.5


@pytest.mark.asyncio
async def test_switching_patient_resets_transcript(patient, stable_patient):
    s = _open(stable_patient)
    await s.submit("How is his pain?")

    assert s.update_patient(patient) == []

    assert s.patient_id == patient.id
    assert s.messages[0].content.startswith("Hello! I'm your clinical assistant for Maria Lopez.")
    assert all(m.role == "assistant" for m in s.messages)
    assert s.last_classification is None


@pytest.mark.asyncio
async def test_switching_patient_drops_in_flight_reply(patient, stable_patient):
    s = _open(stable_patient, thinking_delay=0.05)

    turn = asyncio.create_task(s.submit("How is his pain?"))
    await asyncio.sleep(0.01)
    s.update_patient(patient)

    assert await turn is None
    assert not any("James Park" in m.content for m in s.messages)


@pytest.mark.asyncio
async def test_reply_finishing_after_farewell_is_dropped(stable_patient):
    s = _open(stable_patient, thinking_delay=0.05, close_delay=1)

    turn = asyncio.create_task(s.submit("How is his pain?"))
    await asyncio.sleep(0.01)
    farewell = await s.submit("bye")

    assert farewell.content == FAREWELL_MESSAGE
    assert s.state is SessionState.CLOSING
    assert await turn is None
    assert s.messages[-1].content == FAREWELL_MESSAGE
    assert not any(m.content.startswith("Pain management") for m in s.messages)
    s.close()


@pytest.mark.asyncio
async def test_assistant_messages_are_spoken(stable_patient):
    speaker = FakeSpeaker()
    s = _open(stable_patient, speech_output=speaker)

    await s.submit("what is his name")

    assert speaker.spoken[0].startswith("Hello!")
    assert speaker.spoken[-1] == "Patient name: James Park"
    assert len(speaker.spoken) == 2


@pytest.mark.asyncio
async def test_pump_transcripts_stops_after_end_phrase(stable_patient):
    s = _open(stable_patient, close_delay=1)
    source = FakeTranscripts(["what room is he in", "thank you", "and his age?"])

    count = await pump_transcripts(source, s)

    assert count == 2
    assert s.state is SessionState.CLOSING
    assert [m.content for m in s.messages if m.role == "user"] == ["what room is he in", "thank you"]
    s.close()


@pytest.mark.asyncio
async def test_registry_keeps_sessions_apart(patient, stable_patient):
    registry = SessionRegistry(thinking_delay=0, close_delay=0.01)
    a = registry.open(patient)
    b = registry.open(patient)
    c = registry.open(stable_patient)

    await a.submit("How is her pain?")

    assert len(registry) == 3
    assert registry.get(patient.id, a.session_id) is a
    assert registry.get(stable_patient.id, a.session_id) is None
    assert len(b.messages) == 6
    assert {s.session_id for s in registry.sessions_for(patient.id)} == {a.session_id, b.session_id}

    assert registry.close(stable_patient.id, c.session_id) is True
    assert registry.close(stable_patient.id, c.session_id) is False
    assert len(registry) == 2


@pytest.mark.asyncio
async def test_registry_forgets_session_after_auto_close(stable_patient):
    registry = SessionRegistry(thinking_delay=0, close_delay=0.01)
    s = registry.open(stable_patient)

    await s.submit("thanks")
    await asyncio.sleep(0.05)

    assert registry.get(stable_patient.id, s.session_id) is None
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_registry_notify_dedupes_alerts(make_stable_patient):
    registry = SessionRegistry(thinking_delay=0, close_delay=0.01)
    registry.open(make_stable_patient())
    registry.open(make_stable_patient())

    alerts = registry.notify_patient_updated(make_stable_patient(vitals={"heartRate": 130}))

    assert alerts == [
        "Tachycardia detected for James Park (130 bpm). Assess for causes (pain, fever, anxiety, dehydration)."
    ]
    registry.close_all()
    assert len(registry) == 0
