# test/test_api.py
import asyncio

import httpx
import pytest

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from handoff_ai import config
from handoff_ai.db.session import get_session
from handoff_ai.main import app
from handoff_ai.runtime.registry import SessionRegistry, get_registry
from handoff_ai.services.renderer import FAREWELL_MESSAGE
from handoff_ai.services.repo import Repo


@pytest.fixture()
async def session_factory():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield async_sessionmaker(bind=eng, expire_on_commit=False, class_=AsyncSession)
    finally:
        await eng.dispose()


@pytest.fixture()
def registry():
    reg = SessionRegistry(thinking_delay=0, close_delay=0.01)
    yield reg
    reg.close_all()


@pytest.fixture()
async def client(session_factory, registry):
    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_registry] = lambda: registry
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


PATIENT = {
    "id": "p-100",
    "name": "Ada Moss",
    "room": "301",
    "primaryDiagnosis": "Sepsis",
    "riskLevel": "high",
    "acuityLevel": 3,
    "allergies": ["Latex"],
    "vitals": {"temperature": 98.4, "heartRate": 88, "painLevel": 2},
    "medications": [{"name": "Vancomycin", "dosage": "1 g", "route": "IV", "frequency": "q12h"}],
}


async def _create(client, body=PATIENT):
    r = await client.post("/patients", json=body)
    assert r.status_code == 201, r.text
    return r.json()


async def _open(client, patient_id=PATIENT["id"]):
    r = await client.post("/assistant/sessions", json={"patientId": patient_id})
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_patient_crud(client):
    created = await _create(client)
    assert created["riskLevel"] == "high"

    r = await client.post("/patients", json=PATIENT)
    assert r.status_code == 409

    r = await client.get("/patients", params={"query": "moss"})
    assert [p["name"] for p in r.json()] == ["Ada Moss"]

    r = await client.put("/patients/p-100", json={**PATIENT, "room": "302"})
    assert r.status_code == 200
    assert (await client.get("/patients/p-100")).json()["room"] == "302"

    r = await client.put("/patients/p-100", json={**PATIENT, "id": "p-999"})
    assert r.status_code == 422

    r = await client.delete("/patients/p-100")
    assert r.status_code == 204
    assert (await client.get("/patients/p-100")).status_code == 404


@pytest.mark.asyncio
async def test_invalid_patient_payload_is_rejected(client):
    r = await client.post("/patients", json={**PATIENT, "vitals": {"painLevel": 12}})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_open_session_and_ask(client):
    await _create(client)
    opened = await _open(client)

    assert opened["state"] == "open"
    assert opened["messages"][0]["content"].startswith("Hello! I'm your clinical assistant for Ada Moss.")

    r = await client.post(
        "/assistant/message",
        json={"patientId": "p-100", "sessionId": opened["sessionId"], "text": "Any allergies?"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["topic"] == "allergy"
    assert "LATEX - Verify before any intervention" in body["reply"]
    assert body["state"] == "open"

    r = await client.get(f"/assistant/sessions/{opened['sessionId']}/messages", params={"patientId": "p-100"})
    roles = [m["role"] for m in r.json()]
    assert roles == ["assistant", "user", "assistant"]


@pytest.mark.asyncio
async def test_turn_is_audited(client, session_factory):
    await _create(client)
    opened = await _open(client)

    await client.post(
        "/assistant/message",
        json={"patientId": "p-100", "sessionId": opened["sessionId"], "text": "Is vancomycin due?"},
    )

    audits = await Repo(session_factory).list_audits(config.TENANT_ID, resource_id=opened["sessionId"])
    (audit,) = audits
    assert audit.action == "assistant.turn"
    assert audit.meta_json["topic"] == "medication"
    assert audit.meta_json["entities"] == {"medications": ["vancomycin"]}


@pytest.mark.asyncio
async def test_message_validation_and_unknown_session(client):
    await _create(client)
    opened = await _open(client)

    r = await client.post(
        "/assistant/message", json={"patientId": "p-100", "sessionId": opened["sessionId"], "text": "   "}
    )
    assert r.status_code == 422

    r = await client.post("/assistant/message", json={"patientId": "p-100", "sessionId": "nope", "text": "hi"})
    assert r.status_code == 404

    r = await client.post("/assistant/sessions", json={"patientId": "ghost"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_end_phrase_over_http(client, registry):
    await _create(client)
    opened = await _open(client)

    r = await client.post(
        "/assistant/message", json={"patientId": "p-100", "sessionId": opened["sessionId"], "text": "thanks"}
    )
    body = r.json()
    assert body["reply"] == FAREWELL_MESSAGE
    assert body["topic"] == "end_conversation"
    assert body["state"] == "closing"

    await asyncio.sleep(0.05)
    r = await client.get(f"/assistant/sessions/{opened['sessionId']}/messages", params={"patientId": "p-100"})
    assert r.status_code == 404
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_vitals_update_pushes_alerts_into_open_session(client):
    await _create(client)
    opened = await _open(client)

    r = await client.put("/patients/p-100/vitals", json={"temperature": 102.2, "painLevel": 9})
    assert r.status_code == 200
    body = r.json()
    assert body["patient"]["vitals"]["heartRate"] == 88
    assert body["alerts"] == [
        "Severe pain detected for Ada Moss (9/10). Immediate intervention recommended.",
        "Fever detected for Ada Moss (102.2°F). Consider antipyretics and infection workup.",
    ]

    r = await client.get(f"/assistant/sessions/{opened['sessionId']}/messages", params={"patientId": "p-100"})
    assert [m["content"] for m in r.json()[-2:]] == body["alerts"]

    # same reading again raises nothing
    r = await client.put("/patients/p-100/vitals", json={"temperature": 102.2})
    assert r.json()["alerts"] == []


@pytest.mark.asyncio
async def test_close_session_and_delete_patient(client, registry):
    await _create(client)
    first = await _open(client)
    second = await _open(client)

    r = await client.delete(f"/assistant/sessions/{first['sessionId']}", params={"patientId": "p-100"})
    assert r.status_code == 204
    r = await client.delete(f"/assistant/sessions/{first['sessionId']}", params={"patientId": "p-100"})
    assert r.status_code == 404

    await client.delete("/patients/p-100")
    assert registry.get("p-100", second["sessionId"]) is None
