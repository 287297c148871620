# handoff_ai/api/assistant.py
import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from handoff_ai import config
from handoff_ai.db.session import get_session
from handoff_ai.runtime.registry import SessionRegistry, get_registry
from handoff_ai.runtime.session import ConversationSession
from handoff_ai.schemas.chat import (
    AssistantMessageIn,
    AssistantMessageOut,
    ChatMessage,
    SessionOpenIn,
    SessionOut,
)
from handoff_ai.services.repo import Repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assistant", tags=["assistant"])

TENANT_ID = config.TENANT_ID


def _session_or_404(registry: SessionRegistry, patient_id: str, session_id: str) -> ConversationSession:
    session = registry.get(patient_id, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="assistant session not found")
    return session


def _out(s: ConversationSession) -> SessionOut:
    return SessionOut(session_id=s.session_id, patient_id=s.patient_id, state=s.state.value, messages=s.messages)


@router.post("/sessions", response_model=SessionOut, status_code=201)
async def open_session(
    payload: SessionOpenIn,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    """Open a fresh assistant dialog for a patient, seeded with the welcome message."""
    repo = Repo(lambda: session)
    patient = await repo.get_patient(TENANT_ID, payload.patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="patient not found")
    return _out(registry.open(patient))


@router.post("/message", response_model=AssistantMessageOut)
async def post_message(
    payload: AssistantMessageIn,
    session: AsyncSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    """
    Handle one nurse message:
    1. Append it to the session transcript
    2. Run the assistant flow (end phrase + extract + classify + render)
    3. Audit the turn and return the reply
    """
    if not payload.text.strip():
        raise HTTPException(status_code=422, detail="message text is empty")
    convo = _session_or_404(registry, payload.patient_id, payload.session_id)

    reply = await convo.submit(payload.text)

    topic = convo.last_classification.topic.value if reply and convo.last_classification else None
    entities = {k: list(v) for k, v in asdict(convo.last_entities).items() if v} if convo.last_entities else {}
    repo = Repo(lambda: session)
    await repo.audit(
        TENANT_ID,
        "assistant.turn",
        "session",
        convo.session_id,
        {"patient_id": convo.patient_id, "topic": topic, "entities": entities, "state": convo.state.value},
    )
    logger.info("session %s turn routed to %s", convo.session_id, topic)

    return AssistantMessageOut(
        reply=reply.content if reply else None,
        timestamp=reply.timestamp if reply else None,
        session_id=convo.session_id,
        topic=topic,
        state=convo.state.value,
    )


@router.get("/sessions/{session_id}/messages", response_model=List[ChatMessage])
async def get_transcript(
    session_id: str,
    patient_id: str = Query(..., alias="patientId"),
    registry: SessionRegistry = Depends(get_registry),
):
    """Return the transcript of an open session, oldest first."""
    return _session_or_404(registry, patient_id, session_id).messages


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(
    session_id: str,
    patient_id: str = Query(..., alias="patientId"),
    registry: SessionRegistry = Depends(get_registry),
):
    if not registry.close(patient_id, session_id):
        raise HTTPException(status_code=404, detail="assistant session not found")
