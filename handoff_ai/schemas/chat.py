from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from handoff_ai.schemas.patient import CamelModel


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_message_id() -> str:
    return uuid.uuid4().hex


class ChatMessage(BaseModel):
    id: str = Field(default_factory=new_message_id)
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class SessionOpenIn(CamelModel):
    patient_id: str


class SessionOut(CamelModel):
    session_id: str
    patient_id: str
    state: str
    messages: List[ChatMessage] = Field(default_factory=list)


class AssistantMessageIn(CamelModel):
    patient_id: str
    session_id: str
    text: str


class AssistantMessageOut(CamelModel):
    reply: Optional[str] = None
    timestamp: Optional[datetime] = None
    session_id: str
    # routing result of the turn, e.g. "vitals" or "end_conversation"
    topic: Optional[str] = None
    state: str
