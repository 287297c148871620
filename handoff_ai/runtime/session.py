# handoff_ai/runtime/session.py
from __future__ import annotations

import asyncio
import logging
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pocketflow import AsyncFlow

from handoff_ai import config
from handoff_ai.runtime.flow import make_assistant_flow
from handoff_ai.runtime.speech import SpeechOutput
from handoff_ai.schemas.chat import ChatMessage
from handoff_ai.schemas.patient import PatientRecord
from handoff_ai.services.alerts import AlertMonitor
from handoff_ai.services.classifier import Classification
from handoff_ai.services.entities import EntityMatches
from handoff_ai.services.renderer import render_welcome

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ConversationSession:
    """
    One open assistant dialog bound to one patient.

    Lifecycle: OPEN → CLOSING (end phrase, farewell appended, close timer
    armed) → CLOSED (terminal). The transcript is append-only; binding a
    different patient starts over with a fresh transcript.

    Usage:
        session = ConversationSession(patient, thinking_delay=0)
        reply = await session.submit("What are the current vital signs concerns?")
        session.update_patient(updated_patient)   # proactive alerts
        session.close()
    """

    def __init__(
        self,
        patient: PatientRecord,
        *,
        session_id: Optional[str] = None,
        thinking_delay: Optional[float] = None,
        close_delay: Optional[float] = None,
        on_close: Optional[Callable[["ConversationSession"], None]] = None,
        speech_output: Optional[SpeechOutput] = None,
        flow_factory: Callable[..., AsyncFlow] = make_assistant_flow,
    ) -> None:
        if not isinstance(patient, PatientRecord):
            raise TypeError("patient must be a PatientRecord")
        self.session_id = session_id or uuid.uuid4().hex
        self.thinking_delay = config.THINKING_DELAY if thinking_delay is None else thinking_delay
        self.close_delay = config.CLOSE_DELAY if close_delay is None else close_delay
        self._on_close = on_close
        self._speech = speech_output
        self._flow_factory = flow_factory
        self._close_handle: Optional[asyncio.TimerHandle] = None
        self._generation = 0

        self.last_classification: Optional[Classification] = None
        self.last_entities: Optional[EntityMatches] = None
        self._bind(patient)

    # ---------------------------
    # State
    # ---------------------------
    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._history)

    @property
    def accepting(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def patient_id(self) -> str:
        return self.patient.id

    def _bind(self, patient: PatientRecord) -> None:
        self.patient = patient
        self.state = SessionState.OPEN
        self._history: List[ChatMessage] = []
        self._monitor = AlertMonitor()
        self.last_classification = None
        self.last_entities = None
        self._append("assistant", render_welcome(patient))
        self._append_alerts(self._monitor.on_vitals_changed(patient))
        logger.info("assistant session %s opened for patient %s", self.session_id, patient.id)

    def _append(self, role: str, content: str) -> ChatMessage:
        msg = ChatMessage(role=role, content=content)
        self._record(msg)
        return msg

    def _record(self, msg: ChatMessage) -> None:
        self._history.append(msg)
        if msg.role == "assistant" and self._speech is not None:
            self._speech.speak(msg.content)

    def _append_alerts(self, alerts: List[str]) -> None:
        for text in alerts:
            self._append("assistant", text)

    # ---------------------------
    # Conversation
    # ---------------------------
    async def submit(self, text: Optional[str]) -> Optional[ChatMessage]:
        """Run one turn and return the assistant reply.

        Blank input is a no-op. Input after the end phrase is ignored.
        """
        if text is None:
            raise TypeError("message must be a string, not None")
        message = str(text).strip()
        if not message:
            return None
        if self.state is not SessionState.OPEN:
            logger.warning("session %s is %s; ignoring message", self.session_id, self.state.value)
            return None

        self._append("user", message)
        generation = self._generation

        shared: Dict[str, Any] = {
            "user_text": message,
            "patient": self.patient,
            "history": [],
            "to_append": [],
        }
        flow = self._flow_factory(thinking_delay=self.thinking_delay)
        await flow.run_async(shared)

        if generation != self._generation or self.state is not SessionState.OPEN:
            logger.info("session %s changed during the turn; dropping reply", self.session_id)
            return None

        self.last_classification = shared.get("classification")
        self.last_entities = shared.get("entities")
        for msg in shared["history"]:
            self._record(msg)

        if shared.get("ending"):
            self._begin_closing()

        return shared["history"][-1] if shared["history"] else None

    def update_patient(self, patient: PatientRecord) -> List[str]:
        """Rebind to a fresh snapshot of the patient.

        Same patient: new vitals are checked and any new alerts appended.
        Different patient: the session resets with a new welcome message.
        """
        if patient.id != self.patient.id:
            logger.info(
                "session %s switching patient %s -> %s; resetting", self.session_id, self.patient.id, patient.id
            )
            self._cancel_timers()
            self._generation += 1
            self._bind(patient)
            return []

        self.patient = patient
        if self.state is SessionState.CLOSED:
            return []
        alerts = self._monitor.on_vitals_changed(patient)
        self._append_alerts(alerts)
        return alerts

    # ---------------------------
    # Closing
    # ---------------------------
    def _begin_closing(self) -> None:
        self.state = SessionState.CLOSING
        loop = asyncio.get_running_loop()
        self._close_handle = loop.call_later(self.close_delay, self.close)
        logger.info("session %s closing in %.1fs", self.session_id, self.close_delay)

    def _cancel_timers(self) -> None:
        if self._close_handle is not None:
            self._close_handle.cancel()
            self._close_handle = None

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self._cancel_timers()
        self._generation += 1
        self.state = SessionState.CLOSED
        logger.info("session %s closed", self.session_id)
        if self._on_close is not None:
            self._on_close(self)
