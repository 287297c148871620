from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from handoff_ai.runtime.session import ConversationSession
from handoff_ai.schemas.patient import PatientRecord

logger = logging.getLogger(__name__)

SessionKey = Tuple[str, str]


class SessionRegistry:
    """
    In-memory index of open assistant sessions keyed by (patient_id, session_id).
    Sessions never share history; closed sessions drop out on their own.
    """

    def __init__(self, *, thinking_delay: Optional[float] = None, close_delay: Optional[float] = None) -> None:
        self.thinking_delay = thinking_delay
        self.close_delay = close_delay
        self._sessions: Dict[SessionKey, ConversationSession] = {}

    def open(self, patient: PatientRecord) -> ConversationSession:
        session = ConversationSession(
            patient,
            thinking_delay=self.thinking_delay,
            close_delay=self.close_delay,
            on_close=self._forget,
        )
        self._sessions[(patient.id, session.session_id)] = session
        return session

    def get(self, patient_id: str, session_id: str) -> Optional[ConversationSession]:
        return self._sessions.get((patient_id, session_id))

    def sessions_for(self, patient_id: str) -> List[ConversationSession]:
        return [s for (pid, _), s in self._sessions.items() if pid == patient_id]

    def close(self, patient_id: str, session_id: str) -> bool:
        session = self.get(patient_id, session_id)
        if session is None:
            return False
        session.close()
        return True

    def close_all(self) -> None:
        for session in list(self._sessions.values()):
            session.close()

    def notify_patient_updated(self, patient: PatientRecord) -> List[str]:
        """Forward a new patient snapshot to its open sessions; returns alerts raised."""
        raised: List[str] = []
        for session in self.sessions_for(patient.id):
            for alert in session.update_patient(patient):
                if alert not in raised:
                    raised.append(alert)
        return raised

    def _forget(self, session: ConversationSession) -> None:
        removed = [k for k, s in self._sessions.items() if s is session]
        for key in removed:
            del self._sessions[key]
        logger.debug("registry dropped %d session(s)", len(removed))

    def __len__(self) -> int:
        return len(self._sessions)


_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    """FastAPI dependency returning the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
