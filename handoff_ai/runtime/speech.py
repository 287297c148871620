from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Protocol, runtime_checkable

if TYPE_CHECKING:
    from handoff_ai.runtime.session import ConversationSession


@runtime_checkable
class TranscriptSource(Protocol):
    """Anything that yields recognised speech as text, one utterance at a time."""

    def __aiter__(self) -> AsyncIterator[str]: ...


@runtime_checkable
class SpeechOutput(Protocol):
    def speak(self, text: str) -> None: ...


async def pump_transcripts(source: TranscriptSource, session: "ConversationSession") -> int:
    """Submit each transcript until the source runs dry or the session stops accepting input.

    Returns the number of transcripts submitted.
    """
    count = 0
    async for transcript in source:
        if not session.accepting:
            break
        await session.submit(transcript)
        count += 1
    return count
