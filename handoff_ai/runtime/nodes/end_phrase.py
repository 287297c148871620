from __future__ import annotations
from typing import Any, Dict, Pattern
from pocketflow import AsyncNode

from handoff_ai.services.classifier import END_PHRASE_RE


def _normalize(s: str) -> str:
    return (s or "").strip().lower()


class EndPhraseNode(AsyncNode):
    """First stop of every turn: "thanks"/"bye" style messages end the chat.
    Routes "end" to the farewell branch and "ok" to classification.
    """

    def __init__(self, pattern: Pattern[str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.pattern = pattern or END_PHRASE_RE

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {"user_text": shared.get("user_text", "")}

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        text = _normalize(prep["user_text"])
        m = self.pattern.search(text)
        return {"ending": m is not None, "phrase": m.group(0) if m else None}

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["ending"] = exec_res["ending"]
        if exec_res["ending"]:
            shared["end_phrase"] = exec_res["phrase"]
            return "end"
        return "ok"
