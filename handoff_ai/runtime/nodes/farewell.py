# handoff_ai/runtime/nodes/farewell.py
from __future__ import annotations
from typing import Any, Dict
from pocketflow import AsyncNode

from handoff_ai.services.classifier import Classification, Topic
from handoff_ai.services.renderer import FAREWELL_MESSAGE


class FarewellNode(AsyncNode):
    """Triggered when the nurse ends the conversation.
    Prep: read the end-phrase decision
    Exec: produce the closing text (pure)
    Post: commit to shared + route
    """

    def __init__(self, message: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.message = message or FAREWELL_MESSAGE

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {"ending": bool(shared.get("ending")), "message": self.message}

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        return {"reply": prep["message"]}

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        reply = exec_res["reply"]
        shared["ending"] = True
        shared["classification"] = Classification(Topic.END_CONVERSATION)
        shared["assistant_reply"] = reply
        shared.setdefault("to_append", []).append({"role": "assistant", "content": reply})
        return "ok"
