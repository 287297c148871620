from __future__ import annotations

import asyncio
from typing import Any, Dict
from pocketflow import AsyncNode

from handoff_ai.services.renderer import render


class RenderNode(AsyncNode):
    """Turn the classified message into guidance text.
    - prep_async: gather classification, message, extracted entities and patient snapshot
    - exec_async: optional "thinking" pause, then pure rendering
    - post_async: write reply back to shared and queue it for the transcript
    """

    def __init__(self, *, thinking_delay: float = 0.0, **kwargs) -> None:
        super().__init__(**kwargs)
        self.thinking_delay = thinking_delay

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "classification": shared["classification"],
            "user_text": shared.get("user_text", ""),
            "patient": shared["patient"],
            "entities": shared.get("entities"),
        }

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        if self.thinking_delay > 0:
            await asyncio.sleep(self.thinking_delay)
        reply = render(prep["classification"], prep["user_text"], prep["patient"], prep["entities"])
        return {"reply": reply}

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        reply = exec_res["reply"]
        shared["assistant_reply"] = reply
        shared.setdefault("to_append", []).append({"role": "assistant", "content": reply})
        return "ok"
