# handoff_ai/runtime/nodes/append.py
from __future__ import annotations
from typing import Any, Dict, List
from copy import deepcopy
from pocketflow import AsyncNode

from handoff_ai.schemas.chat import ChatMessage


class AppendNode(AsyncNode):
    """
    Append the turn's assistant messages to the session transcript.
    - prep_async: snapshot inputs (no side-effects)
    - exec_async: build the ChatMessage objects (no side-effects)
    - post_async: extend the history in order and route
    """

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        # Snapshot to_append to avoid later mutation during flow
        to_append_raw = shared.get("to_append", [])
        to_append: List[Dict[str, Any]] = deepcopy(to_append_raw) if isinstance(to_append_raw, list) else []
        return {"history": shared["history"], "to_append": to_append}

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        plan: List[ChatMessage] = [
            ChatMessage(role=item.get("role", "assistant"), content=item.get("content", ""))
            for item in prep["to_append"]
        ]
        return {"plan": plan}

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        history: List[ChatMessage] = prep["history"]
        plan: List[ChatMessage] = exec_res["plan"]
        history.extend(plan)
        shared["appended"] = plan
        shared["to_append"] = []
        return "ok"
