from __future__ import annotations

from typing import Any, Dict
from pocketflow import AsyncNode

from handoff_ai.services.entities import extract


class EntityExtractNode(AsyncNode):
    """Scan the message for vitals, symptoms, labs, diagnoses, procedures,
    and the patient's own medications and allergies.
    """

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {"user_text": shared.get("user_text", ""), "patient": shared["patient"]}

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        return {"entities": extract(prep["user_text"], prep["patient"])}

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["entities"] = exec_res["entities"]
        return "ok"
