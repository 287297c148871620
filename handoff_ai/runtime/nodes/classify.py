from __future__ import annotations

from typing import Any, Dict, List, Optional
from pocketflow import AsyncNode

from handoff_ai.services.classifier import TopicRule, classify


class TopicClassifyNode(AsyncNode):
    """Route the message to a topic with the ordered keyword rules.
    - prep_async: message + bound patient (its medication names are keywords)
    - exec_async: pure classification
    - post_async: store the Classification, route by topic value
    """

    def __init__(self, rules: Optional[List[TopicRule]] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.rules = rules

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {"user_text": shared.get("user_text", ""), "patient": shared.get("patient")}

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        return {"classification": classify(prep["user_text"], prep["patient"], rules=self.rules)}

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["classification"] = exec_res["classification"]
        return "ok"
