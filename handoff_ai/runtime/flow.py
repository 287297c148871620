# handoff_ai/runtime/flow.py
from __future__ import annotations

from pocketflow import AsyncFlow
from handoff_ai.runtime.nodes.end_phrase import EndPhraseNode
from handoff_ai.runtime.nodes.farewell import FarewellNode
from handoff_ai.runtime.nodes.extract import EntityExtractNode
from handoff_ai.runtime.nodes.classify import TopicClassifyNode
from handoff_ai.runtime.nodes.render import RenderNode
from handoff_ai.runtime.nodes.append import AppendNode


def make_assistant_flow(*, thinking_delay: float = 0.0) -> AsyncFlow:
    """One assistant turn:
    end_phrase → (end → farewell → append)
               → (ok → extract → classify → render → append)
    """

    # Instantiate all nodes
    end_phrase = EndPhraseNode()
    farewell = FarewellNode()
    extract = EntityExtractNode()
    classify = TopicClassifyNode()
    render = RenderNode(thinking_delay=thinking_delay)
    append = AppendNode()

    # --- Routing setup ---

    # 1. end-phrase routes
    end_phrase.successors = {
        "end": farewell,
        "ok": extract,
    }

    # 2. normal (ok) path
    extract.successors = {"ok": classify}
    classify.successors = {"ok": render}
    render.successors = {"ok": append}

    # 3. closing path
    farewell.successors = {"ok": append}

    # --- Flow entry point ---
    return AsyncFlow(start=end_phrase)
