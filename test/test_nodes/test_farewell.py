import pytest
from pocketflow import AsyncFlow

from handoff_ai.runtime.nodes.farewell import FarewellNode
from handoff_ai.services.classifier import Topic
from handoff_ai.services.renderer import FAREWELL_MESSAGE


@pytest.mark.asyncio
async def test_farewell_queues_closing_message():
    shared = {"user_text": "thank you", "ending": True, "to_append": []}
    node = FarewellNode()
    node.successors = {}
    flow = AsyncFlow(start=node)

    action = await flow.run_async(shared)

    assert action == "ok"
    assert shared["assistant_reply"] == FAREWELL_MESSAGE
    assert shared["classification"].topic is Topic.END_CONVERSATION
    assert shared["to_append"] == [{"role": "assistant", "content": FAREWELL_MESSAGE}]


@pytest.mark.asyncio
async def test_farewell_custom_message_and_missing_buffer():
    shared = {"user_text": "bye"}
    node = FarewellNode(message="Goodbye.")
    node.successors = {}

    await AsyncFlow(start=node).run_async(shared)

    assert shared["ending"] is True
    assert shared["to_append"] == [{"role": "assistant", "content": "Goodbye."}]
