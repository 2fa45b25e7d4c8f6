"""Direct-response node: answers questions without running anything."""

from __future__ import annotations

from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.errors import ResponseParseError
from app.core.logging import get_logger
from app.core.state import NodeType, RunState

from ._helpers import _finish_task, _task_for

logger = get_logger("core.nodes.direct_response")


def direct_response_node(state: RunState, gateway: ModelGateway) -> dict[str, Any]:
    task = _task_for(state, NodeType.DIRECT_RESPONSE)
    prompt = (
        f"Question: {task.goal or state.user_input}\n"
        f"Original request: {state.user_input}\n"
        f"Current working directory: {state.working_directory}"
    )
    answer = gateway.complete(prompt, load_system_prompt("direct_response"), stage="direct_response")
    if not answer.strip():
        raise ResponseParseError("direct_response", "model returned an empty answer")
    logger.info("Direct answer (%d chars)", len(answer))
    return _finish_task(state, NodeType.DIRECT_RESPONSE, answer)
