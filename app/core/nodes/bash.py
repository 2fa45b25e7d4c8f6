"""Bash node: turns the current sub-goal into a single shell command."""

from __future__ import annotations

from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.errors import ResponseParseError
from app.core.logging import get_logger
from app.core.state import NodeType, RunState

from ._helpers import _clean_command, _task_for

logger = get_logger("core.nodes.bash")


def bash_node(state: RunState, gateway: ModelGateway) -> dict[str, Any]:
    """Generate the command; validation decides whether and how it runs."""
    task = _task_for(state, NodeType.BASH)
    prompt = (
        f"Generate a bash command to: {task.goal or state.user_input}\n\n"
        f"Original request: {state.user_input}\n"
        f"Current working directory: {state.working_directory}"
    )
    response = gateway.complete(prompt, load_system_prompt("bash"), stage="bash")
    command = _clean_command(response)
    if not command:
        raise ResponseParseError("bash", "model returned an empty command")

    logger.info("Generated command: %s", command)
    return {
        "current_task": task,
        "command": command,
        "next_node": NodeType.VALIDATION,
    }
