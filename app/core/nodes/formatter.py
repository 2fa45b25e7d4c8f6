"""Formatter node: rewrites raw command output for readability."""

from __future__ import annotations

from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.logging import get_logger
from app.core.state import NodeType, RunState

from ._helpers import _finish_task

logger = get_logger("core.nodes.formatter")


def formatter_node(state: RunState, gateway: ModelGateway) -> dict[str, Any]:
    output = state.raw_output or state.final_result
    if not output.strip():
        logger.info("Nothing to format")
        return _finish_task(state, NodeType.FORMATTER, state.final_result)

    prompt = (
        f"Format this terminal output from the command '{state.command}' to make it more readable:\n\n"
        f"Command was executed in directory: {state.working_directory}\n\n"
        f"Output:\n{output}"
    )
    formatted = gateway.complete(prompt, load_system_prompt("formatter"), stage="formatter")
    return _finish_task(state, NodeType.FORMATTER, formatted or output)
