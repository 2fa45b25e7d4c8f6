"""Analytics node: answers questions about collected directory contents."""

from __future__ import annotations

import os
from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.errors import ResponseParseError
from app.core.logging import get_logger
from app.core.state import FileEntry, NodeType, RunState
from app.tools.filesystem import BINARY_PLACEHOLDER

from ._helpers import _finish_task, _task_for

logger = get_logger("core.nodes.analytics")

_MAX_FILE_CHARS = 10_000
_MAX_TOTAL_CHARS = 100_000


def _relative(path: str, root: str) -> str:
    try:
        return os.path.relpath(path, root) if root else path
    except ValueError:
        return path


def _prepare_directory_info(entries: list[FileEntry], root: str) -> tuple[str, str]:
    """Return (listing, bodies) text blocks for the prompt, bodies size-capped."""
    listing_lines = []
    for entry in entries:
        rel = _relative(entry.path, root)
        if entry.is_dir:
            listing_lines.append(f"{rel}/")
        else:
            listing_lines.append(f"{rel} ({entry.size} bytes)")

    bodies: list[str] = []
    total = 0
    for entry in entries:
        if entry.is_dir or not entry.content or entry.content == BINARY_PLACEHOLDER:
            continue
        if total >= _MAX_TOTAL_CHARS:
            break
        content = entry.content
        if len(content) > _MAX_FILE_CHARS:
            content = content[:_MAX_FILE_CHARS] + "... [truncated]"
        bodies.append(f"--- {_relative(entry.path, root)} ---\n{content}\n")
        total += len(content)

    return "\n".join(listing_lines) or "(empty)", "\n".join(bodies)


def analytics_node(state: RunState, gateway: ModelGateway) -> dict[str, Any]:
    task = _task_for(state, NodeType.ANALYTICS)
    question = state.analytics_question or task.goal or state.user_input
    listing, bodies = _prepare_directory_info(state.directory_contents, state.working_directory)

    prompt = (
        f"Question: {question}\n"
        f"Working directory: {state.working_directory}\n\n"
        f"Directory listing:\n```\n{listing}\n```\n"
    )
    if bodies:
        prompt += f"\nFile contents:\n{bodies}"

    answer = gateway.complete(prompt, load_system_prompt("analytics"), stage="analytics")
    if not answer.strip():
        raise ResponseParseError("analytics", "model returned an empty analysis")
    logger.info("Analytics answer over %d entries", len(state.directory_contents))

    update = _finish_task(state, NodeType.ANALYTICS, answer)
    update["raw_output"] = answer
    return update
