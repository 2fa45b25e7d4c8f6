"""Shared helpers used across multiple node modules."""
from __future__ import annotations

import json
import re
from typing import Any

from app.core.errors import ResponseParseError
from app.core.logging import get_logger
from app.core.state import NodeType, RunState, Task

logger = get_logger("core.nodes._helpers")

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?|\n?```\s*$")


def _strip_fences(text: str) -> str:
    """Drop a single surrounding markdown code fence, if any."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = _FENCE_RE.sub("", text).strip()
    return text


def _parse_json_object(response: str, stage: str) -> dict[str, Any]:
    """Parse a model reply that must be a JSON object.

    The reply may be wrapped in a single markdown code fence, and prose around
    the outermost braces is ignored. Anything else (no object, arrays, invalid
    JSON) raises ResponseParseError naming *stage*.
    """
    text = _strip_fences(response)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ResponseParseError(stage, f"expected a JSON object, got: {text[:120]!r}")
    text = text[start:end + 1]

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(stage, f"invalid JSON ({exc.msg}): {text[:120]!r}") from exc

    return payload


def _require_bool(payload: dict[str, Any], key: str, stage: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise ResponseParseError(stage, f"field {key!r} must be a boolean, got {value!r}")
    return value


def _clean_command(response: str) -> str:
    """Extract a bare command from a model reply (fences, backticks, ``$`` prompt)."""
    text = _strip_fences(response)
    lines = [line for line in text.splitlines() if line.strip()]
    text = "\n".join(lines).strip()
    if len(text) >= 2 and text[0] == text[-1] == "`":
        text = text.strip("`").strip()
    if text.startswith("$ "):
        text = text[2:].strip()
    return text


def _task_for(state: RunState, node_type: NodeType) -> Task:
    """Current task, or a stand-in when a node is reached without one."""
    if state.current_task is not None:
        return state.current_task
    return Task(node_type=node_type, goal=state.user_input)


def _finish_task(state: RunState, node_type: NodeType, result: str) -> dict[str, Any]:
    """Record *result* on the current task and hand control back to the classifier."""
    task = _task_for(state, node_type).model_copy(update={"result": result})
    return {
        "current_task": task,
        "final_result": result,
        "next_node": NodeType.CLASSIFIER,
    }
