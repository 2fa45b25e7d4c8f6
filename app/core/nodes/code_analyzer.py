"""Code-analyzer node: explains a component of the working-directory codebase."""

from __future__ import annotations

import os
from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.config import get_settings
from app.core.errors import ResponseParseError
from app.core.logging import get_logger
from app.core.state import NodeType, RunState
from app.tools.filesystem import find_matching_files, read_file_with_limit

from ._helpers import _finish_task, _parse_json_object, _require_bool, _task_for

logger = get_logger("core.nodes.code_analyzer")

_MAX_FILES = 20
_MAX_TOTAL_CHARS = 100_000


def _determine_content_needs(goal: str, working_dir: str, gateway: ModelGateway) -> tuple[bool, list[str]]:
    prompt = (
        "Based on the current task, determine which source files must be read:\n"
        f"Task Goal: {goal}\n"
        f"Working Directory: {working_dir}\n\n"
        "Return JSON response with:\n"
        '{"needs_content": boolean, "file_patterns": ["pattern1", "pattern2"], '
        '"explanation": "why content is needed or not"}'
    )
    response = gateway.complete(prompt, load_system_prompt("code_analyzer"), stage="code_analyzer.files")
    payload = _parse_json_object(response, "code_analyzer.files")
    needs = _require_bool(payload, "needs_content", "code_analyzer.files")
    patterns = payload.get("file_patterns") or []
    if not isinstance(patterns, list):
        raise ResponseParseError("code_analyzer.files", "field 'file_patterns' must be a list")
    return needs, [str(p).strip() for p in patterns if str(p).strip()]


def code_analyzer_node(state: RunState, gateway: ModelGateway) -> dict[str, Any]:
    task = _task_for(state, NodeType.CODE_ANALYZER)
    goal = task.goal or state.user_input
    size_limit = state.file_size_limit or get_settings().file_size_limit

    needs, patterns = _determine_content_needs(goal, state.working_directory, gateway)

    sections: list[str] = []
    if needs and patterns:
        total = 0
        for path in find_matching_files(state.working_directory, patterns, max_files=_MAX_FILES):
            try:
                body = read_file_with_limit(path, size_limit)
            except OSError as exc:
                logger.warning("Could not read %s: %s", path, exc)
                continue
            if body is None:
                logger.info("Skipping %s (over %d bytes)", path, size_limit)
                continue
            if total + len(body) > _MAX_TOTAL_CHARS:
                break
            rel = os.path.relpath(path, state.working_directory or ".")
            sections.append(f"=== {rel} ===\n{body}\n")
            total += len(body)

    logger.info("Analyzing %d file(s) for: %s", len(sections), goal[:80])
    prompt = (
        "Analyze the following code contents based on the task goal:\n"
        f"Task Goal: {goal}\n"
        f"Working Directory: {state.working_directory}\n\n"
        f"Code Contents:\n{''.join(sections) or '(no matching files)'}"
    )
    analysis = gateway.complete(prompt, load_system_prompt("code_analyzer"), stage="code_analyzer.analyze")
    if not analysis.strip():
        raise ResponseParseError("code_analyzer.analyze", "model returned an empty analysis")
    return _finish_task(state, NodeType.CODE_ANALYZER, analysis)
