"""Offline model backend for ``--mock`` runs and demos.

Answers are canned and chosen from the stage name plus a few keywords in the
prompt, so a full run (classify → bash → validation → classify) completes
without network access or credentials.
"""

from __future__ import annotations

import json
import re

from app.core.logging import get_logger

logger = get_logger("agents.mock")

_REQUEST_RE = re.compile(r"^Input: (?P<text>.*)$", re.MULTILINE)


def _route(prompt: str) -> dict[str, str]:
    match = _REQUEST_RE.search(prompt)
    text = (match.group("text") if match else prompt).lower()

    if any(k in text for k in ("collect all information about", "tell me about", "describe the", "explain how")):
        node = "code_analyzer"
    elif any(k in text for k in ("what is", "how does", "explain")):
        node = "direct_response"
    elif any(k in text for k in ("analyze", "summarize", "what type", "content")):
        node = "content_collection"
    else:
        node = "bash"
    return {"next_node": node, "goal": text.strip(), "explanation": f"mock routing to {node}"}


def _command(prompt: str) -> str:
    text = prompt.lower()
    if "list" in text and "file" in text:
        return "ls -la"
    if "disk" in text:
        return "df -h ."
    if "memory" in text:
        return "free -h"
    if "system" in text:
        return "uname -a"
    if "directory" in text:
        return "pwd"
    return "echo 'Hello world'"


def _safety(prompt: str) -> str:
    text = prompt.lower()
    if "rm -rf" in text or "sudo" in text:
        return "DANGEROUS [8] Destructive operation that could permanently delete data or change system settings."
    if any(k in text for k in (" mv ", " cp ", ">", "chmod")):
        return "CAUTION [5] Modifies files or permissions; verify the target paths before running."
    return "SAFE [2] Only reads information without modifying any files or settings."


def _alternative(prompt: str) -> str:
    text = prompt.lower()
    if "command_not_found" in text:
        return "ls -la"
    if "file_not_found" in text:
        return "ls -la ."
    return "pwd"


class MockGateway:
    """Canned ModelGateway. Every reply matches the shape its stage expects."""

    def complete(self, prompt: str, system_prompt: str = "", *, stage: str = "llm") -> str:
        logger.debug("mock | stage=%s", stage)
        if stage == "classifier.verify":
            return json.dumps({"is_task_done": True, "explanation": "mock: task finished"})
        if stage == "classifier.goal":
            return json.dumps({"is_goal_met": True, "explanation": "mock: goal reached"})
        if stage == "classifier.route":
            return json.dumps(_route(prompt))
        if stage == "classifier.content_need":
            needs = "structure" not in prompt.lower() and "list" not in prompt.lower()
            return json.dumps({"needs_content": needs, "file_patterns": ["*.py", "*.md"] if needs else []})
        if stage == "bash":
            return _command(prompt)
        if stage == "validation.safety":
            return _safety(prompt)
        if stage == "validation.alternative":
            return _alternative(prompt)
        if stage == "code_analyzer.files":
            return json.dumps({"needs_content": True, "file_patterns": ["**/*.py"], "explanation": "mock"})
        if stage == "formatter":
            return prompt.rsplit("Output:\n", 1)[-1]
        return f"[mock {stage}] {prompt.splitlines()[0] if prompt else ''}".strip()
