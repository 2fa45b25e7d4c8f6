"""Shared fakes: a scripted model gateway and a scripted operator."""

from __future__ import annotations

import json
from collections import defaultdict, deque

import pytest


class ScriptedGateway:
    """ModelGateway fake. Replies are queued per stage; the last reply repeats."""

    def __init__(self, replies: dict[str, object] | None = None) -> None:
        self._queues: dict[str, deque] = defaultdict(deque)
        self._last: dict[str, object] = {}
        self.calls: list[tuple[str, str]] = []
        for stage, reply in (replies or {}).items():
            self.script(stage, reply)

    def script(self, stage: str, *replies: object) -> ScriptedGateway:
        for reply in replies:
            if isinstance(reply, list):
                self._queues[stage].extend(reply)
            else:
                self._queues[stage].append(reply)
        return self

    def stages(self) -> list[str]:
        return [stage for stage, _ in self.calls]

    def complete(self, prompt: str, system_prompt: str = "", *, stage: str = "llm") -> str:
        self.calls.append((stage, prompt))
        queue = self._queues.get(stage)
        if queue:
            reply = queue.popleft()
            self._last[stage] = reply
        elif stage in self._last:
            reply = self._last[stage]
        else:
            raise AssertionError(f"unexpected model call for stage {stage!r}")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt)
        if isinstance(reply, dict):
            return json.dumps(reply)
        return str(reply)


class ScriptedApproval:
    """Approval fake. ``answers`` are consumed in order; running out declines."""

    def __init__(self, *answers: bool) -> None:
        self.answers = deque(answers)
        self.questions: list[str] = []
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.answers.popleft() if self.answers else False


def route(node: str, goal: str = "") -> dict:
    return {"next_node": node, "goal": goal, "explanation": "test"}


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def approval():
    return ScriptedApproval()
