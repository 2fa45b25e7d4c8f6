"""Operator approval channel: decouples confirmation prompts from the nodes.

The validation node never reads stdin directly. It talks to an ``Approval``
object: ``notify()`` for warnings and assessments, ``confirm()`` for yes/no
decisions. The CLI wires in ``ConsoleApproval``; tests pass a scripted fake.

Usage
-----
::

    approval = ConsoleApproval()
    approval.notify("Potentially dangerous command detected!")
    if approval.confirm("Execute this command?"):
        ...
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO

from app.core.logging import get_logger

logger = get_logger("core.approval")

AFFIRMATIVE = frozenset({"y", "yes"})


def is_affirmative(answer: str | None) -> bool:
    """Only an explicit ``y`` / ``yes`` counts as consent."""
    return (answer or "").strip().lower() in AFFIRMATIVE


class Approval(Protocol):
    def notify(self, message: str) -> None: ...

    def confirm(self, question: str) -> bool: ...


class ConsoleApproval:
    """Interactive approval on the terminal.

    Prompts go to stderr so stdout carries only the final result. End of input
    (Ctrl+D, closed pipe) counts as a decline.
    """

    def __init__(self, stdin: TextIO | None = None, stderr: TextIO | None = None) -> None:
        self._in = stdin or sys.stdin
        self._out = stderr or sys.stderr

    def notify(self, message: str) -> None:
        print(message, file=self._out, flush=True)

    def confirm(self, question: str) -> bool:
        self._out.write(f"{question} [y/N]: ")
        self._out.flush()
        answer = self._in.readline()
        approved = is_affirmative(answer)
        logger.info("Operator %s: %s", "approved" if approved else "declined", question)
        return approved
