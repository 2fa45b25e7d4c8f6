"""LangGraph shared state definition for the execution graph."""

from __future__ import annotations

import operator
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.errors import RoutingError


class NodeType(StrEnum):
    CLASSIFIER = "classifier"
    BASH = "bash"
    VALIDATION = "validation"
    FORMATTER = "formatter"
    CONTENT_COLLECTION = "content_collection"
    ANALYTICS = "analytics"
    DIRECT_RESPONSE = "direct_response"
    CODE_ANALYZER = "code_analyzer"
    TERMINAL = "terminal"


def parse_node_type(raw: object) -> NodeType:
    """Turn a model-supplied node name into a NodeType or raise RoutingError."""
    text = str(raw or "").strip().strip("\"'`").lower()
    if not text:
        raise RoutingError("Model returned an empty next node")
    try:
        return NodeType(text)
    except ValueError:
        raise RoutingError(f"Model returned an unknown next node: {text!r}") from None


class Task(BaseModel):
    """One attempted step toward the global goal. Frozen: update with model_copy()."""

    model_config = ConfigDict(frozen=True)

    node_type: NodeType
    goal: str = ""
    is_completed: bool = False
    result: str = ""

    def __str__(self) -> str:
        return (
            f"{{node_type: {self.node_type.value}, goal: {self.goal}, "
            f"is_completed: {self.is_completed}, result: {self.result}}}"
        )


class FileEntry(BaseModel):
    """A file or directory found during content collection."""

    path: str
    size: int = 0
    is_dir: bool = False
    content: str | None = None


class SafetyVerdict(StrEnum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"


_VERDICT_BANDS: dict[SafetyVerdict, range] = {
    SafetyVerdict.SAFE: range(1, 4),
    SafetyVerdict.CAUTION: range(4, 7),
    SafetyVerdict.DANGEROUS: range(7, 11),
}


class SafetyAssessment(BaseModel):
    """The model's risk rating for a candidate command."""

    model_config = ConfigDict(frozen=True)

    verdict: SafetyVerdict
    risk_score: int = Field(ge=1, le=10)
    rationale: str = ""

    @model_validator(mode="after")
    def _score_matches_verdict(self) -> SafetyAssessment:
        if self.risk_score not in _VERDICT_BANDS[self.verdict]:
            raise ValueError(
                f"risk score {self.risk_score} is outside the {self.verdict.value} band"
            )
        return self


class RunState(BaseModel):
    """The complete state passed between LangGraph nodes."""

    # ── Request ───────────────────────────────────────────────────────
    user_input: str = ""
    global_goal: str = ""
    working_directory: str = ""
    force_approval: bool = False

    # ── Task tracking ─────────────────────────────────────────────────
    current_task: Task | None = None
    # Append-only: nodes return new entries and the reducer concatenates.
    task_history: Annotated[list[Task], operator.add] = Field(default_factory=list)
    classifier_rounds: int = 0

    # ── Control flow ──────────────────────────────────────────────────
    next_node: NodeType | None = NodeType.CLASSIFIER

    # ── Outputs ───────────────────────────────────────────────────────
    command: str = ""
    raw_output: str = ""
    final_result: str = ""

    # ── Content collection / analytics ────────────────────────────────
    analytics_question: str = ""
    needs_file_content: bool = False
    file_patterns: list[str] = Field(default_factory=list)
    file_count_limit: int = 0
    file_size_limit: int = 0
    directory_contents: list[FileEntry] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.next_node == NodeType.TERMINAL

    def history_summary(self) -> str:
        if not self.task_history:
            return "(none)"
        return "\n".join(f"{i}. {task}" for i, task in enumerate(self.task_history, start=1))
