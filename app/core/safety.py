"""Command safety checks: static fragment scan, model rating, failure triage.

The fragment scan is a coarse heuristic for surfacing a warning and forcing a
confirmation. It is trivially bypassed (aliases, quoting, variables) and is
not a security boundary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import ValidationError

from app.core.errors import AssessmentParseError
from app.core.state import SafetyAssessment, SafetyVerdict

# ── Static blocklist ─────────────────────────────────────────────────────
BLOCKLIST_FRAGMENTS: tuple[str, ...] = (
    # deletion
    "rm -rf", "rm -r", "rmdir",
    # permissions / ownership
    "chmod", "chown",
    # raw disk
    "dd ", "mkfs", "fdisk",
    # privilege escalation
    "sudo", "su ",
    # fork bomb
    ":(){:|:&};:", ":(){ :|:& };:",
    # shutdown / reboot
    "shutdown", "reboot", "poweroff",
    # redirection that may overwrite files
    ">", ">>", "2>",
    # moving / copying from the filesystem root
    "mv /", "cp /",
    # package managers
    "apt", "yum", "pacman", "dnf", "zypper",
)


def find_blocklisted_fragments(command: str) -> list[str]:
    """Return every blocklist fragment found in *command* (case-insensitive)."""
    lowered = command.lower()
    return [fragment for fragment in BLOCKLIST_FRAGMENTS if fragment in lowered]


# ── Model rating ─────────────────────────────────────────────────────────
_RATING_RE = re.compile(
    r"\b(SAFE|CAUTION|DANGEROUS)\b\s*[:\-]?\s*\[?\s*(-?\d+)\s*(?:/\s*10\s*)?\]?",
    re.IGNORECASE,
)


def parse_safety_assessment(text: str) -> SafetyAssessment:
    """Parse ``"SAFE [2] rationale"`` style ratings into a SafetyAssessment.

    Raises AssessmentParseError for a missing tag, a score outside 1–10, or a
    score outside the tag's band.
    """
    raw = (text or "").strip()
    match = _RATING_RE.search(raw)
    if not match:
        raise AssessmentParseError("safety", f"no SAFE/CAUTION/DANGEROUS rating in: {raw[:120]!r}")

    verdict = SafetyVerdict(match.group(1).lower())
    score = int(match.group(2))
    rationale = raw[match.end():].strip(" \t\n-:.") or raw
    try:
        return SafetyAssessment(verdict=verdict, risk_score=score, rationale=rationale)
    except ValidationError as exc:
        raise AssessmentParseError(
            "safety", f"invalid rating {match.group(0)!r}: {exc.errors()[0]['msg']}"
        ) from exc


@dataclass(frozen=True)
class SafetyDecision:
    """Whether a command may run without asking, and why."""

    auto_execute: bool
    reason: str


def decide(
    assessment: SafetyAssessment | None,
    blocklist_hits: list[str],
    force_approval: bool = False,
) -> SafetyDecision:
    """Apply the execution policy.

    Force-approval runs unconditionally. Otherwise only a SAFE rating with no
    blocklist hit runs without confirmation; a missing rating always asks.
    """
    if force_approval:
        return SafetyDecision(True, "force approval enabled")
    if assessment is None:
        return SafetyDecision(False, "safety rating unavailable")
    if blocklist_hits:
        return SafetyDecision(False, f"blocklisted fragments: {', '.join(blocklist_hits)}")
    if assessment.verdict != SafetyVerdict.SAFE:
        return SafetyDecision(False, f"rated {assessment.verdict.value.upper()} [{assessment.risk_score}]")
    return SafetyDecision(True, f"rated SAFE [{assessment.risk_score}]")


# ── Failure triage ───────────────────────────────────────────────────────
_FAILURE_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("command_not_found", ("command not found", "not found in path")),
    ("permission_denied", ("permission denied", "operation not permitted")),
    ("file_not_found", ("no such file", "not exist", "cannot find")),
    ("not_a_directory", ("not a directory",)),
    ("invalid_option", ("invalid option", "invalid argument", "unrecognized option", "illegal option")),
    ("syntax_error", ("syntax error", "unexpected eof", "unexpected token")),
)


def classify_failure(output: str, timed_out: bool = False) -> str:
    """Map failure text to a coarse error class; ``unknown`` when nothing matches."""
    if timed_out:
        return "timeout"
    lowered = (output or "").lower()
    for error_class, markers in _FAILURE_MARKERS:
        if any(marker in lowered for marker in markers):
            return error_class
    return "unknown"
