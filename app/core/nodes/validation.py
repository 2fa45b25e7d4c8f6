"""Validation node: safety gate, execution, and failure recovery for commands.

One pass of the loop below is: static blocklist scan, model safety rating,
execution policy (auto-run or ask), execution. A failed execution asks the
model for one corrected command; if the operator accepts it, the loop starts
over with the new command, so every alternative goes through the same checks.
The loop is bounded by ``max_command_retries``.
"""

from __future__ import annotations

from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.approval import Approval
from app.core.config import get_settings
from app.core.errors import AssessmentParseError, RoutingError
from app.core.logging import get_logger
from app.core.safety import (
    SafetyDecision,
    classify_failure,
    decide,
    find_blocklisted_fragments,
    parse_safety_assessment,
)
from app.core.state import NodeType, RunState, SafetyAssessment
from app.tools.shell import CommandResult, run_command

from ._helpers import _clean_command, _task_for

logger = get_logger("core.nodes.validation")

CANCELLED_MESSAGE = "Command execution cancelled by user."


def assess_command(command: str, working_dir: str, gateway: ModelGateway) -> SafetyAssessment:
    """Ask the model for a SAFE/CAUTION/DANGEROUS rating of *command*."""
    prompt = (
        f"Analyze this bash command for safety: {command}\n\n"
        f"Command will be executed in directory: {working_dir}"
    )
    response = gateway.complete(prompt, load_system_prompt("safety"), stage="validation.safety")
    return parse_safety_assessment(response)


def suggest_alternative(
    failed_command: str,
    error_class: str,
    error_text: str,
    original_request: str,
    working_dir: str,
    gateway: ModelGateway,
) -> str:
    """Ask the model for exactly one corrected command. May return ``""``."""
    prompt = (
        f"Original user request: {original_request}\n"
        f"Working directory: {working_dir}\n"
        f"Failed command: {failed_command}\n"
        f"Error type: {error_class}\n"
        f"Detailed error message: {error_text}\n\n"
        "Suggest an alternative command that will work:"
    )
    logger.info("Requesting alternative for '%s' (error type: %s)", failed_command, error_class)
    response = gateway.complete(prompt, load_system_prompt("alternative"), stage="validation.alternative")
    return _clean_command(response)


def _check_command(
    command: str, working_dir: str, gateway: ModelGateway, approval: Approval
) -> SafetyDecision:
    hits = find_blocklisted_fragments(command)
    if hits:
        logger.warning("Blocklisted fragments in '%s': %s", command, hits)
        approval.notify("Potentially dangerous command detected!")
        approval.notify(
            "This command contains operations that might modify system files or settings "
            f"({', '.join(hits)})."
        )

    assessment: SafetyAssessment | None
    try:
        assessment = assess_command(command, working_dir, gateway)
    except AssessmentParseError as exc:
        # Unreadable rating: fall back to asking the operator.
        logger.warning("Safety rating unusable: %s", exc)
        approval.notify(f"Warning: command validation failed: {exc}")
        assessment = None
    else:
        approval.notify(
            f"Safety Assessment: {assessment.verdict.value.upper()} [{assessment.risk_score}] "
            f"{assessment.rationale}"
        )

    decision = decide(assessment, hits)
    logger.info("Safety decision for '%s': auto=%s (%s)", command, decision.auto_execute, decision.reason)
    return decision


# ---------------------------------------------------------------------------
# NODE: validation
# ---------------------------------------------------------------------------

def validation_node(state: RunState, gateway: ModelGateway, approval: Approval) -> dict[str, Any]:
    """Validate, run and, on failure, retry the generated command."""
    command = state.command.strip()
    if not command:
        raise RoutingError("Validation reached without a command to run")

    settings = get_settings()
    task = _task_for(state, NodeType.BASH)
    retries = 0

    while True:
        approval.notify(f"\nCommand: {command}\n")

        if state.force_approval:
            # No model rating or blocklist scan under force approval.
            decision = decide(None, [], force_approval=True)
            logger.info("Skipping validation for '%s' (%s)", command, decision.reason)
        else:
            decision = _check_command(command, state.working_directory, gateway, approval)
            if decision.auto_execute:
                approval.notify("Command appears safe and will be executed automatically.")

        if not decision.auto_execute:
            approval.notify("Confirmation required for this command.")
            if not approval.confirm("Execute this command?"):
                logger.info("Operator declined '%s'", command)
                return {
                    "command": command,
                    "raw_output": CANCELLED_MESSAGE,
                    "final_result": CANCELLED_MESSAGE,
                    "current_task": task.model_copy(update={"result": CANCELLED_MESSAGE}),
                    "next_node": NodeType.TERMINAL,
                }

        result = run_command(command, state.working_directory)
        if result.ok:
            output = result.output.strip()
            return {
                "command": command,
                "raw_output": result.output,
                "final_result": output,
                "current_task": task.model_copy(update={"result": output}),
                "next_node": NodeType.CLASSIFIER,
            }

        failure = result.describe_failure()
        approval.notify(f"\nCommand failed: {command}\n{failure}")

        if retries >= settings.max_command_retries:
            logger.warning("Giving up after %d alternative command(s)", retries)
            return _final_failure(task, command, result, failure)

        error_class = classify_failure(f"{result.output}\n{result.error}", timed_out=result.timed_out)
        alternative = suggest_alternative(
            command, error_class, failure, state.user_input, state.working_directory, gateway
        )
        if not alternative or alternative == command:
            logger.info("No usable alternative for '%s' (got %r)", command, alternative)
            return _final_failure(task, command, result, failure)

        approval.notify(f"Suggested alternative command: {alternative}")
        if not approval.confirm("Run this alternative command?"):
            logger.info("Operator declined alternative '%s'", alternative)
            return _final_failure(task, command, result, failure)

        retries += 1
        command = alternative


def _final_failure(task, command: str, result: CommandResult, failure: str) -> dict[str, Any]:
    return {
        "command": command,
        "raw_output": result.output,
        "final_result": failure,
        "current_task": task.model_copy(update={"result": failure}),
        "next_node": NodeType.TERMINAL,
    }
