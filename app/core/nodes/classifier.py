"""Classifier node: task verification, goal tracking and routing.

Every work node returns here. With a current task the classifier first asks
the model whether that task achieved its goal; a completed task is appended to
history and the global goal is re-checked. When the goal is still open (or the
task was not completed) the model picks the next node and sub-goal.
"""

from __future__ import annotations

from typing import Any

from app.agents.models import ModelGateway, load_system_prompt
from app.core.config import get_settings
from app.core.errors import IterationLimitError, RoutingError
from app.core.logging import get_logger
from app.core.state import NodeType, RunState, Task, parse_node_type

from ._helpers import _parse_json_object, _require_bool

logger = get_logger("core.nodes.classifier")


def _verify_task_completion(state: RunState, task: Task, gateway: ModelGateway) -> bool:
    prompt = (
        "Verify if the following task was completed successfully:\n"
        f"Task Goal: {task.goal}\n"
        f"Node Type: {task.node_type.value}\n"
        f"Result: {task.result}\n\n"
        "Please analyze if the task goal was achieved based on the result.\n"
        "Return JSON response with:\n"
        '{"is_task_done": boolean, "explanation": "why the task is considered done or not"}'
    )
    response = gateway.complete(prompt, load_system_prompt("classifier"), stage="classifier.verify")
    payload = _parse_json_object(response, "classifier.verify")
    done = _require_bool(payload, "is_task_done", "classifier.verify")
    logger.info("Task '%s' done=%s | %s", task.goal[:80], done, str(payload.get("explanation", ""))[:200])
    return done


def _is_global_goal_met(state: RunState, history: list[Task], gateway: ModelGateway) -> bool:
    completed = "\n".join(f"{i}. {task}" for i, task in enumerate(history, start=1))
    prompt = (
        "Based on the completed tasks, determine if the global goal has been met:\n"
        f"Global Goal: {state.global_goal}\n"
        f"Completed Tasks:\n{completed}\n\n"
        "Return JSON response with:\n"
        '{"is_goal_met": boolean, "explanation": "why the goal is met or not"}'
    )
    response = gateway.complete(prompt, load_system_prompt("classifier"), stage="classifier.goal")
    payload = _parse_json_object(response, "classifier.goal")
    met = _require_bool(payload, "is_goal_met", "classifier.goal")
    logger.info("Global goal met=%s | %s", met, str(payload.get("explanation", ""))[:200])
    return met


def _classify_request(state: RunState, history: list[Task], gateway: ModelGateway) -> tuple[NodeType, str]:
    summary = "\n".join(f"{i}. {task}" for i, task in enumerate(history, start=1)) or "(none)"
    prompt = (
        "Based on the current state and task history, determine the next node to process the request:\n"
        f"Input: {state.user_input}\n"
        f"Global Goal: {state.global_goal}\n"
        f"Working Directory: {state.working_directory}\n"
        f"Task History:\n{summary}\n\n"
        "Return JSON response with:\n"
        '{"next_node": "bash|content_collection|direct_response|code_analyzer|formatter|terminal", '
        '"goal": "the sub-goal for that node", "explanation": "why this node"}'
    )
    response = gateway.complete(prompt, load_system_prompt("classifier"), stage="classifier.route")
    payload = _parse_json_object(response, "classifier.route")
    next_node = parse_node_type(payload.get("next_node"))
    goal = str(payload.get("goal") or "").strip()
    return next_node, goal


def _determine_content_need(question: str, working_dir: str, gateway: ModelGateway) -> tuple[bool, list[str]]:
    prompt = (
        "Determine if this question requires reading file contents and which file patterns to include: "
        f'"{question}"\nWorking directory: {working_dir}'
    )
    response = gateway.complete(prompt, load_system_prompt("content_need"), stage="classifier.content_need")
    payload = _parse_json_object(response, "classifier.content_need")
    needs = _require_bool(payload, "needs_content", "classifier.content_need")
    patterns = payload.get("file_patterns") or []
    if not isinstance(patterns, list):
        patterns = [patterns]
    return needs, [str(p).strip() for p in patterns if str(p).strip()]


# ---------------------------------------------------------------------------
# NODE: classifier
# ---------------------------------------------------------------------------

def classifier_node(state: RunState, gateway: ModelGateway) -> dict[str, Any]:
    """Verify the current task, check the global goal, and choose the next node."""
    settings = get_settings()
    rounds = state.classifier_rounds + 1
    if rounds > settings.max_classifier_rounds:
        raise IterationLimitError(
            f"Classifier ran {settings.max_classifier_rounds} rounds without reaching the goal"
        )

    update: dict[str, Any] = {"classifier_rounds": rounds}
    history = list(state.task_history)
    task = state.current_task

    if task is not None:
        completed = _verify_task_completion(state, task, gateway)
        task = task.model_copy(update={"is_completed": completed})

        if completed:
            history.append(task)
            update["task_history"] = [task]
            update["current_task"] = None

            if _is_global_goal_met(state, history, gateway):
                logger.info("Global goal met after %d task(s) - finishing", len(history))
                update["next_node"] = NodeType.TERMINAL
                return update

    next_node, goal = _classify_request(state, history, gateway)

    if next_node == NodeType.TERMINAL:
        logger.info("Model routed to terminal")
        update["current_task"] = None
        update["next_node"] = NodeType.TERMINAL
        return update

    if next_node in (NodeType.CLASSIFIER, NodeType.VALIDATION):
        # validation only runs on a generated command; classifier would spin.
        raise RoutingError(f"Model routed to '{next_node.value}', which cannot start a task")

    goal = goal or state.user_input
    logger.info("Routing to %s | goal: %s", next_node.value, goal[:120])
    update["current_task"] = Task(node_type=next_node, goal=goal)
    update["next_node"] = next_node

    if next_node == NodeType.CONTENT_COLLECTION:
        needs, patterns = _determine_content_need(goal, state.working_directory, gateway)
        update.update(
            analytics_question=goal,
            needs_file_content=needs,
            file_patterns=patterns,
            file_count_limit=settings.file_count_limit,
            file_size_limit=settings.file_size_limit,
        )
        logger.info("Content collection | needs_content=%s | patterns=%s", needs, patterns)

    return update
