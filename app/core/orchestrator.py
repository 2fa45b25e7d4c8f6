"""LangGraph execution graph for a single agent run.

Every node hands control back through one router that reads ``next_node``.
``terminal`` ends the run; an unset or unknown pointer is a RoutingError.
"""

from __future__ import annotations

import os
from typing import Any, Callable

from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph

from app.agents.models import ModelGateway
from app.core.approval import Approval
from app.core.config import get_settings
from app.core.errors import IterationLimitError, RoutingError
from app.core.logging import get_logger
from app.core.nodes import (
    analytics_node,
    bash_node,
    classifier_node,
    code_analyzer_node,
    content_collection_node,
    direct_response_node,
    formatter_node,
    validation_node,
)
from app.core.state import NodeType, RunState

logger = get_logger("core.orchestrator")

HANDLED_NODES: tuple[NodeType, ...] = tuple(n for n in NodeType if n != NodeType.TERMINAL)


def route_next(state: RunState) -> str:
    """Map the next-node pointer to a graph node name."""
    target = state.next_node
    if target is None:
        raise RoutingError("next_node is unset")
    try:
        target = NodeType(target)
    except ValueError:
        raise RoutingError(f"next_node names an unknown node: {target!r}") from None
    if target == NodeType.TERMINAL:
        return "terminal"
    logger.debug("Routing to %s", target.value)
    return target.value


def _checked(name: str, fn: Callable[..., dict[str, Any]], **deps: Any) -> Callable[[RunState], dict[str, Any]]:
    """Bind collaborators to a node and enforce that it sets the pointer."""

    def _run(state: RunState) -> dict[str, Any]:
        logger.info("Node start | %s", name)
        update = fn(state, **deps)
        if not update or update.get("next_node") is None:
            raise RoutingError(f"Node '{name}' returned without setting next_node")
        try:
            target = NodeType(update["next_node"])
        except ValueError:
            raise RoutingError(
                f"Node '{name}' returned an unknown next_node: {update['next_node']!r}"
            ) from None
        update["next_node"] = target
        logger.info("Node end   | %s -> %s", name, target.value)
        return update

    _run.__name__ = f"{name}_node"
    return _run


def build_graph(gateway: ModelGateway, approval: Approval) -> StateGraph:
    """Construct the workflow graph."""
    graph = StateGraph(RunState)

    graph.add_node("classifier", _checked("classifier", classifier_node, gateway=gateway))
    graph.add_node("bash", _checked("bash", bash_node, gateway=gateway))
    graph.add_node("validation", _checked("validation", validation_node, gateway=gateway, approval=approval))
    graph.add_node("formatter", _checked("formatter", formatter_node, gateway=gateway))
    graph.add_node("content_collection", _checked("content_collection", content_collection_node))
    graph.add_node("analytics", _checked("analytics", analytics_node, gateway=gateway))
    graph.add_node("direct_response", _checked("direct_response", direct_response_node, gateway=gateway))
    graph.add_node("code_analyzer", _checked("code_analyzer", code_analyzer_node, gateway=gateway))

    path_map: dict[str, str] = {node.value: node.value for node in HANDLED_NODES}
    path_map["terminal"] = END

    # Runs start with next_node == classifier.
    graph.set_entry_point(NodeType.CLASSIFIER.value)
    for node in HANDLED_NODES:
        graph.add_conditional_edges(node.value, route_next, path_map)

    return graph


def compile_graph(gateway: ModelGateway, approval: Approval):
    graph = build_graph(gateway, approval)
    return graph.compile()


def run_graph(
    user_input: str,
    gateway: ModelGateway,
    approval: Approval,
    working_directory: str | None = None,
    force_approval: bool = False,
) -> RunState:
    """Execute the graph for one request and return the terminal state."""
    settings = get_settings()
    compiled = compile_graph(gateway, approval)

    initial_state = RunState(
        user_input=user_input,
        global_goal=user_input,
        working_directory=working_directory or os.getcwd(),
        force_approval=force_approval,
        next_node=NodeType.CLASSIFIER,
    )

    logger.info(
        "Starting run | request: %s | cwd: %s | force_approval=%s",
        user_input[:100],
        initial_state.working_directory,
        force_approval,
    )

    try:
        final_state_dict = compiled.invoke(
            initial_state.model_dump(),
            config={"recursion_limit": settings.max_graph_steps},
        )
    except GraphRecursionError as exc:
        raise IterationLimitError(
            f"Run exceeded {settings.max_graph_steps} graph steps without reaching terminal"
        ) from exc

    final_state = RunState(**final_state_dict)

    logger.info(
        "Run complete | tasks: %d | classifier rounds: %d",
        len(final_state.task_history),
        final_state.classifier_rounds,
    )
    return final_state


def run_agent(
    user_input: str,
    gateway: ModelGateway,
    approval: Approval,
    working_directory: str | None = None,
    force_approval: bool = False,
) -> str:
    """Run one request end to end and return its final result.

    Fatal problems raise ``AgentError`` subclasses; no partial result is
    returned alongside an error.
    """
    return run_graph(
        user_input,
        gateway,
        approval,
        working_directory=working_directory,
        force_approval=force_approval,
    ).final_result
