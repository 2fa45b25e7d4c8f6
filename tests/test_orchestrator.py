"""Tests for the LangGraph orchestrator: graph structure, routing, and end-to-end runs."""

import sys

import pytest
from conftest import ScriptedApproval, ScriptedGateway, route

from app.core.errors import IterationLimitError, RoutingError
from app.core.nodes.validation import CANCELLED_MESSAGE
from app.core.state import NodeType, RunState

bash_only = pytest.mark.skipif(sys.platform == "win32", reason="commands run through bash")


@pytest.fixture
def workdir(tmp_path):
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "b.txt").write_text("b")
    return tmp_path


def _finished(gateway, *, goal_met=True):
    gateway.script("classifier.verify", {"is_task_done": True, "explanation": "done"})
    gateway.script("classifier.goal", {"is_goal_met": goal_met})
    return gateway


class TestRouting:
    @pytest.mark.parametrize("node", [n for n in NodeType if n != NodeType.TERMINAL])
    def test_handled_nodes_route_to_themselves(self, node):
        from app.core.orchestrator import route_next
        assert route_next(RunState(next_node=node)) == node.value

    def test_terminal(self):
        from app.core.orchestrator import route_next
        assert route_next(RunState(next_node=NodeType.TERMINAL)) == "terminal"

    def test_unset_pointer(self):
        from app.core.orchestrator import route_next
        with pytest.raises(RoutingError):
            route_next(RunState(next_node=None))

    def test_unknown_pointer(self):
        from app.core.orchestrator import route_next
        with pytest.raises(RoutingError):
            route_next(RunState.model_construct(next_node="shell"))

    def test_node_without_pointer_is_routing_error(self):
        from app.core.orchestrator import _checked
        node = _checked("broken", lambda state: {"final_result": "x"})
        with pytest.raises(RoutingError, match="broken"):
            node(RunState())

    def test_node_with_unknown_pointer_is_routing_error(self):
        from app.core.orchestrator import _checked
        node = _checked("broken", lambda state: {"next_node": "bogus"})
        with pytest.raises(RoutingError, match="bogus"):
            node(RunState())

    def test_checked_normalizes_pointer(self):
        from app.core.orchestrator import _checked
        update = _checked("plain", lambda state: {"next_node": "terminal"})(RunState())
        assert update["next_node"] is NodeType.TERMINAL

    def test_checked_binds_collaborators(self):
        from app.core.orchestrator import _checked
        seen = {}

        def fake(state, gateway):
            seen["gateway"] = gateway
            return {"next_node": NodeType.TERMINAL}

        _checked("fake", fake, gateway="gw")(RunState())
        assert seen == {"gateway": "gw"}


class TestGraphStructure:
    def test_graph_compiles(self):
        from app.core.orchestrator import compile_graph
        compiled = compile_graph(ScriptedGateway(), ScriptedApproval())
        nodes = set(compiled.get_graph().nodes)
        assert {
            "classifier", "bash", "validation", "formatter",
            "content_collection", "analytics", "direct_response", "code_analyzer",
        } <= nodes


@bash_only
class TestRuns:
    def test_simple_command(self, workdir):
        from app.core.orchestrator import run_graph
        gateway = _finished(ScriptedGateway({
            "classifier.route": route("bash", "list files"),
            "bash": "ls",
            "validation.safety": "SAFE [2] read only",
        }))
        approval = ScriptedApproval()
        state = run_graph("list files", gateway, approval, working_directory=str(workdir))
        assert state.final_result == "a.txt\nb.txt"
        assert state.is_terminal
        assert approval.questions == []
        assert [t.node_type for t in state.task_history] == [NodeType.BASH]
        assert state.task_history[0].is_completed
        assert gateway.stages() == [
            "classifier.route", "bash", "validation.safety", "classifier.verify", "classifier.goal",
        ]

    def test_declined_dangerous_command(self, workdir):
        from app.core.orchestrator import run_agent
        gateway = ScriptedGateway({
            "classifier.route": route("bash", "delete everything"),
            "bash": "rm -rf ./*",
            "validation.safety": "DANGEROUS [9] deletes all files",
        })
        approval = ScriptedApproval(False)
        result = run_agent("delete everything", gateway, approval, working_directory=str(workdir))
        assert result == CANCELLED_MESSAGE
        assert approval.questions == ["Execute this command?"]
        assert (workdir / "a.txt").exists()
        assert "classifier.verify" not in gateway.stages()

    def test_failed_command_recovered(self, workdir):
        from app.core.orchestrator import run_agent
        gateway = _finished(ScriptedGateway({
            "classifier.route": route("bash", "list files"),
            "bash": "lss",
            "validation.safety": "SAFE [2] read only",
            "validation.alternative": "ls",
        }))
        approval = ScriptedApproval(True)
        result = run_agent("list files", gateway, approval, working_directory=str(workdir))
        assert result == "a.txt\nb.txt"
        assert approval.questions == ["Run this alternative command?"]

    def test_direct_response(self, workdir):
        from app.core.orchestrator import run_graph
        gateway = _finished(ScriptedGateway({
            "classifier.route": route("direct_response", "explain grep"),
            "direct_response": "grep searches text for patterns.",
        }))
        state = run_graph("what is grep", gateway, ScriptedApproval(), working_directory=str(workdir))
        assert state.final_result == "grep searches text for patterns."
        assert state.command == ""

    def test_two_tasks_recorded_in_order(self, workdir):
        from app.core.orchestrator import run_graph
        gateway = ScriptedGateway({
            "classifier.route": [route("bash", "list files"), route("formatter", "format the listing")],
            "bash": "ls",
            "validation.safety": "SAFE [2] read only",
            "formatter": "Files: a.txt, b.txt",
            "classifier.verify": {"is_task_done": True},
        })
        gateway.script("classifier.goal", {"is_goal_met": False}, {"is_goal_met": True})
        state = run_graph("list files nicely", gateway, ScriptedApproval(), working_directory=str(workdir))
        assert [t.node_type for t in state.task_history] == [NodeType.BASH, NodeType.FORMATTER]
        assert [t.result for t in state.task_history] == ["a.txt\nb.txt", "Files: a.txt, b.txt"]
        assert state.final_result == "Files: a.txt, b.txt"
        assert state.classifier_rounds == 3

    def test_content_collection_then_analytics(self, workdir):
        from app.core.orchestrator import run_graph
        gateway = _finished(ScriptedGateway({
            "classifier.route": route("content_collection", "what files are here"),
            "classifier.content_need": {"needs_content": True, "file_patterns": ["*.txt"]},
            "analytics": "Two one-letter text files.",
        }))
        state = run_graph("what files are here", gateway, ScriptedApproval(), working_directory=str(workdir))
        assert state.final_result == "Two one-letter text files."
        assert len(state.directory_contents) == 2
        analytics_prompt = dict(gateway.calls)["analytics"]
        assert "--- a.txt ---" in analytics_prompt
        assert [t.node_type for t in state.task_history] == [NodeType.CONTENT_COLLECTION]

    def test_terminal_from_router_with_no_tasks(self, workdir):
        from app.core.orchestrator import run_graph
        gateway = ScriptedGateway({"classifier.route": route("terminal")})
        state = run_graph("nothing to do", gateway, ScriptedApproval(), working_directory=str(workdir))
        assert state.final_result == ""
        assert state.task_history == []

    def test_force_approval_skips_validation(self, workdir):
        from app.core.orchestrator import run_agent
        gateway = _finished(ScriptedGateway({
            "classifier.route": route("bash"),
            "bash": "echo hi > out.txt && cat out.txt",
        }))
        result = run_agent("write hi", gateway, ScriptedApproval(), working_directory=str(workdir), force_approval=True)
        assert result == "hi"
        assert "validation.safety" not in gateway.stages()


class TestLimits:
    def test_classifier_round_limit(self, workdir, monkeypatch):
        from app.core.config import Settings
        from app.core.nodes import classifier
        from app.core.orchestrator import run_graph

        monkeypatch.setattr(classifier, "get_settings", lambda: Settings(_env_file=None, max_classifier_rounds=2))
        gateway = ScriptedGateway({
            "classifier.route": route("direct_response", "answer"),
            "direct_response": "an answer",
            "classifier.verify": {"is_task_done": False},
        })
        with pytest.raises(IterationLimitError):
            run_graph("loop forever", gateway, ScriptedApproval(), working_directory=str(workdir))
        assert gateway.stages().count("classifier.route") == 2

    def test_graph_step_limit(self, workdir, monkeypatch):
        from app.core import orchestrator
        from app.core.config import Settings

        monkeypatch.setattr(orchestrator, "get_settings", lambda: Settings(_env_file=None, max_graph_steps=3))
        gateway = ScriptedGateway({
            "classifier.route": route("direct_response", "answer"),
            "direct_response": "an answer",
            "classifier.verify": {"is_task_done": False},
        })
        with pytest.raises(IterationLimitError, match="graph steps"):
            orchestrator.run_graph("loop forever", gateway, ScriptedApproval(), working_directory=str(workdir))
