"""Tests for the command-line entry point."""

import sys

import pytest

from app.core.errors import RoutingError
from app.main import build_parser, main


def test_parser_flags():
    args = build_parser().parse_args(["--mock", "-v", "-y", "list", "files"])
    assert args.mock and args.verbose and args.force_approval
    assert args.request == ["list", "files"]


def test_missing_input_exits_with_error(capsys):
    assert main([]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Please provide an input argument" in captured.err


def test_blank_input_exits_with_error(capsys):
    assert main(["   "]) == 1
    assert capsys.readouterr().out == ""


@pytest.mark.skipif(sys.platform == "win32", reason="commands run through bash")
def test_mock_run_prints_only_result(tmp_path, monkeypatch, capsys):
    (tmp_path / "notes.txt").write_text("x")
    monkeypatch.chdir(tmp_path)
    assert main(["--mock", "list", "files", "in", "this", "directory"]) == 0
    captured = capsys.readouterr()
    assert "notes.txt" in captured.out
    assert "Safety Assessment" not in captured.out
    assert "Safety Assessment: SAFE [2]" in captured.err


def test_agent_error_exits_non_zero(monkeypatch, capsys):
    from app.core import orchestrator

    def fail(*args, **kwargs):
        raise RoutingError("next_node is unset")

    monkeypatch.setattr(orchestrator, "run_agent", fail)
    assert main(["--mock", "do", "something"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error: next_node is unset" in captured.err


def test_invalid_settings_exit_cleanly(tmp_path, monkeypatch, capsys):
    from app.core import config

    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "_settings", None)
    monkeypatch.setenv("MAX_GRAPH_STEPS", "0")
    assert main(["--mock", "list", "files"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error: Invalid settings" in captured.err
    assert "MAX_GRAPH_STEPS" in captured.err
