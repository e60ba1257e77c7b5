# tests/test_commands.py

from __future__ import annotations

import pytest

from pulse_tasks.cli import main as main_module
from pulse_tasks.cli.commands import CommandError, CommandRegistry, parse_flags, registry
from pulse_tasks.connectors import console_connector
from pulse_tasks.tasks.task_models import TaskStatus


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x 'y z'") == "h2:x,y z"
    assert reg.handle(state, "AA") == "h2:"
    assert reg.handle(state, "b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_blank_and_errors(state) -> None:
    reg = CommandRegistry()

    def boom(state, args):
        raise CommandError("bad input")

    reg.register("boom", boom, "fails")

    assert reg.handle(state, "   ") is None
    assert reg.handle(state, "/") is None
    assert (reg.handle(state, "nope") or "").startswith("Unknown command: nope")
    assert reg.handle(state, "boom") == "Error: bad input"
    assert (reg.handle(state, "a 'unclosed") or "").startswith("Could not parse command")


def test_build_help_lists_primary_names_only() -> None:
    text = registry.build_help()
    assert text.startswith("Available commands:")
    assert "  add - " in text
    assert "  subtask - " in text
    assert "  ls - " not in text


def test_parse_flags() -> None:
    pos, flags = parse_flags(["Fix", "bug", "-t", "backend", "--description=Long text", "--all"])
    assert pos == ["Fix", "bug"]
    assert flags == {"tag": "backend", "description": "Long text", "all": True}

    pos, flags = parse_flags(["5", "-1", "--", "-t", "x"])
    assert pos == ["5", "-1", "-t", "x"]
    assert flags == {}

    with pytest.raises(CommandError):
        parse_flags(["-t"])


def test_add_and_list_flow(state) -> None:
    assert registry.handle(state, 'add "Write docs" -d "for users"') == (
        '✓ Created task #1 in "base": Write docs'
    )
    assert registry.handle(state, 'add Ship it -t "Release Train"') == (
        '✓ Created task #1 in "release-train": Ship it'
    )

    out = registry.handle(state, "list")
    assert out is not None
    assert "base:" in out and "release-train:" in out
    assert out.index("base:") < out.index("release-train:")
    assert "○ #1: Write docs" in out
    assert "for users" in out
    assert out.endswith("Total: 2 tasks")


def test_add_requires_title(state) -> None:
    assert (registry.handle(state, "add") or "").startswith("Error: Task title is required")
    assert state.task_store.list_tasks() == []


def test_list_hides_done_unless_asked(state) -> None:
    registry.handle(state, "add one")
    registry.handle(state, "add two")
    assert registry.handle(state, "status 1 done").startswith("● Task #1 status updated to DONE")

    out = registry.handle(state, "list -t base")
    assert "#1" not in out and "◐" not in out
    assert out.endswith("Total: 1 task")

    assert "● #1: one" in registry.handle(state, "list -t base --all")
    assert registry.handle(state, "list -s done").endswith("Total: 1 task")
    assert registry.handle(state, "list -s inprogress") == 'No tasks found with status "INPROGRESS".'
    assert registry.handle(state, "list -s later").startswith("Error: Invalid status")


def test_status_cycle_next_and_delete(state) -> None:
    registry.handle(state, "add first")
    registry.handle(state, "add second")

    assert registry.handle(state, "cycle 2").startswith("◐ Task #2 -> INPROGRESS")
    assert "#2: second" in registry.handle(state, "next")

    assert registry.handle(state, "delete 2") == "✓ Deleted task #2"
    assert registry.handle(state, "rm 2") == "Error: Task #2 not found."
    assert registry.handle(state, "show x") == "Error: Invalid task ID: 'x'"
    assert registry.handle(state, "status 1 sideways").startswith("Error: Invalid status")


def test_update_moves_task_between_tags(state) -> None:
    registry.handle(state, "add draft")
    assert registry.handle(state, 'update 1 --title "final" -t ops') == (
        '✓ Updated task #1 in "ops": final'
    )
    assert state.task_store.get_task(1, "base") is None
    assert state.task_store.get_task(1, "ops").title == "final"
    assert registry.handle(state, "update 1").startswith("Error: Nothing to update")


def test_subtask_flow(state) -> None:
    registry.handle(state, "add parent")
    assert registry.handle(state, "subtask add 1 first step") == '✓ Added subtask 1.1: "first step"'
    registry.handle(state, "subtask add 1 second step")
    registry.handle(state, "subtask add 1 third step")

    out = registry.handle(state, "subtask status 1.2 done")
    assert out.startswith("● Subtask 1.2 status updated to DONE")

    out = registry.handle(state, "subtask move 1 3 1")
    assert out.splitlines()[1] == "  1. ○ 1.3: third step"

    assert registry.handle(state, "subtask delete 1.1") == "✓ Deleted subtask 1.1"
    out = registry.handle(state, "subtask list 1")
    assert "Progress: 1/2 completed" in out

    assert registry.handle(state, "subtask status 12 done").startswith(
        "Error: Invalid subtask ID format"
    )
    assert registry.handle(state, "subtask move 1 1 9").startswith("Error:")
    assert registry.handle(state, "subtask frobnicate").startswith("Error: Unknown subtask action")


def test_status_complete_subtasks(state) -> None:
    registry.handle(state, "add parent")
    registry.handle(state, "subtask add 1 a")
    registry.handle(state, "subtask add 1 b")

    out = registry.handle(state, "status 1 done --complete-subtasks")
    assert "2/2 subtasks completed" in out
    task = state.task_store.get_task(1)
    assert all(st.status is TaskStatus.DONE for st in task.subtasks)


def test_tag_flow(state) -> None:
    assert registry.handle(state, 'tag create "Back End" -d Servers') == '✓ Tag "back-end" ready'
    registry.handle(state, "add api work -t back-end")

    assert registry.handle(state, "tag show back-end").splitlines() == [
        "Tag: back-end",
        "Description: Servers",
        "Tasks: 1",
    ]
    assert registry.handle(state, "tags").splitlines()[1] == "  back-end (1 open) - Servers"
    assert registry.handle(state, "tag list --all").startswith("All tags:")

    assert registry.handle(state, "tag rename back-end server") == (
        '✓ Tag "back-end" renamed to "server"'
    )
    notes: list[str] = []
    assert registry.handle(state, "tag delete server", emit=notes.append) == '✓ Tag "server" deleted'
    assert notes == ["Removed 1 task(s) with the tag."]
    assert registry.handle(state, "tag delete server") == 'Error: Tag "server" not found.'
    assert registry.handle(state, "tag create !!!").startswith("Error: Invalid tag name")


def test_where_prints_pulse_dir(state, tmp_path) -> None:
    assert registry.handle(state, "where") == str((tmp_path / ".pulse").resolve())


def test_main_runs_one_command(settings, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(main_module, "get_settings", lambda: settings)
    monkeypatch.setattr(main_module, "setup_logging", lambda **kwargs: None)

    assert main_module.main(["-w", str(tmp_path), "add", "from", "cli"]) == 0
    assert capsys.readouterr().out.strip() == '✓ Created task #1 in "base": from cli'

    assert main_module.main([f"--working-dir={tmp_path}", "show", "7"]) == 1
    assert main_module.main(["-w", str(tmp_path), "bogus"]) == 1
    assert "Unknown command: bogus" in capsys.readouterr().out


def test_console_loop(state, monkeypatch, capsys) -> None:
    lines = iter(["add from console", "", "list", "exit", "never reached"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))

    console_connector.run_console_loop(state)

    out = capsys.readouterr().out
    assert '✓ Created task #1 in "base": from console' in out
    assert "Total: 1 task" in out
    assert [t.title for t in state.task_store.list_tasks()] == ["from console"]


def test_console_loop_stops_on_eof(state, monkeypatch) -> None:
    def raise_eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", raise_eof)
    console_connector.run_console_loop(state)


def test_tag_list_all_flag_in_any_position(state) -> None:
    state.task_store.create_tag("alpha", "First")
    assert registry.handle(state, "tag --all list").startswith("All tags:")
    assert registry.handle(state, "tag list --all").startswith("All tags:")
    assert registry.handle(state, "tag list").startswith("Tags with open tasks:")


def test_unknown_actions_are_errors(state) -> None:
    assert registry.handle(state, "tag frobnicate").startswith("Error: Unknown tag action")
    assert registry.handle(state, "subtask frobnicate").startswith("Error: Unknown subtask action")


def test_main_exits_nonzero_on_unknown_action(settings, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(main_module, "get_settings", lambda: settings)
    monkeypatch.setattr(main_module, "setup_logging", lambda **kwargs: None)

    assert main_module.main(["-w", str(tmp_path), "subtask", "frobnicate"]) == 1
    assert main_module.main(["-w", str(tmp_path), "tag", "frobnicate"]) == 1
    assert "Unknown tag action" in capsys.readouterr().out
