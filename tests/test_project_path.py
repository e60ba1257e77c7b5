# tests/test_project_path.py

from __future__ import annotations

import logging
from pathlib import Path

from pulse_tasks.project_path import find_git_root, resolve_project_root


def test_override_wins(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    other = tmp_path / "elsewhere"
    assert resolve_project_root(other, start_dir=tmp_path) == other.resolve()


def test_git_root_found_from_nested_dir(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)

    assert find_git_root(nested) == tmp_path.resolve()
    assert resolve_project_root(start_dir=nested) == tmp_path.resolve()


def test_git_file_counts_as_root(tmp_path: Path) -> None:
    # worktrees and submodules use a .git file
    (tmp_path / ".git").write_text("gitdir: ../real\n", encoding="utf-8")
    assert find_git_root(tmp_path) == tmp_path.resolve()


def test_fallback_to_start_dir_warns(tmp_path: Path, caplog, monkeypatch) -> None:
    monkeypatch.setattr(
        "pulse_tasks.project_path.find_git_root", lambda start: None
    )
    with caplog.at_level(logging.WARNING, logger="pulse_tasks.project_path"):
        root = resolve_project_root(start_dir=tmp_path)

    assert root == tmp_path.resolve()
    assert "No .git folder found" in caplog.text
