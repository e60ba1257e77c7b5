# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from pulse_tasks.cli.bootstrap import create_initial_state
from pulse_tasks.config import Settings
from pulse_tasks.core.state import AppState
from pulse_tasks.tasks.shard_store import ShardStore
from pulse_tasks.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pinned to the per-test tmp dir.

    We build Settings directly rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return Settings(
        app_name="pulse-test",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        file_logging=False,
        working_dir=tmp_path,
        default_tag="base",
    )


@pytest.fixture()
def shards(tmp_path: Path) -> ShardStore:
    return ShardStore(tmp_path)


@pytest.fixture()
def store(shards: ShardStore) -> TaskStore:
    """Real YAML-backed store: file round-trips are part of what we test."""
    return TaskStore(shards)


@pytest.fixture()
def state(settings: Settings) -> AppState:
    return create_initial_state(settings=settings)
