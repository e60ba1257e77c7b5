# src/pulse_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- resolves the project root (override > PULSE_WORKING_DIR > git root),
- wires ShardStore -> TaskStore into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import Settings, get_settings
from ..core.state import AppState
from ..project_path import resolve_project_root
from ..tasks.shard_store import ShardStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def create_task_store(project_root: str | Path, *, default_tag: str = "base") -> TaskStore:
    return TaskStore(ShardStore(project_root), default_tag=default_tag)


def create_initial_state(
    *,
    settings: Settings | None = None,
    working_dir: str | Path | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    root = resolve_project_root(working_dir or settings.working_dir)
    store = create_task_store(root, default_tag=settings.default_tag)
    logger.debug("Project root=%s pulse_dir=%s", root, store.pulse_dir)

    return AppState(settings=settings, project_root=root, task_store=store)
