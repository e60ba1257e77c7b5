# src/pulse_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config import Settings
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in command handlers.
    settings: Settings
    project_root: Path
    task_store: TaskStore
