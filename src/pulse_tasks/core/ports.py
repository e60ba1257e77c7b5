# src/pulse_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the domain layer.

TaskStore depends on this Protocol instead of the concrete YAML store,
so tests can swap in fakes (e.g. a store whose writes fail).
"""

from pathlib import Path
from typing import Protocol

from ..tasks.task_models import ShardRecord, TaskLookup


class ShardRepo(Protocol):
    @property
    def pulse_dir(self) -> Path: ...

    def exists(self, tag: str) -> bool: ...
    def load(self, tag: str) -> ShardRecord: ...
    def save(self, tag: str, record: ShardRecord) -> None: ...
    def list_tags(self) -> list[str]: ...
    def find_task_any_tag(self, task_id: int) -> TaskLookup: ...
    def delete_shard(self, tag: str) -> None: ...
