# tests/fakes.py

from __future__ import annotations

from pulse_tasks.tasks.shard_store import ShardStore
from pulse_tasks.tasks.task_models import ShardRecord


class FailingShardStore(ShardStore):
    """
    Real ShardStore whose save() raises OSError for selected tags.

    Used to check that write failures reach the caller and what a failure
    in the middle of a two-shard move leaves behind.
    """

    def __init__(self, base_dir, fail_tags: set[str] | None = None) -> None:
        super().__init__(base_dir)
        self.fail_tags: set[str] = set(fail_tags or ())
        self.saves: list[str] = []

    def save(self, tag: str, record: ShardRecord) -> None:
        if tag in self.fail_tags:
            raise OSError(f"simulated write failure for {tag}")
        self.saves.append(tag)
        super().save(tag, record)


class SortedShardStore(ShardStore):
    """ShardStore with alphabetical list_tags(), so cross-shard scans are deterministic."""

    def list_tags(self) -> list[str]:
        return sorted(super().list_tags())
