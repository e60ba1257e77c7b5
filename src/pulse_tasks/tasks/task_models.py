# src/pulse_tasks/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final, cast


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskStatus(StrEnum):
    """
    Shared lifecycle of tasks and subtasks.

    Front ends cycle PENDING -> INPROGRESS -> DONE -> PENDING; an explicit
    status-set call may jump to any value.
    """

    PENDING = "PENDING"
    INPROGRESS = "INPROGRESS"
    DONE = "DONE"

    @classmethod
    def from_raw(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        key = str(raw).strip().upper().replace("_", "").replace("-", "")
        try:
            return cls(key)
        except ValueError:
            return cls.PENDING

    @classmethod
    def parse(cls, raw: str | None) -> TaskStatus | None:
        """Strict variant of from_raw(): None for anything unrecognized."""
        if not raw:
            return None
        key = str(raw).strip().upper().replace("_", "").replace("-", "")
        try:
            return cls(key)
        except ValueError:
            return None

    def cycled(self) -> TaskStatus:
        order = list(TaskStatus)
        return order[(order.index(self) + 1) % len(order)]


# Sentinel for update structs: UNSET means "don't change"; None means "clear".
UNSET: Final = object()


@dataclass(slots=True)
class Subtask:
    id: int
    title: str
    status: TaskStatus
    order: int
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class Task:
    id: int
    title: str
    status: TaskStatus
    tag: str
    order: int
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    subtasks: list[Subtask] = field(default_factory=list)

    def find_subtask(self, subtask_id: int) -> Subtask | None:
        for st in self.subtasks:
            if st.id == subtask_id:
                return st
        return None

    def sorted_subtasks(self) -> list[Subtask]:
        return sorted(self.subtasks, key=lambda st: st.order)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utc_now()


@dataclass(slots=True)
class ShardRecord:
    """Everything persisted for one tag."""

    next_id: int = 1
    tasks: list[Task] = field(default_factory=list)
    description: str | None = None

    def find_task(self, task_id: int) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def index_of(self, task_id: int) -> int:
        for i, t in enumerate(self.tasks):
            if t.id == task_id:
                return i
        return -1


@dataclass(frozen=True, slots=True)
class TaskLookup:
    """
    Result of locating a task by id.

    A miss is an instance with every field None; it is falsy so callers
    branch with `if not found:`. A hit also carries the loaded shard record,
    which the caller mutates and saves.
    """

    task: Task | None = None
    tag: str | None = None
    record: ShardRecord | None = None

    def __bool__(self) -> bool:
        return self.task is not None

    @classmethod
    def missing(cls) -> TaskLookup:
        return cls()

    def unpack(self) -> tuple[Task, str, ShardRecord]:
        """(task, tag, record) of a hit. Call only after checking the lookup is truthy."""
        return cast(Task, self.task), cast(str, self.tag), cast(ShardRecord, self.record)


@dataclass(frozen=True, slots=True)
class TaskUpdate:
    title: str | object = UNSET
    description: str | None | object = UNSET
    tag: str | object = UNSET

    def is_empty(self) -> bool:
        return self.title is UNSET and self.description is UNSET and self.tag is UNSET


@dataclass(frozen=True, slots=True)
class SubtaskUpdate:
    title: str | object = UNSET
    status: TaskStatus | str | object = UNSET


@dataclass(frozen=True, slots=True)
class TagDetails:
    tag: str
    task_count: int
    description: str | None = None
