# src/pulse_tasks/tasks/task_store.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

from ..core.ports import ShardRepo
from .tag_names import canonical_tag
from .task_models import (
    UNSET,
    ShardRecord,
    Subtask,
    SubtaskUpdate,
    TagDetails,
    Task,
    TaskLookup,
    TaskStatus,
    TaskUpdate,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_TAG = "base"


class TaskStore:
    """
    Domain manager for tasks, subtasks and tags.

    Every public method is one load -> mutate -> save cycle against the shard
    repo; no state is kept between calls. Routine failures (unknown id,
    invalid tag, bad index, blank title) come back as None/False. Only write
    errors from the shard repo propagate.
    """

    def __init__(self, shards: ShardRepo, *, default_tag: str = DEFAULT_TAG) -> None:
        self._shards = shards
        self._default_tag = canonical_tag(default_tag, DEFAULT_TAG) or DEFAULT_TAG

    @property
    def pulse_dir(self) -> Path:
        """Absolute path of the directory holding the shard files."""
        return Path(self._shards.pulse_dir).resolve()

    @property
    def default_tag(self) -> str:
        return self._default_tag

    # ---- lookup helpers ----

    def _locate(self, task_id: int, tag: str | None = None) -> TaskLookup:
        """Find a task in one shard (tag hint) or the first shard holding it."""
        if tag is None:
            return self._shards.find_task_any_tag(task_id)

        name = canonical_tag(tag)
        if name is None:
            return TaskLookup.missing()
        record = self._shards.load(name)
        task = record.find_task(task_id)
        if task is None:
            return TaskLookup.missing()
        return TaskLookup(task=task, tag=name, record=record)

    @staticmethod
    def _clean_title(title: object) -> str | None:
        if not isinstance(title, str) or not title.strip():
            return None
        return title.strip()

    @staticmethod
    def _resequence(subtasks: list[Subtask]) -> list[Subtask]:
        ordered = sorted(subtasks, key=lambda st: st.order)
        for i, st in enumerate(ordered, start=1):
            st.order = i
        return ordered

    # ---- tasks ----

    def create_task(
        self,
        title: str,
        description: str | None = None,
        tag: str | None = DEFAULT_TAG,
    ) -> Task | None:
        clean = self._clean_title(title)
        if clean is None:
            logger.debug("create_task rejected: blank title")
            return None

        name = canonical_tag(tag, self._default_tag) or self._default_tag
        record = self._shards.load(name)
        now = utc_now()

        task = Task(
            id=record.next_id,
            title=clean,
            description=description,
            status=TaskStatus.PENDING,
            tag=name,
            order=len(record.tasks) + 1,
            created_at=now,
            updated_at=now,
        )
        record.tasks.append(task)
        record.next_id += 1
        self._shards.save(name, record)

        logger.debug("Task created tag=%s id=%s order=%s", name, task.id, task.order)
        return task

    def get_task(self, task_id: int, tag: str | None = None) -> Task | None:
        return self._locate(task_id, tag).task

    def update_task(self, task_id: int, update: TaskUpdate) -> Task | None:
        found = self._shards.find_task_any_tag(task_id)
        if not found:
            return None
        task, old_tag, record = found.unpack()

        new_tag = old_tag
        if update.tag is not UNSET and update.tag is not None:
            new_tag = canonical_tag(cast(str, update.tag))
            if new_tag is None:
                logger.debug("update_task id=%s rejected: invalid tag %r", task_id, update.tag)
                return None

        title = task.title
        if update.title is not UNSET:
            title = self._clean_title(update.title)
            if title is None:
                logger.debug("update_task id=%s rejected: blank title", task_id)
                return None

        task.title = title
        if update.description is not UNSET:
            task.description = cast("str | None", update.description)
        task.touch(utc_now())

        if new_tag == old_tag:
            self._shards.save(old_tag, record)
            logger.debug("Task updated tag=%s id=%s", old_tag, task_id)
            return task

        # Two independent writes: a failure after the first one loses the task.
        record.tasks.pop(record.index_of(task_id))
        self._shards.save(old_tag, record)

        dest = self._shards.load(new_tag)
        self._append_moved(dest, task, new_tag)
        self._shards.save(new_tag, dest)

        logger.debug("Task moved id=%s %s -> %s (now id=%s)", task_id, old_tag, new_tag, task.id)
        return task

    @staticmethod
    def _append_moved(dest: ShardRecord, task: Task, tag: str) -> None:
        if dest.find_task(task.id) is not None:
            task.id = dest.next_id
        dest.next_id = max(dest.next_id, task.id + 1)
        task.tag = tag
        task.order = len(dest.tasks) + 1
        dest.tasks.append(task)

    def update_task_status(
        self,
        task_id: int,
        status: TaskStatus | str,
        tag: str | None = None,
        *,
        complete_subtasks: bool = False,
    ) -> Task | None:
        new_status = TaskStatus.parse(status)
        if new_status is None:
            return None

        found = self._locate(task_id, tag)
        if not found:
            return None
        task, name, record = found.unpack()

        now = utc_now()
        if complete_subtasks:
            for st in task.subtasks:
                st.status = TaskStatus.DONE
                st.updated_at = now

        task.status = new_status
        task.touch(now)
        self._shards.save(name, record)

        logger.debug(
            "Task status tag=%s id=%s status=%s cascade=%s",
            name,
            task_id,
            task.status.value,
            complete_subtasks,
        )
        return task

    def list_tasks(
        self, tag: str | None = None, status: TaskStatus | str | None = None
    ) -> list[Task]:
        """
        Tasks sorted by `order`.

        Without a tag every shard is aggregated; orders from different shards
        are not comparable, so multi-tag callers should group by `task.tag`.
        """
        if tag is None:
            tags = self._shards.list_tags()
        else:
            name = canonical_tag(tag)
            if name is None:
                return []
            tags = [name]

        wanted: TaskStatus | None = None
        if status is not None:
            wanted = TaskStatus.parse(status)
            if wanted is None:
                return []

        out: list[Task] = []
        for name in tags:
            record = self._shards.load(name)
            out.extend(t for t in record.tasks if wanted is None or t.status == wanted)
        return sorted(out, key=lambda t: t.order)

    def get_next_task(self, tag: str | None = None) -> Task | None:
        tasks = self.list_tasks(tag)
        for wanted in (TaskStatus.INPROGRESS, TaskStatus.PENDING):
            for t in tasks:
                if t.status == wanted:
                    return t
        return None

    def delete_task(self, task_id: int, tag: str | None = None) -> bool:
        found = self._locate(task_id, tag)
        if not found:
            return False
        _, name, record = found.unpack()

        record.tasks.pop(record.index_of(task_id))
        self._shards.save(name, record)
        logger.debug("Task deleted tag=%s id=%s", name, task_id)
        return True

    # ---- subtasks ----

    def add_subtask(self, parent_id: int, title: str, tag: str | None = None) -> Subtask | None:
        clean = self._clean_title(title)
        if clean is None:
            return None

        found = self._locate(parent_id, tag)
        if not found:
            return None
        task, name, record = found.unpack()

        count = len(task.subtasks)
        new_id = count + 1
        if task.find_subtask(new_id) is not None:
            new_id = max(st.id for st in task.subtasks) + 1

        now = utc_now()
        subtask = Subtask(
            id=new_id,
            title=clean,
            status=TaskStatus.PENDING,
            order=count + 1,
            created_at=now,
            updated_at=now,
        )
        task.subtasks.append(subtask)
        task.touch(now)
        self._shards.save(name, record)

        logger.debug("Subtask added tag=%s task=%s subtask=%s", name, parent_id, new_id)
        return subtask

    def update_subtask(
        self,
        parent_id: int,
        subtask_id: int,
        update: SubtaskUpdate,
        tag: str | None = None,
    ) -> Subtask | None:
        found = self._locate(parent_id, tag)
        if not found:
            return None
        task, name, record = found.unpack()

        subtask = task.find_subtask(subtask_id)
        if subtask is None:
            return None

        title = subtask.title
        if update.title is not UNSET:
            title = self._clean_title(update.title)
            if title is None:
                return None

        status = subtask.status
        if update.status is not UNSET:
            parsed = TaskStatus.parse(cast(str, update.status))
            if parsed is None:
                return None
            status = parsed

        now = utc_now()
        subtask.title = title
        subtask.status = status
        subtask.updated_at = now
        task.touch(now)
        self._shards.save(name, record)

        logger.debug(
            "Subtask updated tag=%s task=%s subtask=%s status=%s",
            name,
            parent_id,
            subtask_id,
            status.value,
        )
        return subtask

    def update_subtask_status(
        self,
        parent_id: int,
        subtask_id: int,
        status: TaskStatus | str,
        tag: str | None = None,
    ) -> Subtask | None:
        return self.update_subtask(parent_id, subtask_id, SubtaskUpdate(status=status), tag)

    def delete_subtask(self, parent_id: int, subtask_id: int, tag: str | None = None) -> bool:
        found = self._locate(parent_id, tag)
        if not found:
            return False
        task, name, record = found.unpack()

        subtask = task.find_subtask(subtask_id)
        if subtask is None:
            return False

        task.subtasks.remove(subtask)
        task.subtasks = self._resequence(task.subtasks)
        task.touch(utc_now())
        self._shards.save(name, record)

        logger.debug("Subtask deleted tag=%s task=%s subtask=%s", name, parent_id, subtask_id)
        return True

    def reorder_subtasks(
        self,
        parent_id: int,
        from_index: int,
        to_index: int,
        tag: str | None = None,
    ) -> list[Subtask] | None:
        """
        Move the subtask at position `from_index` to `to_index`.

        Positions index the order-sorted list (not subtask ids). Out-of-range
        positions are rejected, not clamped.
        """
        found = self._locate(parent_id, tag)
        if not found:
            return None
        task, name, record = found.unpack()

        ordered = task.sorted_subtasks()
        n = len(ordered)
        if not (0 <= from_index < n and 0 <= to_index < n):
            return None

        moved = ordered.pop(from_index)
        ordered.insert(to_index, moved)

        now = utc_now()
        for i, st in enumerate(ordered, start=1):
            st.order = i
            st.updated_at = now
        task.subtasks = ordered
        task.touch(now)
        self._shards.save(name, record)

        logger.debug(
            "Subtasks reordered tag=%s task=%s %s -> %s", name, parent_id, from_index, to_index
        )
        return list(ordered)

    # ---- tags ----

    def create_tag(self, text: str, description: str | None = None) -> str | None:
        name = canonical_tag(text)
        if name is None:
            logger.debug("create_tag ignored: invalid name %r", text)
            return None

        if self._shards.exists(name):
            if description is not None:
                record = self._shards.load(name)
                record.description = description
                self._shards.save(name, record)
            return name

        self._shards.save(name, ShardRecord(next_id=1, tasks=[], description=description))
        logger.debug("Tag created tag=%s", name)
        return name

    def update_tag(self, tag: str, description: str | None) -> bool:
        name = canonical_tag(tag)
        if name is None or not self._shards.exists(name):
            return False
        record = self._shards.load(name)
        record.description = description
        self._shards.save(name, record)
        return True

    def delete_tag(self, tag: str) -> bool:
        name = canonical_tag(tag)
        if name is None or not self._shards.exists(name):
            return False
        self._shards.delete_shard(name)
        logger.info("Tag deleted tag=%s", name)
        return True

    def rename_tag(self, old: str, new: str) -> bool:
        """
        Move every task of `old` into `new` (merging if `new` exists),
        then delete `old`.

        The destination is saved before the source is deleted, so a failure
        in between leaves the tasks in both shards rather than in neither.
        """
        src_name = canonical_tag(old)
        dst_name = canonical_tag(new)
        if src_name is None or dst_name is None or src_name == dst_name:
            return False
        if not self._shards.exists(src_name):
            return False

        src = self._shards.load(src_name)
        dest = self._shards.load(dst_name)

        now = utc_now()
        for task in sorted(src.tasks, key=lambda t: t.order):
            self._append_moved(dest, task, dst_name)
            task.touch(now)
        if dest.description is None:
            dest.description = src.description

        self._shards.save(dst_name, dest)
        self._shards.delete_shard(src_name)

        logger.info("Tag renamed %s -> %s (%d tasks)", src_name, dst_name, len(src.tasks))
        return True

    def get_tag_details(self, tag: str) -> TagDetails | None:
        name = canonical_tag(tag)
        if name is None or not self._shards.exists(name):
            return None
        record = self._shards.load(name)
        return TagDetails(tag=name, task_count=len(record.tasks), description=record.description)

    def get_all_tags(self) -> list[str]:
        return self._shards.list_tags()
