# src/pulse_tasks/tasks/shard_store.py

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from .tag_names import is_valid_tag, normalize_tag
from .task_models import ShardRecord, Subtask, Task, TaskLookup, TaskStatus, utc_now

logger = logging.getLogger(__name__)

PULSE_DIR_NAME = ".pulse"
SHARD_SUFFIX = ".yml"


class CorruptShardError(ValueError):
    """A shard file parsed, but its content is not a shard record."""


class ShardStore:
    """
    YAML shard store: one file per tag under <base_dir>/.pulse/.

    - each call reads or writes the whole file; nothing is cached
    - unreadable shards load as empty records (logged, not raised)
    - write failures are logged and re-raised
    - no cross-shard invariants are enforced here
    """

    def __init__(self, base_dir: str | Path) -> None:
        self._pulse_dir = (Path(base_dir).expanduser() / PULSE_DIR_NAME).resolve()
        self._pulse_dir.mkdir(parents=True, exist_ok=True)
        logger.info("ShardStore ready dir=%s tags=%s", self._pulse_dir, len(self.list_tags()))

    @property
    def pulse_dir(self) -> Path:
        return self._pulse_dir

    # ---- low-level helpers ----

    def _shard_path(self, tag: str) -> Path:
        name = normalize_tag(tag)
        if not is_valid_tag(name):
            raise ValueError(f"invalid tag name: {tag!r}")
        return self._pulse_dir / f"{name}{SHARD_SUFFIX}"

    @staticmethod
    def _ts_to_str(ts: datetime) -> str:
        return ts.astimezone(UTC).isoformat().replace("+00:00", "Z")

    @staticmethod
    def _parse_ts(raw: Any) -> datetime:
        # PyYAML turns unquoted ISO timestamps into datetime on its own.
        if isinstance(raw, datetime):
            ts = raw
        elif isinstance(raw, str) and raw.strip():
            ts = datetime.fromisoformat(raw.strip())
        else:
            return utc_now()
        return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)

    def _subtask_from_dict(self, raw: dict[str, Any]) -> Subtask:
        return Subtask(
            id=int(raw["id"]),
            title=str(raw.get("title") or ""),
            status=TaskStatus.from_raw(raw.get("status")),
            order=int(raw.get("order") or 0),
            created_at=self._parse_ts(raw.get("createdAt")),
            updated_at=self._parse_ts(raw.get("updatedAt")),
        )

    def _task_from_dict(self, raw: dict[str, Any], tag: str) -> Task:
        subtasks_raw = raw.get("subtasks") or []
        if not isinstance(subtasks_raw, list):
            raise CorruptShardError("subtasks must be a list")
        description = raw.get("description")
        return Task(
            id=int(raw["id"]),
            title=str(raw.get("title") or ""),
            description=None if description is None else str(description),
            status=TaskStatus.from_raw(raw.get("status")),
            # the file a task lives in decides its tag
            tag=tag,
            order=int(raw.get("order") or 0),
            subtasks=[self._subtask_from_dict(st) for st in subtasks_raw],
            created_at=self._parse_ts(raw.get("createdAt")),
            updated_at=self._parse_ts(raw.get("updatedAt")),
        )

    def _record_from_data(self, data: Any, tag: str) -> ShardRecord:
        if data is None:
            return ShardRecord()
        if not isinstance(data, dict):
            raise CorruptShardError(f"expected a mapping, got {type(data).__name__}")

        tasks_raw = data.get("tasks") or []
        if not isinstance(tasks_raw, list):
            raise CorruptShardError("tasks must be a list")
        tasks = [self._task_from_dict(t, tag) for t in tasks_raw]

        next_id = int(data.get("next_id") or 1)
        highest = max((t.id for t in tasks), default=0)
        if next_id <= highest:
            logger.warning(
                "Shard %s next_id=%s not above highest id=%s; raising it", tag, next_id, highest
            )
            next_id = highest + 1

        description = data.get("description")
        return ShardRecord(
            next_id=next_id,
            tasks=tasks,
            description=None if description is None else str(description),
        )

    def _subtask_to_dict(self, st: Subtask) -> dict[str, Any]:
        return {
            "id": st.id,
            "title": st.title,
            "status": st.status.value,
            "order": st.order,
            "createdAt": self._ts_to_str(st.created_at),
            "updatedAt": self._ts_to_str(st.updated_at),
        }

    def _task_to_dict(self, task: Task) -> dict[str, Any]:
        out: dict[str, Any] = {"id": task.id, "title": task.title}
        if task.description is not None:
            out["description"] = task.description
        out.update(
            {
                "status": task.status.value,
                "tag": task.tag,
                "order": task.order,
                "subtasks": [self._subtask_to_dict(st) for st in task.subtasks],
                "createdAt": self._ts_to_str(task.created_at),
                "updatedAt": self._ts_to_str(task.updated_at),
            }
        )
        return out

    def _record_to_data(self, record: ShardRecord) -> dict[str, Any]:
        out: dict[str, Any] = {"next_id": record.next_id}
        if record.description is not None:
            out["description"] = record.description
        out["tasks"] = [self._task_to_dict(t) for t in record.tasks]
        return out

    # ---- public API ----

    def exists(self, tag: str) -> bool:
        return self._shard_path(tag).is_file()

    def load(self, tag: str) -> ShardRecord:
        path = self._shard_path(tag)
        if not path.exists():
            return ShardRecord()

        canonical = path.name[: -len(SHARD_SUFFIX)]
        try:
            data = yaml.safe_load(path.read_text("utf-8"))
            return self._record_from_data(data, canonical)
        except (OSError, yaml.YAMLError, AttributeError, KeyError, TypeError, ValueError):
            logger.exception("Failed to load shard %s; starting empty", path)
            return ShardRecord()

    def save(self, tag: str, record: ShardRecord) -> None:
        path = self._shard_path(tag)
        tmp = path.with_name(path.name + ".tmp")
        try:
            text = yaml.safe_dump(
                self._record_to_data(record),
                allow_unicode=True,
                sort_keys=False,
                default_flow_style=False,
            )
            tmp.write_text(text, "utf-8")
            os.replace(tmp, path)
        except OSError:
            logger.exception("Failed to save shard %s", path)
            raise
        logger.debug("Shard saved tag=%s tasks=%d next_id=%d", tag, len(record.tasks), record.next_id)

    def list_tags(self) -> list[str]:
        try:
            entries = list(self._pulse_dir.iterdir())
        except OSError:
            logger.exception("Failed to list shards in %s", self._pulse_dir)
            return []
        tags: list[str] = []
        for p in entries:
            if not p.name.endswith(SHARD_SUFFIX) or not p.is_file():
                continue
            name = p.name[: -len(SHARD_SUFFIX)]
            if is_valid_tag(name):
                tags.append(name)
        return tags

    def find_task_any_tag(self, task_id: int) -> TaskLookup:
        for tag in self.list_tags():
            record = self.load(tag)
            task = record.find_task(task_id)
            if task is not None:
                return TaskLookup(task=task, tag=tag, record=record)
        return TaskLookup.missing()

    def delete_shard(self, tag: str) -> None:
        path = self._shard_path(tag)
        path.unlink(missing_ok=True)
        logger.debug("Shard deleted tag=%s", tag)
