# src/pulse_tasks/tasks/tag_list.py

from __future__ import annotations

from collections.abc import Iterable

from .task_models import TaskStatus
from .task_store import DEFAULT_TAG, TaskStore

_OPEN = (TaskStatus.PENDING, TaskStatus.INPROGRESS)


def sort_tags(tags: Iterable[str], default_tag: str = DEFAULT_TAG) -> list[str]:
    """Default tag first, then the rest alphabetically (store order is arbitrary)."""
    return sorted(set(tags), key=lambda t: (t != default_tag, t))


def format_tag_list(store: TaskStore, *, show_all: bool = False) -> str:
    tags = sort_tags(store.get_all_tags(), store.default_tag)

    if show_all:
        lines = ["All tags:"]
        for tag in tags:
            details = store.get_tag_details(tag)
            count = details.task_count if details else 0
            desc = f" - {details.description}" if details and details.description else ""
            lines.append(f"  {tag} ({count} tasks){desc}")
        return "\n".join(lines)

    lines = ["Tags with open tasks:"]
    for tag in tags:
        open_tasks = [t for t in store.list_tasks(tag) if t.status in _OPEN]
        if not open_tasks:
            continue
        details = store.get_tag_details(tag)
        desc = f" - {details.description}" if details and details.description else ""
        lines.append(f"  {tag} ({len(open_tasks)} open){desc}")

    if len(lines) == 1:
        lines.append("  No tags with open tasks found.")
    return "\n".join(lines)
