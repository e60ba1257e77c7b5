# src/pulse_tasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable, Sequence
from typing import cast

from ..core.state import AppState
from ..tasks.tag_list import format_tag_list, sort_tags
from ..tasks.task_models import SubtaskUpdate, Task, TaskStatus, TaskUpdate
from ..tasks.task_store import TaskStore

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    TaskStatus.PENDING: "○",
    TaskStatus.INPROGRESS: "◐",
    TaskStatus.DONE: "●",
}

# flags that take a value; everything else starting with "-" is a switch
_VALUE_FLAGS = {
    "-t": "tag",
    "--tag": "tag",
    "-d": "description",
    "--description": "description",
    "-s": "status",
    "--status": "status",
    "--title": "title",
}


class CommandError(Exception):
    """Bad command-line input; the message is shown to the user as-is."""


class CommandRegistry:
    """Command registry shared by the one-shot CLI and the console loop."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "add 'Fix bug' -t backend" (a leading "/" is allowed).
        Returns a reply string or None for a blank line.
        """
        text = line.strip().removeprefix("/")
        if not text:
            return None
        try:
            parts = shlex.split(text)
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return None
        return self.dispatch(state, parts, emit)

    def dispatch(
        self,
        state: AppState,
        argv: Sequence[str],
        emit: CommandEmitter | None = None,
    ) -> str:
        name = argv[0].lower()
        args = list(argv[1:])

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: {name}. Use help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except CommandError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def parse_flags(args: Sequence[str]) -> tuple[list[str], dict[str, str | bool]]:
    """Split args into positionals and flags ("-t x", "--tag=x", "--all")."""
    positional: list[str] = []
    flags: dict[str, str | bool] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--":
            positional.extend(args[i + 1 :])
            break
        if not arg.startswith("-") or arg == "-" or arg.lstrip("-").isdigit():
            positional.append(arg)
            i += 1
            continue

        name, eq, inline = arg.partition("=")
        if name in _VALUE_FLAGS:
            key = _VALUE_FLAGS[name]
            if eq:
                flags[key] = inline
            elif i + 1 < len(args):
                flags[key] = args[i + 1]
                i += 1
            else:
                raise CommandError(f"{name} needs a value")
        else:
            flags[name.lstrip("-")] = inline if eq else True
        i += 1
    return positional, flags


def _str_flag(flags: dict[str, str | bool], key: str) -> str | None:
    v = flags.get(key)
    return v if isinstance(v, str) else None


def _int_arg(raw: str, what: str = "task ID") -> int:
    try:
        return int(raw)
    except ValueError:
        raise CommandError(f"Invalid {what}: {raw!r}") from None


def _status_arg(raw: str) -> TaskStatus:
    status = TaskStatus.parse(raw)
    if status is None:
        raise CommandError("Invalid status. Use pending, inprogress, or done.")
    return status


def _subtask_ref(raw: str) -> tuple[int, int]:
    """Parse "<task>.<subtask>" such as "3.2"."""
    left, dot, right = raw.partition(".")
    if not dot:
        raise CommandError('Invalid subtask ID format. Use "task.subtask" (e.g. "1.2").')
    return _int_arg(left), _int_arg(right, "subtask ID")


def _tag_label(tag: str | None) -> str:
    return f' in tag "{tag}"' if tag else ""


def _format_task_line(task: Task, *, indent: str = "", subtasks: bool = False) -> list[str]:
    lines = [f"{indent}{STATUS_ICONS[task.status]} #{task.id}: {task.title}"]
    if task.description:
        lines.append(f"{indent}   {task.description}")
    if subtasks:
        for st in task.sorted_subtasks():
            lines.append(f"{indent}   {STATUS_ICONS[st.status]} {task.id}.{st.id}: {st.title}")
    return lines


def _store(state: AppState) -> TaskStore:
    return state.task_store


# ---- task commands ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """add <title...> [-d description] [-t tag]"""
    pos, flags = parse_flags(args)
    title = " ".join(pos)
    if not title.strip():
        raise CommandError('Task title is required. Usage: add "title" [-d desc] [-t tag]')

    tag = _str_flag(flags, "tag") or state.task_store.default_tag
    task = _store(state).create_task(title, _str_flag(flags, "description"), tag)
    if task is None:
        raise CommandError("Task title is required.")
    return f'✓ Created task #{task.id} in "{task.tag}": {task.title}'


def cmd_list(state: AppState, args: list[str]) -> str:
    """list [-t tag] [-s status] [--subtasks] [--all]"""
    _, flags = parse_flags(args)
    tag = _str_flag(flags, "tag")
    raw_status = _str_flag(flags, "status")
    status = _status_arg(raw_status) if raw_status else None
    show_all = flags.get("all") is True
    with_subtasks = flags.get("subtasks") is True

    tasks = _store(state).list_tasks(tag, status)
    if status is None and not show_all:
        tasks = [t for t in tasks if t.status != TaskStatus.DONE]

    if not tasks:
        if status is not None:
            return f'No tasks found with status "{status.value}".'
        if show_all:
            return "No tasks found."
        return "No pending or in-progress tasks found. Use --all to see completed tasks."

    suffix = f" [{status.value}]" if status else ("" if show_all else " [pending/in-progress]")
    lines: list[str] = []
    if tag:
        lines.append(f"Tasks ({tasks[0].tag}){suffix}:")
        lines.append("")
        for task in tasks:
            lines.extend(_format_task_line(task, subtasks=with_subtasks))
    else:
        # orders only compare within one tag, so group before printing
        lines.append(f"Tasks{suffix}:")
        lines.append("")
        by_tag: dict[str, list[Task]] = {}
        for task in tasks:
            by_tag.setdefault(task.tag, []).append(task)
        for name in sort_tags(by_tag, state.task_store.default_tag):
            lines.append(f"{name}:")
            for task in by_tag[name]:
                lines.extend(_format_task_line(task, indent="  ", subtasks=with_subtasks))
            lines.append("")

    n = len(tasks)
    lines.append(f"Total: {n} task{'s' if n != 1 else ''}")
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    """show <id> [-t tag]"""
    pos, flags = parse_flags(args)
    if not pos:
        raise CommandError("Task ID is required. Usage: show <id> [-t tag]")
    task_id = _int_arg(pos[0])
    tag = _str_flag(flags, "tag")

    task = _store(state).get_task(task_id, tag)
    if task is None:
        raise CommandError(f"Task #{task_id} not found{_tag_label(tag)}.")

    lines = _format_task_line(task, subtasks=True)
    lines.append(f"   tag: {task.tag}  status: {task.status.value}")
    if task.subtasks:
        done = sum(1 for st in task.subtasks if st.status == TaskStatus.DONE)
        lines.append(f"   Progress: {done}/{len(task.subtasks)} subtasks completed")
    return "\n".join(lines)


def cmd_update(state: AppState, args: list[str]) -> str:
    """update <id> [--title T] [-d description] [-t new-tag]"""
    pos, flags = parse_flags(args)
    if not pos:
        raise CommandError("Task ID is required. Usage: update <id> [--title T] [-d desc] [-t tag]")
    task_id = _int_arg(pos[0])

    fields: dict[str, str] = {}
    title = _str_flag(flags, "title") or (" ".join(pos[1:]) if len(pos) > 1 else None)
    if title is not None:
        fields["title"] = title
    for key in ("description", "tag"):
        value = _str_flag(flags, key)
        if value is not None:
            fields[key] = value
    update = TaskUpdate(**fields)
    if update.is_empty():
        raise CommandError("Nothing to update. Use --title, -d or -t.")

    task = _store(state).update_task(task_id, update)
    if task is None:
        raise CommandError(f"Task #{task_id} not found (or the new title/tag is invalid).")
    return f'✓ Updated task #{task.id} in "{task.tag}": {task.title}'


def cmd_status(state: AppState, args: list[str]) -> str:
    """status <id> <pending|inprogress|done> [-t tag] [--complete-subtasks]"""
    pos, flags = parse_flags(args)
    if len(pos) < 2:
        raise CommandError("Usage: status <id> <pending|inprogress|done> [-t tag]")
    task_id = _int_arg(pos[0])
    status = _status_arg(pos[1])
    tag = _str_flag(flags, "tag")

    task = _store(state).update_task_status(
        task_id, status, tag, complete_subtasks=flags.get("complete-subtasks") is True
    )
    if task is None:
        raise CommandError(f"Task #{task_id} not found{_tag_label(tag)}.")

    lines = [
        f"{STATUS_ICONS[status]} Task #{task_id} status updated to {status.value}",
        f"   {task.title}",
    ]
    if task.subtasks and status == TaskStatus.DONE:
        done = sum(1 for st in task.subtasks if st.status == TaskStatus.DONE)
        lines.append(f"   {done}/{len(task.subtasks)} subtasks completed")
    return "\n".join(lines)


def cmd_cycle(state: AppState, args: list[str]) -> str:
    """cycle <id> [-t tag]: PENDING -> INPROGRESS -> DONE -> PENDING"""
    pos, flags = parse_flags(args)
    if not pos:
        raise CommandError("Usage: cycle <id> [-t tag]")
    task_id = _int_arg(pos[0])
    tag = _str_flag(flags, "tag")

    store = _store(state)
    current = store.get_task(task_id, tag)
    if current is None:
        raise CommandError(f"Task #{task_id} not found{_tag_label(tag)}.")

    task = store.update_task_status(task_id, current.status.cycled(), current.tag)
    if task is None:
        raise CommandError(f"Task #{task_id} not found{_tag_label(tag)}.")
    return f"{STATUS_ICONS[task.status]} Task #{task.id} -> {task.status.value}: {task.title}"


def cmd_next(state: AppState, args: list[str]) -> str:
    """next [-t tag]"""
    _, flags = parse_flags(args)
    tag = _str_flag(flags, "tag")
    task = _store(state).get_next_task(tag)
    if task is None:
        return f"No pending or in-progress tasks{_tag_label(tag)}."
    lines = ["Next task:"]
    lines.extend(_format_task_line(task, subtasks=True))
    lines.append(f"   tag: {task.tag}")
    return "\n".join(lines)


def cmd_delete(state: AppState, args: list[str]) -> str:
    """delete <id> [-t tag]"""
    pos, flags = parse_flags(args)
    if not pos:
        raise CommandError("Usage: delete <id> [-t tag]")
    task_id = _int_arg(pos[0])
    tag = _str_flag(flags, "tag")
    if not _store(state).delete_task(task_id, tag):
        raise CommandError(f"Task #{task_id} not found{_tag_label(tag)}.")
    return f"✓ Deleted task #{task_id}"


# ---- subtask commands ----

_SUBTASK_USAGE = (
    "Usage:\n"
    "  subtask add <parent-id> <title...> [-t tag]\n"
    "  subtask list <parent-id> [-t tag]\n"
    "  subtask status <task.subtask> <pending|inprogress|done> [-t tag]\n"
    "  subtask update <task.subtask> <title...> [-t tag]\n"
    "  subtask delete <task.subtask> [-t tag]\n"
    "  subtask move <parent-id> <from-pos> <to-pos> [-t tag]"
)


def cmd_subtask(state: AppState, args: list[str]) -> str:
    pos, flags = parse_flags(args)
    if not pos:
        return _SUBTASK_USAGE

    action, rest = pos[0].lower(), pos[1:]
    tag = _str_flag(flags, "tag")
    store = _store(state)

    if action == "add":
        if len(rest) < 2:
            raise CommandError('Usage: subtask add <parent-id> "title" [-t tag]')
        parent_id = _int_arg(rest[0])
        title = " ".join(rest[1:])
        subtask = store.add_subtask(parent_id, title, tag)
        if subtask is None:
            raise CommandError(f"Parent task #{parent_id} not found{_tag_label(tag)}.")
        return f'✓ Added subtask {parent_id}.{subtask.id}: "{subtask.title}"'

    if action == "list":
        if not rest:
            raise CommandError("Usage: subtask list <parent-id> [-t tag]")
        parent_id = _int_arg(rest[0])
        task = store.get_task(parent_id, tag)
        if task is None:
            raise CommandError(f"Task #{parent_id} not found{_tag_label(tag)}.")
        if not task.subtasks:
            return f"Task #{parent_id} has no subtasks."
        lines = [f"Subtasks for task #{parent_id}: {task.title}", ""]
        for st in task.sorted_subtasks():
            lines.append(f"{STATUS_ICONS[st.status]} {parent_id}.{st.id}: {st.title}")
        done = sum(1 for st in task.subtasks if st.status == TaskStatus.DONE)
        lines.append("")
        lines.append(f"Progress: {done}/{len(task.subtasks)} completed")
        return "\n".join(lines)

    if action == "status":
        if len(rest) < 2:
            raise CommandError("Usage: subtask status <task.subtask> <pending|inprogress|done>")
        parent_id, subtask_id = _subtask_ref(rest[0])
        status = _status_arg(rest[1])
        subtask = store.update_subtask_status(parent_id, subtask_id, status, tag)
        if subtask is None:
            raise CommandError(f"Subtask {parent_id}.{subtask_id} not found{_tag_label(tag)}.")
        return (
            f"{STATUS_ICONS[status]} Subtask {parent_id}.{subtask_id} status updated to "
            f"{status.value}\n   {subtask.title}"
        )

    if action == "update":
        if len(rest) < 2:
            raise CommandError('Usage: subtask update <task.subtask> "new title"')
        parent_id, subtask_id = _subtask_ref(rest[0])
        subtask = store.update_subtask(
            parent_id, subtask_id, SubtaskUpdate(title=" ".join(rest[1:])), tag
        )
        if subtask is None:
            raise CommandError(f"Subtask {parent_id}.{subtask_id} not found{_tag_label(tag)}.")
        return f'✓ Updated subtask {parent_id}.{subtask_id}: "{subtask.title}"'

    if action == "delete":
        if not rest:
            raise CommandError("Usage: subtask delete <task.subtask>")
        parent_id, subtask_id = _subtask_ref(rest[0])
        if not store.delete_subtask(parent_id, subtask_id, tag):
            raise CommandError(f"Subtask {parent_id}.{subtask_id} not found{_tag_label(tag)}.")
        return f"✓ Deleted subtask {parent_id}.{subtask_id}"

    if action == "move":
        if len(rest) < 3:
            raise CommandError("Usage: subtask move <parent-id> <from-pos> <to-pos>")
        parent_id = _int_arg(rest[0])
        # positions are 1-based for people, 0-based for the store
        src = _int_arg(rest[1], "position") - 1
        dst = _int_arg(rest[2], "position") - 1
        ordered = store.reorder_subtasks(parent_id, src, dst, tag)
        if ordered is None:
            raise CommandError(f"Task #{parent_id} not found or position out of range.")
        lines = [f"✓ Reordered subtasks of task #{parent_id}:"]
        for st in ordered:
            lines.append(f"  {st.order}. {STATUS_ICONS[st.status]} {parent_id}.{st.id}: {st.title}")
        return "\n".join(lines)

    raise CommandError(f"Unknown subtask action: {action}.\n{_SUBTASK_USAGE}")


# ---- tag commands ----

_TAG_USAGE = (
    "Usage:\n"
    "  tag list [--all]\n"
    "  tag create <name> [-d description]\n"
    "  tag show <name>\n"
    "  tag update <name> -d description\n"
    "  tag delete <name>\n"
    "  tag rename <old> <new>"
)


def cmd_tags(state: AppState, args: list[str]) -> str:
    """tags [--all]"""
    _, flags = parse_flags(args)
    return format_tag_list(_store(state), show_all=flags.get("all") is True)


def cmd_tag(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    pos, flags = parse_flags(args)
    if not pos or pos[0].lower() == "list":
        return format_tag_list(_store(state), show_all=flags.get("all") is True)

    action, rest = pos[0].lower(), pos[1:]
    store = _store(state)
    description = _str_flag(flags, "description")

    if action == "create":
        if not rest:
            raise CommandError("Usage: tag create <name> [-d description]")
        name = store.create_tag(" ".join(rest), description)
        if name is None:
            raise CommandError(f'Invalid tag name: "{" ".join(rest)}".')
        return f'✓ Tag "{name}" ready'

    if action == "show":
        if not rest:
            raise CommandError("Usage: tag show <name>")
        details = store.get_tag_details(rest[0])
        if details is None:
            raise CommandError(f'Tag "{rest[0]}" not found.')
        lines = [f"Tag: {details.tag}"]
        if details.description:
            lines.append(f"Description: {details.description}")
        lines.append(f"Tasks: {details.task_count}")
        return "\n".join(lines)

    if action == "update":
        if not rest:
            raise CommandError("Usage: tag update <name> -d description")
        if description is None:
            raise CommandError('Description required (-d "desc").')
        if not store.update_tag(rest[0], description):
            raise CommandError(f'Tag "{rest[0]}" not found.')
        return f'✓ Tag "{rest[0]}" updated'

    if action == "delete":
        if not rest:
            raise CommandError("Usage: tag delete <name>")
        details = store.get_tag_details(rest[0])
        if details is None or not store.delete_tag(rest[0]):
            raise CommandError(f'Tag "{rest[0]}" not found.')
        if emit is not None and details.task_count:
            emit(f"Removed {details.task_count} task(s) with the tag.")
        return f'✓ Tag "{details.tag}" deleted'

    if action == "rename":
        if len(rest) < 2:
            raise CommandError("Usage: tag rename <old> <new>")
        if not store.rename_tag(rest[0], rest[1]):
            raise CommandError(f'Could not rename "{rest[0]}" to "{rest[1]}".')
        return f'✓ Tag "{rest[0]}" renamed to "{rest[1]}"'

    raise CommandError(f"Unknown tag action: {action}.\n{_TAG_USAGE}")


def cmd_where(state: AppState, args: list[str]) -> str:
    return str(_store(state).pulse_dir)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text='Create a task: add "title" [-d desc] [-t tag].')
registry.register(
    "list", cmd_list, help_text="List tasks: list [-t tag] [-s status] [--subtasks] [--all].",
    aliases=["ls"],
)
registry.register("show", cmd_show, help_text="Show a task with its subtasks: show <id> [-t tag].")
registry.register(
    "update", cmd_update, help_text="Edit a task: update <id> [--title T] [-d desc] [-t tag]."
)
registry.register(
    "status",
    cmd_status,
    help_text="Set status: status <id> <pending|inprogress|done> [--complete-subtasks].",
)
registry.register("cycle", cmd_cycle, help_text="Advance status: pending -> inprogress -> done.")
registry.register("next", cmd_next, help_text="Show the task to work on next: next [-t tag].")
registry.register("delete", cmd_delete, help_text="Delete a task: delete <id> [-t tag].", aliases=["rm"])
registry.register(
    "subtask", cmd_subtask, help_text="Manage subtasks: subtask <add|list|status|update|delete|move>."
)
registry.register(
    "tag", cmd_tag, help_text="Manage tags: tag <list|create|show|update|delete|rename>."
)
registry.register("tags", cmd_tags, help_text="List tags with open tasks: tags [--all].")
registry.register("where", cmd_where, help_text="Print the storage directory.")
