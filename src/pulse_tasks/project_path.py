# src/pulse_tasks/project_path.py

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def find_git_root(start_dir: str | Path) -> Path | None:
    """Walk up from start_dir to the first directory containing .git (file or dir)."""
    current = Path(start_dir).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def resolve_project_root(
    override: str | Path | None = None,
    start_dir: str | Path | None = None,
) -> Path:
    """
    Pick the directory that holds .pulse/.

    Precedence:
    1. explicit override (~ expanded, made absolute)
    2. nearest ancestor of start_dir (or CWD) with a .git entry
    3. start_dir itself, with a warning
    """
    if override:
        return Path(override).expanduser().resolve()

    start = Path(start_dir).resolve() if start_dir else Path.cwd()
    git_root = find_git_root(start)
    if git_root is not None:
        return git_root

    logger.warning(
        "No .git folder found; using %s as project root. "
        "Use --working-dir or PULSE_WORKING_DIR to choose another location.",
        start,
    )
    return start
