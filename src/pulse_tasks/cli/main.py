# src/pulse_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs the single command given on the command line, or
- starts the line-oriented console loop when no command is given.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from ..cli.bootstrap import create_initial_state
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _split_working_dir(argv: list[str]) -> tuple[str | None, list[str]]:
    """Pull the global -w/--working-dir option out of argv."""
    working_dir: str | None = None
    rest: list[str] = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ("-w", "--working-dir") and i + 1 < len(argv):
            working_dir = argv[i + 1]
            i += 2
            continue
        if arg.startswith("--working-dir="):
            working_dir = arg.split("=", 1)[1]
            i += 1
            continue
        rest.append(arg)
        i += 1
    return working_dir, rest


def main(argv: Sequence[str] | None = None) -> int:
    settings = get_settings()
    working_dir, args = _split_working_dir(list(sys.argv[1:] if argv is None else argv))

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    # command output goes to stdout; keep stderr for warnings unless asked for more
    setup_logging(
        log_dir=settings.log_dir if settings.file_logging else None,
        console_level=max(console_level, logging.WARNING) if args else console_level,
    )

    try:
        state = create_initial_state(settings=settings, working_dir=working_dir)
    except OSError as e:
        logger.exception("Failed to open task storage.")
        print(f"Error: cannot open task storage: {e}", file=sys.stderr)
        return 1

    if not args:
        run_console_loop(state)
        return 0

    try:
        reply = command_registry.dispatch(state, args)
    except OSError as e:
        logger.exception("Storage error while running %r", args)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(reply)
    return 1 if reply.startswith(("Error:", "Unknown command")) else 0


if __name__ == "__main__":
    sys.exit(main())
