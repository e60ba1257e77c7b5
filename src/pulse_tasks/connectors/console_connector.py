# src/pulse_tasks/connectors/console_connector.py

from __future__ import annotations

import logging

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = "pulse> "


def run_console_loop(state: AppState) -> None:
    """Line-oriented session: each line is one command, same syntax as the CLI."""
    logger.info("Console started (pulse_dir=%s).", state.task_store.pulse_dir)
    print(f"[{state.settings.app_name}] {state.task_store.pulse_dir}")
    print("Type a command (help lists them). Use exit to quit.\n")

    def emit(text: str) -> None:
        print(text, flush=True)

    while True:
        try:
            line = input(PROMPT).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            print()
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower().lstrip("/") in ("exit", "quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = command_registry.handle(state, line, emit=emit)
        except Exception:
            logger.exception("Command handler crashed: %r", line)
            reply = "Internal error while handling a command."

        if reply is not None:
            print(reply)

    logger.info("Console finished.")
