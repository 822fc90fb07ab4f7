# src/taskboard_sync/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..board.task_reducer import BoardState, summarize
from ..cli.commands import ConsoleContext, EngineGateway
from ..cli.commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def print_board_change(state: BoardState) -> None:
    """Store listener: one line per change, runs on the engine thread."""
    summary = summarize(state)
    counts = " | ".join(f"{stage.value}: {n}" for stage, n in summary.counts.items())
    suffix = " (syncing)" if state.loading else ""
    _print_ts(f"[BOARD] {counts}{suffix}")


def run_console_loop(gateway: EngineGateway, *, app_name: str = "taskboard") -> None:
    logger.info("Console connector started.")
    _print_ts(f"[{app_name}] Type /help for commands, /board to show tasks, /exit to quit.\n")

    ctx = ConsoleContext(gateway=gateway)

    while True:
        try:
            line = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = command_registry.handle(ctx, line)
        except TimeoutError:
            logger.warning("Engine did not answer in time for %r", line)
            response = "Engine is busy, try again."
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list them."

        _print_ts(response)

    logger.info("Console connector finished.")
