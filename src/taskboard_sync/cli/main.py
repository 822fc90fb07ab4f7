# src/taskboard_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, then starts:
- the sync engine on its own event loop in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..config import get_settings
from ..connectors.board_runner import start_board_in_background
from ..connectors.console_connector import print_board_change, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()

    log_file = setup_logging(settings.log_level, log_dir=settings.data_dir if settings.log_to_file else None)

    logger.info("Starting %s (channel %s)...", settings.app_name, settings.socket_url)
    if log_file is not None:
        logger.debug("Writing full log to %s", log_file)

    runner = start_board_in_background(settings, on_change=print_board_change)
    if runner is None:
        logger.error("Sync engine failed to start.")
        return 1

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # input() needs the default SIGINT behaviour (KeyboardInterrupt).
            run_console_loop(runner, app_name=settings.app_name)
            stop_main.set()
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                # Not on the main thread, or the platform lacks SIGTERM.
                pass
            logger.info("Console disabled. Watching the board only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        runner.stop()
        runner.join(timeout=10.0)
        logger.info("Bye.")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
