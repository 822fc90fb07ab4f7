# src/taskboard_sync/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskboard.log"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Make the interactive console usable:
    - allow most taskboard_sync logs
    - but keep per-event reducer chatter out unless WARNING+
    - suppress websockets frame/keepalive noise unless WARNING+
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("taskboard_sync."):
            # Inbound events arrive continuously; the file log keeps them.
            if name.startswith("taskboard_sync.board."):
                return record.levelno >= logging.WARNING
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        if name.startswith("websockets"):
            return record.levelno >= logging.WARNING

        return record.levelno >= logging.ERROR


def resolve_level(level: int | str, default: int = logging.INFO) -> int:
    """'debug', 'WARNING', 10 ... -> logging level number; unknown names give `default`."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    level: int | str = logging.INFO,
    *,
    log_dir: str | Path | None = ".local/taskboard",
    file_level: int | str = logging.DEBUG,
) -> Path | None:
    """
    Install the console handler (filtered) and, unless `log_dir` is None,
    a full-detail file handler at <log_dir>/taskboard.log.

    `level` accepts a name as it appears in TASKBOARD_LOG_LEVEL. Returns the
    log file path, or None when file logging is off. Replaces whatever
    handlers the root logger already had, so calling it twice is harmless.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    log_file: Path | None = None
    if log_dir is not None:
        log_file = Path(log_dir) / LOG_FILE_NAME
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(resolve_level(file_level, default=logging.DEBUG))
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)

    # websockets logs every frame at DEBUG; the file does not need that either.
    logging.getLogger("websockets").setLevel(logging.INFO)
    return log_file
