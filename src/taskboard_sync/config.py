# src/taskboard_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No connection is opened at import time.
- Legacy SOCKET_URL / VITE_SOCKET_URL are honored when the prefixed name is unset.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKBOARD"

DEFAULT_SOCKET_URL = "ws://localhost:3001"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def normalize_socket_url(url: str) -> str:
    """
    Map http(s) endpoints onto the matching ws(s) scheme.

    Only the scheme changes. The server behind the URL must speak this
    client's framing (one JSON text frame per event, {"event", "data"});
    a Socket.IO endpoint cannot decode these frames.
    """
    url = (url or "").strip() or DEFAULT_SOCKET_URL
    if url.startswith("https://"):
        return "wss://" + url[len("https://") :]
    if url.startswith("http://"):
        return "ws://" + url[len("http://") :]
    if url.startswith(("ws://", "wss://")):
        return url
    return f"ws://{url}"


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path
    log_to_file: bool

    # ---- Event channel ----
    socket_url: str
    reconnect_attempts: int
    reconnect_delay: float
    reconnect_delay_max: float
    connect_timeout: float

    # ---- Sync policy ----
    clear_on_disconnect: bool

    # ---- Console client ----
    console_enabled: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskboard") or "taskboard"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskboard"))
        log_to_file = _env_bool(_k("LOG_TO_FILE"), True)

        socket_url = normalize_socket_url(
            _first_env(_k("SOCKET_URL"), "SOCKET_URL", "VITE_SOCKET_URL", default=DEFAULT_SOCKET_URL)
            or DEFAULT_SOCKET_URL
        )

        # 5 attempts, 1s..5s backoff, 10s handshake.
        reconnect_attempts = max(0, _env_int(_k("RECONNECT_ATTEMPTS"), 5))
        reconnect_delay = max(0.0, _env_float(_k("RECONNECT_DELAY"), 1.0))
        reconnect_delay_max = max(reconnect_delay, _env_float(_k("RECONNECT_DELAY_MAX"), 5.0))
        connect_timeout = max(0.1, _env_float(_k("CONNECT_TIMEOUT"), 10.0))

        clear_on_disconnect = _env_bool(_k("CLEAR_ON_DISCONNECT"), False)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            log_to_file=log_to_file,
            socket_url=socket_url,
            reconnect_attempts=reconnect_attempts,
            reconnect_delay=reconnect_delay,
            reconnect_delay_max=reconnect_delay_max,
            connect_timeout=connect_timeout,
            clear_on_disconnect=clear_on_disconnect,
            console_enabled=console_enabled,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
