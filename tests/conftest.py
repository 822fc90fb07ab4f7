# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskboard_sync.core.engine import SyncEngine

from .fakes import InMemoryChannel


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the engine and the channel.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the caller's environment.
    """
    return SimpleNamespace(
        app_name="taskboard-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        log_to_file=False,
        socket_url="ws://127.0.0.1:9",
        reconnect_attempts=2,
        reconnect_delay=0.01,
        reconnect_delay_max=0.02,
        connect_timeout=1.0,
        clear_on_disconnect=False,
        console_enabled=False,
    )


@pytest.fixture()
def channel() -> InMemoryChannel:
    return InMemoryChannel(connected=True)


@pytest.fixture()
def engine(channel: InMemoryChannel):
    """Started engine on the in-memory channel; released after the test."""
    eng = SyncEngine(channel)
    eng.start()
    yield eng
    eng.close()
