# src/taskboard_sync/core/engine.py

"""
Sync engine: the thin shell around the board reducer.

    presentation -> CommandEmitter -> channel -> authority
    authority -> channel -> parse_inbound -> TaskStore.dispatch -> listeners

The engine owns the subscriptions it makes and releases all of them in
close(). `open_engine` composes a real WebSocket channel with an engine and
guarantees teardown on every exit path.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from ..board.task_commands import CommandEmitter
from ..board.task_events import (
    CONNECT,
    CONNECT_ERROR,
    DISCONNECT,
    INBOUND_EVENTS,
    RECONNECT_FAILED,
    SYNC_REQUEST,
    BoardCleared,
    SyncRequested,
    parse_inbound,
)
from ..board.task_models import Stage, Task
from ..board.task_reducer import BoardState, BoardSummary, summarize
from ..board.task_store import StoreListener, TaskStore
from .ports import EventChannel, Subscription

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(self, channel: EventChannel, *, clear_on_disconnect: bool = False) -> None:
        self.channel = channel
        self.clear_on_disconnect = clear_on_disconnect
        self.store = TaskStore()
        self.commands = CommandEmitter(channel)

        self.last_error: str | None = None
        self._subscriptions: list[Subscription] = []
        self._started = False

    # ---- Lifecycle ----

    def start(self) -> None:
        """Subscribe to inbound events and lifecycle signals; sync if already connected."""
        if self._started:
            return
        self._started = True

        for name in INBOUND_EVENTS:
            self._subscriptions.append(self.channel.subscribe(name, self._make_inbound_handler(name)))

        self._subscriptions.append(self.channel.subscribe(CONNECT, self._on_connect))
        self._subscriptions.append(self.channel.subscribe(DISCONNECT, self._on_disconnect))
        self._subscriptions.append(self.channel.subscribe(CONNECT_ERROR, self._on_connect_error))
        self._subscriptions.append(self.channel.subscribe(RECONNECT_FAILED, self._on_connect_error))
        logger.debug("Engine subscribed to %d channel events", len(self._subscriptions))

        if self.channel.connected:
            self.request_sync()

    def close(self) -> None:
        """Release every subscription and drop board state. Idempotent."""
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.close()
        if self._started:
            logger.debug("Engine released %d subscriptions", len(subs))
        self._started = False
        self.store.reset()

    def __enter__(self) -> SyncEngine:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---- Inbound ----

    def _make_inbound_handler(self, name: str) -> Callable[[Any], None]:
        def _handler(payload: Any) -> None:
            event = parse_inbound(name, payload)
            if event is not None:
                self.store.dispatch(event)

        _handler.__name__ = f"on_{name.replace(':', '_')}"
        return _handler

    def _on_connect(self, _payload: Any) -> None:
        self.last_error = None
        # Events missed while offline are only recoverable through a full sync.
        self.request_sync()

    def _on_disconnect(self, reason: Any) -> None:
        logger.info("Board offline: %s", reason)
        if self.clear_on_disconnect:
            self.store.dispatch(BoardCleared(reason=str(reason or "")))

    def _on_connect_error(self, message: Any) -> None:
        self.last_error = str(message) if message else "Connection error"

    # ---- Outbound ----

    def request_sync(self) -> bool:
        """Ask the authority for the full task list; sets the loading flag when sent."""
        if not self.channel.connected or not self.channel.send(SYNC_REQUEST, None):
            logger.error("Command without connection: %s dropped", SYNC_REQUEST)
            return False
        logger.info("Requested full sync.")
        self.store.dispatch(SyncRequested())
        return True

    # ---- Read side ----

    @property
    def snapshot(self) -> BoardState:
        return self.store.snapshot

    @property
    def loading(self) -> bool:
        return self.store.loading

    @property
    def connected(self) -> bool:
        return self.channel.connected

    @property
    def connection(self) -> Any:
        """The channel's ConnectionStatus, when the channel exposes one."""
        return getattr(self.channel, "status", None)

    def tasks(self) -> dict[Stage, list[Task]]:
        return self.store.tasks()

    def summary(self) -> BoardSummary:
        return summarize(self.store.snapshot)

    def on_change(self, listener: StoreListener) -> Callable[[], None]:
        return self.store.subscribe(listener)


@contextlib.asynccontextmanager
async def open_engine(settings) -> AsyncIterator[SyncEngine]:
    """
    Connect to `settings.socket_url` and yield a started engine.

    A failed first connection is not fatal: the channel keeps retrying in the
    background and the engine syncs as soon as it comes up.
    """
    from ..connectors.socket_channel import ChannelConnection

    channel = ChannelConnection.from_settings(settings)
    engine = SyncEngine(channel, clear_on_disconnect=settings.clear_on_disconnect)
    engine.start()
    try:
        await channel.connect()
        yield engine
    finally:
        engine.close()
        await channel.disconnect()
