# src/taskboard_sync/connectors/socket_channel.py

"""
WebSocket event channel to the board authority.

Each message is one text frame holding {"event": <name>, "data": <payload>}.
The channel owns the connection lifecycle (connect, bounded reconnection,
teardown) and fans inbound events out to subscribed handlers. It knows
nothing about tasks.

Lifecycle transitions are published to subscribers as local signals:
connect, disconnect(reason), connect_error(message), reconnect_failed(message).
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from ..board.task_events import CONNECT, CONNECT_ERROR, DISCONNECT, RECONNECT_FAILED
from ..core.ports import EventHandler, HandlerRegistry, Subscription

logger = logging.getLogger(__name__)

_LIFECYCLE = frozenset({CONNECT, DISCONNECT, CONNECT_ERROR, RECONNECT_FAILED})


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    state: ConnectionState
    error: str | None = None

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED


def encode_frame(name: str, payload: Any = None) -> str:
    return json.dumps({"event": name, "data": payload}, ensure_ascii=False)


def decode_frame(raw: str | bytes) -> tuple[str, Any] | None:
    """Frame -> (name, payload), or None if it is not a well-formed event frame."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        obj = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None
    name = obj.get("event")
    if not isinstance(name, str) or not name:
        return None
    return name, obj.get("data")


def _describe(exc: BaseException) -> str:
    text = str(exc).strip()
    if isinstance(exc, TimeoutError):
        return text or "timeout"
    return text or type(exc).__name__


class ChannelConnection:
    """
    One logical connection to the authority's event channel.

    Use as an async context manager to guarantee teardown:

        async with ChannelConnection(url) as channel:
            ...
    """

    def __init__(
        self,
        url: str,
        *,
        reconnection: bool = True,
        reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        reconnect_delay_max: float = 5.0,
        connect_timeout: float = 10.0,
        ping_interval: float | None = 20.0,
    ) -> None:
        self.url = url
        self.reconnection = reconnection
        self.reconnect_attempts = max(0, int(reconnect_attempts))
        self.reconnect_delay = max(0.0, float(reconnect_delay))
        self.reconnect_delay_max = max(self.reconnect_delay, float(reconnect_delay_max))
        self.connect_timeout = connect_timeout
        self.ping_interval = ping_interval

        self._handlers = HandlerRegistry()
        self._status = ConnectionStatus(ConnectionState.DISCONNECTED)

        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[tuple[str, str]] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._closing = False

    @classmethod
    def from_settings(cls, settings) -> ChannelConnection:
        return cls(
            settings.socket_url,
            reconnect_attempts=settings.reconnect_attempts,
            reconnect_delay=settings.reconnect_delay,
            reconnect_delay_max=settings.reconnect_delay_max,
            connect_timeout=settings.connect_timeout,
        )

    # ---- Observable state ----

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status.connected and self._ws is not None

    @property
    def reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def _set_status(self, state: ConnectionState, error: str | None = None) -> None:
        prev = self._status
        self._status = ConnectionStatus(state, error)
        if prev.state != state:
            logger.debug("Channel %s -> %s%s", prev.state.value, state.value, f" ({error})" if error else "")

    # ---- Subscriptions ----

    def subscribe(self, name: str, handler: EventHandler) -> Subscription:
        self._handlers.add(name, handler)
        return Subscription(channel=self, name=name, handler=handler)

    def unsubscribe(self, name: str, handler: EventHandler) -> None:
        self._handlers.remove(name, handler)

    def handler_count(self, name: str | None = None) -> int:
        return self._handlers.count(name)

    # ---- Connect / reconnect ----

    async def connect(self) -> bool:
        """
        Open the connection. Returns True once connected.

        On failure the status becomes error(reason) and, if reconnection is
        enabled, the bounded retry loop starts in the background.
        """
        if self.connected or self._status.state == ConnectionState.CONNECTING:
            return self.connected
        self._closing = False

        # A manual connect replaces any backoff in progress.
        pending = self._reconnect_task
        if pending is not None and not pending.done() and pending is not asyncio.current_task():
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)
            self._reconnect_task = None
            if self.connected:
                return True
        ok = await self._open()
        if not ok and self.reconnection:
            self._start_reconnect()
        return ok

    async def _open(self) -> bool:
        self._set_status(ConnectionState.CONNECTING)
        logger.info("Connecting to %s...", self.url)
        try:
            ws = await connect(
                self.url,
                open_timeout=self.connect_timeout,
                ping_interval=self.ping_interval,
                close_timeout=5,
            )
        except asyncio.CancelledError:
            self._set_status(ConnectionState.DISCONNECTED)
            raise
        except Exception as e:
            reason = _describe(e)
            logger.warning("Connection error: %s", reason)
            self._set_status(ConnectionState.ERROR, reason)
            self._handlers.dispatch(CONNECT_ERROR, reason)
            return False

        if self._closing:
            # disconnect() ran while the handshake was in flight.
            await ws.close()
            self._set_status(ConnectionState.DISCONNECTED)
            return False

        self._ws = ws
        self._outbox = asyncio.Queue()
        self._set_status(ConnectionState.CONNECTED)
        logger.info("Channel connected (%s).", self.url)

        self._writer_task = asyncio.create_task(self._write_loop(ws, self._outbox))
        self._reader_task = asyncio.create_task(self._read_loop(ws))
        # Handlers run before the reader gets a chance to deliver anything.
        self._handlers.dispatch(CONNECT, None)
        return True

    def backoff_delay(self, attempt: int) -> float:
        """Delay before reconnect attempt `attempt` (1-based): exponential, capped."""
        return min(self.reconnect_delay * (2 ** max(0, attempt - 1)), self.reconnect_delay_max)

    def _start_reconnect(self) -> None:
        if self._closing or self.reconnecting:
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        for attempt in range(1, self.reconnect_attempts + 1):
            delay = self.backoff_delay(attempt)
            logger.info("Reconnecting in %.1fs (attempt %d/%d)", delay, attempt, self.reconnect_attempts)
            await asyncio.sleep(delay)
            if self._closing or self.connected:
                return
            if await self._open():
                logger.info("Reconnected after %d attempt(s).", attempt)
                return

        reason = f"Reconnection failed after {self.reconnect_attempts} attempts"
        logger.error("%s (%s)", reason, self.url)
        self._set_status(ConnectionState.ERROR, reason)
        self._handlers.dispatch(RECONNECT_FAILED, reason)

    # ---- I/O loops ----

    async def _read_loop(self, ws: ClientConnection) -> None:
        reason = "transport close"
        try:
            async for raw in ws:
                self._handle_frame(raw)
            reason = ws.close_reason or f"closed by server (code={ws.close_code})"
        except ConnectionClosed as e:
            reason = _describe(e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Channel read loop crashed.")
            reason = _describe(e)

        if self._closing or self._ws is not ws:
            return

        self._ws = None
        if self._writer_task is not None:
            self._writer_task.cancel()
        self._set_status(ConnectionState.DISCONNECTED)
        logger.warning("Channel disconnected: %s", reason)
        self._handlers.dispatch(DISCONNECT, reason)

        if self.reconnection:
            self._start_reconnect()

    async def _write_loop(self, ws: ClientConnection, outbox: asyncio.Queue[tuple[str, str]]) -> None:
        while True:
            name, frame = await outbox.get()
            try:
                await ws.send(frame)
            except ConnectionClosed:
                logger.warning("Connection closed; dropped outbound %s (+%d queued)", name, outbox.qsize())
                return
            except Exception:
                logger.exception("Failed to send %s", name)
            finally:
                outbox.task_done()

    def _handle_frame(self, raw: str | bytes) -> None:
        decoded = decode_frame(raw)
        if decoded is None:
            logger.warning("Dropping malformed frame: %.200r", raw)
            return
        name, payload = decoded
        if name in _LIFECYCLE:
            logger.warning("Dropping inbound frame using reserved name %r", name)
            return
        if self._handlers.dispatch(name, payload) == 0:
            logger.debug("No handler for inbound %s", name)

    # ---- Outbound ----

    def send(self, name: str, payload: Any = None) -> bool:
        """
        Queue one message (fire-and-forget).

        Returns False when there is no live connection or the payload cannot
        be serialized. Frames go out in call order.
        """
        if not self.connected or self._outbox is None:
            logger.debug("send(%s) skipped: not connected", name)
            return False
        try:
            frame = encode_frame(name, payload)
        except (TypeError, ValueError):
            logger.exception("Cannot encode outbound %s", name)
            return False
        self._outbox.put_nowait((name, frame))
        return True

    # ---- Teardown ----

    async def disconnect(self) -> None:
        """
        Tear everything down: subscriptions first, then background tasks, then
        the socket. Safe to call more than once.
        """
        self._closing = True
        self._handlers.clear()

        # Frames already handed to send() still go out.
        outbox, writer = self._outbox, self._writer_task
        if outbox is not None and writer is not None and not writer.done() and writer is not asyncio.current_task():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(outbox.join(), timeout=1.0)

        current = asyncio.current_task()
        tasks = [
            t
            for t in (self._reconnect_task, self._reader_task, self._writer_task)
            if t is not None and t is not current and not t.done()
        ]
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._reconnect_task = self._reader_task = self._writer_task = None

        ws, self._ws = self._ws, None
        self._outbox = None
        if ws is not None:
            try:
                await ws.close()
            except Exception:
                logger.debug("Socket close failed.", exc_info=True)
            logger.info("Channel disconnected (%s).", self.url)

        self._set_status(ConnectionState.DISCONNECTED)

    async def __aenter__(self) -> ChannelConnection:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()
