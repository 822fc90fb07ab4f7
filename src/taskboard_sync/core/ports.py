# src/taskboard_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the engine.

The engine depends on a Protocol instead of the concrete WebSocket channel.
This keeps the transport swappable and lets tests drive the engine with an
in-memory channel.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]
# Handlers receive the decoded payload (dict, str or None for bare signals).


class EventChannel(Protocol):
    """Named-message channel to the authority."""

    @property
    def connected(self) -> bool: ...

    def send(self, name: str, payload: Any = None) -> bool: ...

    def subscribe(self, name: str, handler: EventHandler) -> Subscription: ...

    def unsubscribe(self, name: str, handler: EventHandler) -> None: ...


@dataclass(eq=False, slots=True)
class Subscription:
    """
    One handler registration.

    close() is idempotent, so it can sit in every exit path (finally blocks,
    context managers) without bookkeeping.
    """

    channel: EventChannel
    name: str
    handler: EventHandler
    closed: bool = field(default=False)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.channel.unsubscribe(self.name, self.handler)
        except Exception:
            logger.exception("Failed to unsubscribe %s", self.name)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class HandlerRegistry:
    """name -> handlers table shared by channel implementations."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def add(self, name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(name, []).append(handler)

    def remove(self, name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[name]

    def clear(self) -> None:
        self._handlers.clear()

    def count(self, name: str | None = None) -> int:
        if name is not None:
            return len(self._handlers.get(name, ()))
        return sum(len(h) for h in self._handlers.values())

    def dispatch(self, name: str, payload: Any) -> int:
        """Call every handler for `name` in registration order. Returns how many ran."""
        handlers = list(self._handlers.get(name, ()))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %s failed", name)
        return len(handlers)
