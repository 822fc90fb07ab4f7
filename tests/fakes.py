# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from taskboard_sync.board.task_events import CONNECT, DISCONNECT
from taskboard_sync.core.ports import EventHandler, HandlerRegistry, Subscription


@dataclass(slots=True)
class SentEvent:
    name: str
    payload: Any


class InMemoryChannel:
    """
    Deterministic EventChannel for unit tests.

    - Records every outbound message in `sent`
    - deliver() plays an inbound event synchronously, like the real channel's read loop
    - go_online()/go_offline() raise the lifecycle signals
    """

    def __init__(self, *, connected: bool = True) -> None:
        self._connected = connected
        self._handlers = HandlerRegistry()
        self.sent: list[SentEvent] = []

    @property
    def connected(self) -> bool:
        return self._connected

    def send(self, name: str, payload: Any = None) -> bool:
        if not self._connected:
            return False
        self.sent.append(SentEvent(name=name, payload=payload))
        return True

    def subscribe(self, name: str, handler: EventHandler) -> Subscription:
        self._handlers.add(name, handler)
        return Subscription(channel=self, name=name, handler=handler)

    def unsubscribe(self, name: str, handler: EventHandler) -> None:
        self._handlers.remove(name, handler)

    def handler_count(self, name: str | None = None) -> int:
        return self._handlers.count(name)

    def deliver(self, name: str, payload: Any = None) -> int:
        return self._handlers.dispatch(name, payload)

    def go_online(self) -> None:
        self._connected = True
        self._handlers.dispatch(CONNECT, None)

    def go_offline(self, reason: str = "transport close") -> None:
        self._connected = False
        self._handlers.dispatch(DISCONNECT, reason)

    def names_sent(self) -> list[str]:
        return [e.name for e in self.sent]


def task_payload(task_id: str, stage: str | None = None, **fields: Any) -> dict[str, Any]:
    """Wire-form task with sensible defaults."""
    data: dict[str, Any] = {
        "id": task_id,
        "title": fields.pop("title", f"Task {task_id}"),
        "description": fields.pop("description", ""),
        "priority": fields.pop("priority", "Low"),
        "category": fields.pop("category", "Feature"),
        "attachments": fields.pop("attachments", []),
        "createdAt": fields.pop("createdAt", "2026-01-01T00:00:00.000Z"),
        "updatedAt": fields.pop("updatedAt", "2026-01-01T00:00:00.000Z"),
    }
    if stage is not None:
        data["stage"] = stage
    data.update(fields)
    return data


@dataclass
class FakeGateway:
    """EngineGateway that calls straight through (tests run on one thread)."""

    engine: Any
    calls: list[str] = field(default_factory=list)

    def call(self, fn, *args):
        self.calls.append(getattr(fn, "__name__", repr(fn)))
        return fn(*args)
