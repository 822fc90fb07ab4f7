# src/taskboard_sync/board/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable

from .task_events import BoardEvent
from .task_models import Stage, Task
from .task_reducer import BoardState, apply, empty_state

logger = logging.getLogger(__name__)

StoreListener = Callable[[BoardState], None]


class TaskStore:
    """
    Owner of the current BoardState.

    `dispatch` is the single write path and is only called by the engine on
    the event-loop thread. Everyone else reads `snapshot` (immutable) or
    registers a listener that fires after each change.
    """

    def __init__(self, initial: BoardState | None = None) -> None:
        self._state = initial if initial is not None else empty_state()
        self._listeners: list[StoreListener] = []

    @property
    def snapshot(self) -> BoardState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state.loading

    def tasks(self) -> dict[Stage, list[Task]]:
        return self._state.as_dict()

    def dispatch(self, event: BoardEvent) -> bool:
        """Apply one event. Returns True if the state changed."""
        prev = self._state
        nxt = apply(prev, event)
        if nxt is prev:
            return False

        self._state = nxt
        for listener in list(self._listeners):
            try:
                listener(nxt)
            except Exception:
                logger.exception("Store listener %r failed", listener)
        return True

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _remove

    def reset(self) -> None:
        """Drop state on teardown (no listeners are notified)."""
        self._state = empty_state()
        self._listeners.clear()
