# src/taskboard_sync/connectors/board_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..board.task_store import StoreListener
from ..core.engine import SyncEngine, open_engine

logger = logging.getLogger(__name__)


async def _run_board(
    settings,
    stop_event: asyncio.Event,
    on_ready: Callable[[SyncEngine], None],
    on_change: StoreListener | None,
) -> None:
    """
    Board connector (async):

    connect -> subscribe -> sync -> wait for stop

    Shutdown model:
    - main thread sets stop_event via loop.call_soon_threadsafe(stop_event.set)
    - open_engine's finally block releases subscriptions and closes the socket.
    """
    try:
        async with open_engine(settings) as engine:
            if on_change is not None:
                engine.on_change(on_change)
            on_ready(engine)
            await stop_event.wait()
    except asyncio.CancelledError:
        logger.info("Board connector cancelled.")
    except Exception:
        logger.exception("Board connector crashed.")
    finally:
        logger.info("Board connector stopped.")


@dataclass
class BoardBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    engine: SyncEngine
    call_timeout: float = 5.0

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run `fn(*args)` on the engine loop and wait for its result."""

        async def _invoke() -> Any:
            return fn(*args)

        fut = asyncio.run_coroutine_threadsafe(_invoke(), self.loop)
        return fut.result(timeout=self.call_timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal board stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_board_in_background(settings, on_change: StoreListener | None = None) -> BoardBackgroundRunner | None:
    """
    Start the sync engine in a background thread (so the console REPL can block on input()).

    All engine work stays on that thread's event loop; other threads go
    through BoardBackgroundRunner.call().
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def _on_ready(engine: SyncEngine) -> None:
        holder["engine"] = engine
        ready.set()

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event

        try:
            loop.run_until_complete(_run_board(settings, stop_event, _on_ready, on_change))
        finally:
            ready.set()
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="taskboard-sync", daemon=True)
    t.start()

    # The first connection attempt may use the whole handshake timeout.
    ready.wait(timeout=float(getattr(settings, "connect_timeout", 10.0)) + 5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")
    engine = holder.get("engine")

    if (
        not isinstance(loop, asyncio.AbstractEventLoop)
        or not isinstance(stop_event, asyncio.Event)
        or not isinstance(engine, SyncEngine)
    ):
        logger.error("Board thread did not initialize properly.")
        if isinstance(loop, asyncio.AbstractEventLoop) and isinstance(stop_event, asyncio.Event):
            with contextlib.suppress(Exception):
                loop.call_soon_threadsafe(stop_event.set)
        return None

    logger.info("Board background thread started.")
    return BoardBackgroundRunner(thread=t, loop=loop, stop_event=stop_event, engine=engine)
