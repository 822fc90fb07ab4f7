# src/taskboard_sync/board/task_events.py

"""
Board events and the event-channel vocabulary.

Inbound payloads are parsed into small frozen dataclasses here, so the
reducer only ever sees well-typed events. Anything malformed parses to None.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .task_models import Stage, Task, task_from_payload

logger = logging.getLogger(__name__)

# ---- Outbound (client -> authority) ----
SYNC_REQUEST = "sync:request"
TASK_CREATE = "task:create"
TASK_UPDATE = "task:update"
TASK_MOVE = "task:move"
TASK_DELETE = "task:delete"

# ---- Inbound (authority -> client) ----
SYNC_TASKS = "sync:tasks"
TASK_CREATED = "task:created"
TASK_UPDATED = "task:updated"
TASK_MOVED = "task:moved"
TASK_DELETED = "task:deleted"

INBOUND_EVENTS = (SYNC_TASKS, TASK_CREATED, TASK_UPDATED, TASK_MOVED, TASK_DELETED)

# ---- Lifecycle signals raised by the channel itself ----
CONNECT = "connect"
DISCONNECT = "disconnect"
CONNECT_ERROR = "connect_error"
RECONNECT_FAILED = "reconnect_failed"


@dataclass(frozen=True, slots=True)
class TasksSynced:
    tasks: tuple[Task, ...]


@dataclass(frozen=True, slots=True)
class TaskCreated:
    task: Task
    stage: Stage


@dataclass(frozen=True, slots=True)
class TaskUpdated:
    task_id: str
    updates: Mapping[str, Any]
    stage: Stage


@dataclass(frozen=True, slots=True)
class TaskMoved:
    task_id: str
    from_stage: Stage
    to_stage: Stage


@dataclass(frozen=True, slots=True)
class TaskDeleted:
    task_id: str
    stage: Stage


@dataclass(frozen=True, slots=True)
class SyncRequested:
    """Local: a full sync was asked for and has not been answered yet."""


@dataclass(frozen=True, slots=True)
class BoardCleared:
    """Local: drop everything (disconnect policy)."""

    reason: str = field(default="")


BoardEvent = Union[
    TasksSynced, TaskCreated, TaskUpdated, TaskMoved, TaskDeleted, SyncRequested, BoardCleared
]


def _stage_of(payload: Mapping[str, Any], key: str, legacy_key: str) -> Stage | None:
    raw = payload.get(key)
    if raw is None:
        raw = payload.get(legacy_key)
    return Stage.parse(raw)


def _task_id_of(payload: Mapping[str, Any]) -> str | None:
    raw = payload.get("taskId")
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        return None
    task_id = str(raw).strip()
    return task_id or None


def parse_inbound(name: str, payload: Any) -> BoardEvent | None:
    """
    Turn a named inbound message into a board event.

    Returns None (and logs why) for unknown names, unknown stages, missing
    ids or wrong payload shapes. Never raises.
    """
    if not isinstance(payload, Mapping):
        logger.warning("Dropping %s: payload is not an object (%r)", name, type(payload).__name__)
        return None

    if name == SYNC_TASKS:
        raw_tasks = payload.get("tasks")
        if not isinstance(raw_tasks, list):
            logger.warning("Dropping %s: 'tasks' is not a list", name)
            return None
        tasks: list[Task] = []
        for raw in raw_tasks:
            task = task_from_payload(raw)
            if task is None:
                logger.warning("sync: skipping task without a usable id: %r", raw)
                continue
            # Tasks in a stage we do not know are dropped later by the reducer.
            tasks.append(task)
        return TasksSynced(tasks=tuple(tasks))

    if name == TASK_CREATED:
        stage = _stage_of(payload, "stage", "column")
        if stage is None:
            logger.warning("Dropping %s: unknown stage %r", name, payload.get("stage", payload.get("column")))
            return None
        task = task_from_payload(payload.get("task"), stage=stage)
        if task is None:
            logger.warning("Dropping %s: task has no usable id", name)
            return None
        return TaskCreated(task=task, stage=stage)

    if name == TASK_UPDATED:
        task_id = _task_id_of(payload)
        stage = _stage_of(payload, "stage", "column")
        updates = payload.get("updates")
        if task_id is None or stage is None or not isinstance(updates, Mapping):
            logger.warning("Dropping malformed %s: %r", name, payload)
            return None
        return TaskUpdated(task_id=task_id, updates=dict(updates), stage=stage)

    if name == TASK_MOVED:
        task_id = _task_id_of(payload)
        from_stage = _stage_of(payload, "fromStage", "fromColumn")
        to_stage = _stage_of(payload, "toStage", "toColumn")
        if task_id is None or from_stage is None or to_stage is None:
            logger.warning("Dropping malformed %s: %r", name, payload)
            return None
        return TaskMoved(task_id=task_id, from_stage=from_stage, to_stage=to_stage)

    if name == TASK_DELETED:
        task_id = _task_id_of(payload)
        stage = _stage_of(payload, "stage", "column")
        if task_id is None or stage is None:
            logger.warning("Dropping malformed %s: %r", name, payload)
            return None
        return TaskDeleted(task_id=task_id, stage=stage)

    logger.warning("Dropping unknown inbound event %r", name)
    return None
