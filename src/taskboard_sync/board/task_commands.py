# src/taskboard_sync/board/task_commands.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from ..core.ports import EventChannel
from .task_events import TASK_CREATE, TASK_DELETE, TASK_MOVE, TASK_UPDATE
from .task_models import Stage, Task, task_to_payload, validate_task_fields

logger = logging.getLogger(__name__)


class CommandResult(StrEnum):
    SENT = "sent"
    NO_CONNECTION = "no_connection"
    INVALID = "invalid"


class CommandEmitter:
    """
    User intents -> outbound channel messages.

    Nothing here touches the TaskStore: the board only changes when the
    authority echoes the command back as an event, for this client too.
    """

    def __init__(self, channel: EventChannel | None) -> None:
        self._channel = channel

    def _emit(self, name: str, payload: dict[str, Any]) -> CommandResult:
        channel = self._channel
        if channel is None or not channel.connected:
            logger.error("Command without connection: %s dropped", name)
            return CommandResult.NO_CONNECTION
        if not channel.send(name, payload):
            logger.error("Command without connection: %s could not be sent", name)
            return CommandResult.NO_CONNECTION
        logger.debug("Sent %s", name)
        return CommandResult.SENT

    def create_task(self, task_data: Task | Mapping[str, Any], stage: Stage | str) -> CommandResult:
        st = Stage.parse(stage)
        if st is None:
            logger.error("create_task: unknown stage %r", stage)
            return CommandResult.INVALID

        data = task_to_payload(task_data) if isinstance(task_data, Task) else dict(task_data)
        data.pop("stage", None)
        errors = validate_task_fields(data)
        if errors:
            logger.error("create_task rejected: %s", "; ".join(errors))
            return CommandResult.INVALID

        logger.info("Creating task %s in %s", data.get("id", "<no id>"), st.value)
        return self._emit(TASK_CREATE, {"task": data, "stage": st.value})

    def update_task(self, task_id: str, updates: Mapping[str, Any], stage: Stage | str) -> CommandResult:
        st = Stage.parse(stage)
        if st is None or not task_id:
            logger.error("update_task: bad target id=%r stage=%r", task_id, stage)
            return CommandResult.INVALID

        errors = validate_task_fields(updates, partial=True)
        if errors:
            logger.error("update_task %s rejected: %s", task_id, "; ".join(errors))
            return CommandResult.INVALID

        logger.info("Updating task %s in %s (%s)", task_id, st.value, ", ".join(updates))
        return self._emit(TASK_UPDATE, {"taskId": task_id, "updates": dict(updates), "stage": st.value})

    def move_task(self, task_id: str, from_stage: Stage | str, to_stage: Stage | str) -> CommandResult:
        src, dst = Stage.parse(from_stage), Stage.parse(to_stage)
        if src is None or dst is None or not task_id:
            logger.error("move_task: bad target id=%r from=%r to=%r", task_id, from_stage, to_stage)
            return CommandResult.INVALID

        logger.info("Moving task %s: %s -> %s", task_id, src.value, dst.value)
        return self._emit(TASK_MOVE, {"taskId": task_id, "fromStage": src.value, "toStage": dst.value})

    def delete_task(self, task_id: str, stage: Stage | str) -> CommandResult:
        st = Stage.parse(stage)
        if st is None or not task_id:
            logger.error("delete_task: bad target id=%r stage=%r", task_id, stage)
            return CommandResult.INVALID

        logger.info("Deleting task %s from %s", task_id, st.value)
        return self._emit(TASK_DELETE, {"taskId": task_id, "stage": st.value})
