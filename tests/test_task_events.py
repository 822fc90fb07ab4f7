# tests/test_task_events.py

from __future__ import annotations

import pytest

from taskboard_sync.board.task_events import (
    SYNC_TASKS,
    TASK_CREATED,
    TASK_DELETED,
    TASK_MOVED,
    TASK_UPDATED,
    TaskCreated,
    TaskDeleted,
    TaskMoved,
    TasksSynced,
    TaskUpdated,
    parse_inbound,
)
from taskboard_sync.board.task_models import Stage

from .fakes import task_payload


def test_parse_created_sets_stage_on_task() -> None:
    event = parse_inbound(TASK_CREATED, {"task": task_payload("t1"), "stage": "In Progress"})
    assert isinstance(event, TaskCreated)
    assert event.stage == Stage.IN_PROGRESS
    assert event.task.stage == Stage.IN_PROGRESS
    assert event.task.id == "t1"


def test_parse_moved_and_deleted() -> None:
    moved = parse_inbound(TASK_MOVED, {"taskId": "t1", "fromStage": "To Do", "toStage": "Done"})
    assert moved == TaskMoved(task_id="t1", from_stage=Stage.TODO, to_stage=Stage.DONE)

    deleted = parse_inbound(TASK_DELETED, {"taskId": "t1", "stage": "Done"})
    assert deleted == TaskDeleted(task_id="t1", stage=Stage.DONE)


def test_parse_updated_copies_updates() -> None:
    updates = {"title": "x"}
    event = parse_inbound(TASK_UPDATED, {"taskId": "t1", "updates": updates, "stage": "To Do"})
    assert isinstance(event, TaskUpdated)
    updates["title"] = "mutated later"
    assert event.updates == {"title": "x"}


def test_parse_accepts_legacy_column_keys() -> None:
    moved = parse_inbound(TASK_MOVED, {"taskId": "t1", "fromColumn": "To Do", "toColumn": "In Progress"})
    assert moved == TaskMoved(task_id="t1", from_stage=Stage.TODO, to_stage=Stage.IN_PROGRESS)

    synced = parse_inbound(SYNC_TASKS, {"tasks": [{"id": "a", "title": "A", "column": "Done"}]})
    assert isinstance(synced, TasksSynced)
    assert synced.tasks[0].stage == Stage.DONE


def test_parse_sync_skips_tasks_without_id() -> None:
    event = parse_inbound(SYNC_TASKS, {"tasks": [{"title": "no id", "stage": "To Do"}, task_payload("ok", "To Do")]})
    assert isinstance(event, TasksSynced)
    assert [t.id for t in event.tasks] == ["ok"]


@pytest.mark.parametrize(
    "name,payload",
    [
        (SYNC_TASKS, {"tasks": "nope"}),
        (SYNC_TASKS, None),
        (TASK_CREATED, {"task": task_payload("t1"), "stage": "Someday"}),
        (TASK_CREATED, {"task": {"title": "missing id"}, "stage": "To Do"}),
        (TASK_CREATED, ["not", "a", "dict"]),
        (TASK_UPDATED, {"taskId": "t1", "updates": "title=x", "stage": "To Do"}),
        (TASK_UPDATED, {"updates": {}, "stage": "To Do"}),
        (TASK_MOVED, {"taskId": "t1", "fromStage": "To Do"}),
        (TASK_MOVED, {"taskId": "", "fromStage": "To Do", "toStage": "Done"}),
        (TASK_DELETED, {"taskId": None, "stage": "Done"}),
        (TASK_DELETED, {"taskId": "t1", "stage": "done"}),
        ("task:exploded", {}),
    ],
)
def test_malformed_payloads_parse_to_none(name, payload) -> None:
    assert parse_inbound(name, payload) is None
