# tests/test_task_models.py

from __future__ import annotations

import random
import re

from taskboard_sync.board.task_models import (
    Attachment,
    Category,
    Priority,
    Stage,
    build_task,
    is_allowed_attachment_type,
    merge_task_updates,
    new_task_id,
    task_from_payload,
    task_to_payload,
    validate_task_fields,
)

from .fakes import task_payload


def test_task_from_payload_defaults_and_extra_fields() -> None:
    task = task_from_payload({"id": "t1", "title": "Hello", "assignee": "kim", "priority": "Bogus"})
    assert task is not None
    assert task.priority == Priority.LOW
    assert task.category == Category.FEATURE
    assert task.description == ""
    assert task.stage is None
    assert task.extra == {"assignee": "kim"}

    out = task_to_payload(task)
    assert out["assignee"] == "kim"
    assert out["priority"] == "Low"


def test_task_from_payload_parses_attachments() -> None:
    att = {"name": "shot.png", "size": 2048, "type": "image/png", "url": "blob:1"}
    task = task_from_payload(task_payload("t1", "To Do", attachments=[att, {"size": 1}]))
    assert task is not None
    assert task.attachments == (Attachment(name="shot.png", size=2048, type="image/png", url="blob:1"),)
    assert task.stage == Stage.TODO


def test_task_from_payload_requires_id() -> None:
    assert task_from_payload({"title": "x"}) is None
    assert task_from_payload({"id": "   "}) is None
    assert task_from_payload("t1") is None


def test_merge_task_updates_returns_same_object_when_nothing_applies() -> None:
    task = task_from_payload(task_payload("t1"))
    assert task is not None
    assert merge_task_updates(task, {"id": "other"}) is task
    assert merge_task_updates(task, {"priority": 42}) is task


def test_merge_task_updates_keeps_unknown_keys() -> None:
    task = task_from_payload(task_payload("t1"))
    assert task is not None
    merged = merge_task_updates(task, {"assignee": "lee", "updatedAt": "2026-02-02T00:00:00.000Z"})
    assert merged.extra["assignee"] == "lee"
    assert merged.updated_at == "2026-02-02T00:00:00.000Z"
    assert task.extra == {}


def test_validate_task_fields() -> None:
    assert validate_task_fields({"title": "ok"}) == []
    assert validate_task_fields({"title": "   "}) == ["Title is required"]
    assert validate_task_fields({"title": "x" * 101}) == ["Title must be less than 100 characters"]
    assert validate_task_fields({"title": "x" * 100}) == []
    assert validate_task_fields({"title": "ok", "description": "d" * 501}) == [
        "Description must be less than 500 characters"
    ]
    assert validate_task_fields({"priority": "High"}, partial=True) == []
    assert len(validate_task_fields({"priority": "Urgent", "category": "Chore"}, partial=True)) == 2


def test_validate_rejects_non_image_attachments() -> None:
    errors = validate_task_fields({"title": "ok", "attachments": [{"name": "a.exe", "type": "application/x-msdownload"}]})
    assert errors == ["Invalid file type. Only images and PDFs are allowed."]
    assert is_allowed_attachment_type("application/pdf")
    assert is_allowed_attachment_type("image/jpeg")
    assert not is_allowed_attachment_type("text/plain")


def test_new_task_id_format() -> None:
    task_id = new_task_id(now_ms=1700000000000, rng=random.Random(1))
    assert re.fullmatch(r"task-1700000000000-[0-9a-z]{9}", task_id)
    assert new_task_id() != new_task_id()


def test_build_task_sets_timestamps() -> None:
    task = build_task("Write docs", priority=Priority.HIGH)
    assert task.id.startswith("task-")
    assert task.created_at == task.updated_at
    assert task.created_at is not None and task.created_at.endswith("Z")
    assert task.stage is None


def test_stage_aliases() -> None:
    assert Stage.from_alias("todo") == Stage.TODO
    assert Stage.from_alias("In-Progress") == Stage.IN_PROGRESS
    assert Stage.from_alias("DONE") == Stage.DONE
    assert Stage.from_alias("later") is None
    assert Stage.parse("done") is None
