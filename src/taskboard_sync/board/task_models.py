# src/taskboard_sync/board/task_models.py

from __future__ import annotations

import logging
import random
import string
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import StrEnum
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 500

_ID_ALPHABET = string.digits + string.ascii_lowercase


class Stage(StrEnum):
    """Workflow column. The set is fixed and ordered."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, raw: Any) -> Stage | None:
        """Exact wire value -> Stage, or None for anything else."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw)
        except ValueError:
            return None

    @classmethod
    def from_alias(cls, raw: str) -> Stage | None:
        """Looser lookup for humans: 'todo', 'in-progress', 'doing', 'DONE'..."""
        key = "".join(ch for ch in (raw or "").lower() if ch.isalnum())
        return _STAGE_ALIASES.get(key)


_STAGE_ALIASES: dict[str, Stage] = {
    "todo": Stage.TODO,
    "backlog": Stage.TODO,
    "inprogress": Stage.IN_PROGRESS,
    "progress": Stage.IN_PROGRESS,
    "doing": Stage.IN_PROGRESS,
    "wip": Stage.IN_PROGRESS,
    "done": Stage.DONE,
}


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: Any) -> Priority | None:
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return None


class Category(StrEnum):
    BUG = "Bug"
    FEATURE = "Feature"
    ENHANCEMENT = "Enhancement"

    @classmethod
    def parse(cls, raw: Any) -> Category | None:
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Attachment:
    name: str
    size: int
    type: str
    url: str

    @classmethod
    def from_payload(cls, data: Any) -> Attachment | None:
        if not isinstance(data, Mapping):
            return None
        name = data.get("name")
        if not isinstance(name, str) or not name:
            return None
        size = data.get("size", 0)
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            size = 0
        return cls(
            name=name,
            size=int(size),
            type=str(data.get("type") or ""),
            url=str(data.get("url") or ""),
        )

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "size": self.size, "type": self.type, "url": self.url}


def is_allowed_attachment_type(content_type: str) -> bool:
    """Only images and PDFs may be attached from this client."""
    ct = (content_type or "").strip().lower()
    return ct.startswith("image/") or ct == "application/pdf"


@dataclass(frozen=True, slots=True)
class Task:
    """
    One card on the board.

    `extra` keeps wire fields this client does not model, so they survive a
    round trip through updates. It is a read-only view over a private copy,
    so snapshots handed to readers cannot be changed through it.
    """

    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.LOW
    category: Category = Category.FEATURE
    attachments: tuple[Attachment, ...] = ()
    created_at: str | None = None
    updated_at: str | None = None
    stage: Stage | None = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "attachments", tuple(self.attachments))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))


# wire key -> dataclass attribute
_WIRE_FIELDS: dict[str, str] = {
    "title": "title",
    "description": "description",
    "priority": "priority",
    "category": "category",
    "attachments": "attachments",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

# Identity/placement never change through a field update.
_IMMUTABLE_KEYS = frozenset({"id", "stage", "column"})

_NOT_SET = object()


def _coerce_field(key: str, value: Any) -> Any:
    """Wire value -> attribute value, or _NOT_SET if the value is unusable."""
    if key == "title":
        return value if isinstance(value, str) else _NOT_SET
    if key == "description":
        if value is None:
            return ""
        return value if isinstance(value, str) else _NOT_SET
    if key == "priority":
        p = Priority.parse(value)
        return _NOT_SET if p is None else p
    if key == "category":
        c = Category.parse(value)
        return _NOT_SET if c is None else c
    if key == "attachments":
        if not isinstance(value, (list, tuple)):
            return _NOT_SET
        items = (Attachment.from_payload(a) for a in value)
        return tuple(a for a in items if a is not None)
    if key in ("createdAt", "updatedAt"):
        if value is None or isinstance(value, str):
            return value
        return _NOT_SET
    return _NOT_SET


def task_from_payload(data: Any, *, stage: Stage | None = None) -> Task | None:
    """
    Build a Task from a wire object.

    Returns None when the payload has no usable id. Bad optional fields fall
    back to their defaults. `stage` overrides whatever the payload declares.
    """
    if not isinstance(data, Mapping):
        return None

    raw_id = data.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
        return None
    task_id = str(raw_id).strip()
    if not task_id:
        return None

    if stage is None:
        stage = Stage.parse(data.get("stage", data.get("column")))

    values: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in data.items():
        if key in _IMMUTABLE_KEYS:
            continue
        attr = _WIRE_FIELDS.get(key)
        if attr is None:
            extra[key] = value
            continue
        coerced = _coerce_field(key, value)
        if coerced is not _NOT_SET:
            values[attr] = coerced

    return Task(
        id=task_id,
        title=values.get("title", ""),
        description=values.get("description", ""),
        priority=values.get("priority", Priority.LOW),
        category=values.get("category", Category.FEATURE),
        attachments=values.get("attachments", ()),
        created_at=values.get("created_at"),
        updated_at=values.get("updated_at"),
        stage=stage,
        extra=MappingProxyType(extra),
    )


def task_to_payload(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = dict(task.extra)
    out.update(
        {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "priority": task.priority.value,
            "category": task.category.value,
            "attachments": [a.to_payload() for a in task.attachments],
            "createdAt": task.created_at,
            "updatedAt": task.updated_at,
        }
    )
    if task.stage is not None:
        out["stage"] = task.stage.value
    return out


def merge_task_updates(task: Task, updates: Mapping[str, Any]) -> Task:
    """
    Shallow-merge wire-form `updates` into `task`.

    id/stage are never rewritten here. Values that do not fit their field are
    skipped with a warning; unknown keys land in `extra`.
    """
    changes: dict[str, Any] = {}
    extra: dict[str, Any] | None = None

    for key, value in updates.items():
        if key in _IMMUTABLE_KEYS:
            logger.debug("Ignoring %r in updates for task %s", key, task.id)
            continue
        attr = _WIRE_FIELDS.get(key)
        if attr is None:
            if extra is None:
                extra = dict(task.extra)
            extra[key] = value
            continue
        coerced = _coerce_field(key, value)
        if coerced is _NOT_SET:
            logger.warning("Dropping invalid %s=%r in updates for task %s", key, value, task.id)
            continue
        changes[attr] = coerced

    if extra is not None:
        changes["extra"] = MappingProxyType(extra)
    if not changes:
        return task
    return replace(task, **changes)


def validate_task_fields(fields: Mapping[str, Any], *, partial: bool = False) -> list[str]:
    """
    Check user-entered task fields (wire form). Returns a list of problems.

    With partial=True only the keys present are checked (update payloads).
    """
    errors: list[str] = []

    if "title" in fields or not partial:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append("Title is required")
        elif len(title) > TITLE_MAX_LEN:
            errors.append(f"Title must be less than {TITLE_MAX_LEN} characters")

    if "description" in fields:
        desc = fields.get("description")
        if desc is not None and not isinstance(desc, str):
            errors.append("Description must be text")
        elif desc and len(desc) > DESCRIPTION_MAX_LEN:
            errors.append(f"Description must be less than {DESCRIPTION_MAX_LEN} characters")

    if "priority" in fields and Priority.parse(fields.get("priority")) is None:
        errors.append(f"Priority must be one of: {', '.join(p.value for p in Priority)}")

    if "category" in fields and Category.parse(fields.get("category")) is None:
        errors.append(f"Category must be one of: {', '.join(c.value for c in Category)}")

    attachments = fields.get("attachments")
    if attachments:
        for a in attachments:
            ct = a.get("type", "") if isinstance(a, Mapping) else getattr(a, "type", "")
            if not is_allowed_attachment_type(ct):
                errors.append("Invalid file type. Only images and PDFs are allowed.")
                break

    return errors


def new_task_id(*, now_ms: int | None = None, rng: random.Random | None = None) -> str:
    """Client-side id: task-<epoch ms>-<9 base36 chars>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"task-{now_ms}-{suffix}"


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_task(
    title: str,
    *,
    description: str = "",
    priority: Priority = Priority.LOW,
    category: Category = Category.FEATURE,
    attachments: tuple[Attachment, ...] = (),
    task_id: str | None = None,
) -> Task:
    """New task as the creating client would submit it (fresh id and timestamps)."""
    now = _iso_now()
    return Task(
        id=task_id or new_task_id(),
        title=title,
        description=description,
        priority=priority,
        category=category,
        attachments=tuple(attachments),
        created_at=now,
        updated_at=now,
    )
