# src/taskboard_sync/board/task_reducer.py

from __future__ import annotations

"""
Board reducer.

`apply(state, event) -> state` is the only way board state changes. It is a
pure function: no I/O besides logging, no exceptions escape, and when an
event changes nothing the very same state object is returned.

Invariant kept for every event sequence: a task id appears in at most one
stage, at most once.
"""

import logging
from dataclasses import dataclass, replace

from .task_events import (
    BoardCleared,
    BoardEvent,
    SyncRequested,
    TaskCreated,
    TaskDeleted,
    TaskMoved,
    TasksSynced,
    TaskUpdated,
)
from .task_models import Stage, Task, merge_task_updates

logger = logging.getLogger(__name__)

STAGES: tuple[Stage, ...] = tuple(Stage)

_EMPTY_COLUMNS: tuple[tuple[Task, ...], ...] = tuple(() for _ in STAGES)


def _index(stage: Stage) -> int:
    return STAGES.index(stage)


@dataclass(frozen=True, slots=True)
class BoardState:
    """Immutable snapshot: one task tuple per stage (in STAGES order) + loading flag."""

    columns: tuple[tuple[Task, ...], ...] = _EMPTY_COLUMNS
    loading: bool = False

    def tasks_in(self, stage: Stage) -> tuple[Task, ...]:
        return self.columns[_index(stage)]

    def __getitem__(self, stage: Stage) -> tuple[Task, ...]:
        return self.tasks_in(stage)

    def as_dict(self) -> dict[Stage, list[Task]]:
        return {stage: list(tasks) for stage, tasks in zip(STAGES, self.columns)}

    def find(self, task_id: str) -> tuple[Stage, Task] | None:
        for stage, tasks in zip(STAGES, self.columns):
            for task in tasks:
                if task.id == task_id:
                    return stage, task
        return None

    @property
    def total(self) -> int:
        return sum(len(tasks) for tasks in self.columns)

    def _with_column(self, stage: Stage, tasks: tuple[Task, ...]) -> tuple[tuple[Task, ...], ...]:
        cols = list(self.columns)
        cols[_index(stage)] = tasks
        return tuple(cols)


def empty_state() -> BoardState:
    return BoardState()


@dataclass(frozen=True, slots=True)
class BoardSummary:
    counts: dict[Stage, int]
    total: int
    done: int

    @property
    def completion(self) -> float:
        """Share of tasks in Done, 0.0 on an empty board."""
        return self.done / self.total if self.total else 0.0


def summarize(state: BoardState) -> BoardSummary:
    counts = {stage: len(tasks) for stage, tasks in zip(STAGES, state.columns)}
    return BoardSummary(counts=counts, total=sum(counts.values()), done=counts[Stage.DONE])


# ---- Transitions ----


def _apply_sync(state: BoardState, event: TasksSynced) -> BoardState:
    grouped: dict[Stage, list[Task]] = {stage: [] for stage in STAGES}
    seen: set[str] = set()

    for task in event.tasks:
        if task.stage is None:
            logger.warning("sync: dropping task %s with unknown stage", task.id)
            continue
        if task.id in seen:
            logger.warning("sync: dropping repeated task id %s", task.id)
            continue
        seen.add(task.id)
        grouped[task.stage].append(task)

    new_state = BoardState(columns=tuple(tuple(grouped[s]) for s in STAGES), loading=False)
    logger.debug("sync: %d tasks", new_state.total)
    return state if new_state == state else new_state


def _apply_created(state: BoardState, event: TaskCreated) -> BoardState:
    existing = state.find(event.task.id)
    if existing is not None:
        logger.warning(
            "created: task %s already present in %s, ignoring duplicate", event.task.id, existing[0].value
        )
        return replace(state, loading=False) if state.loading else state

    task = event.task if event.task.stage == event.stage else replace(event.task, stage=event.stage)
    column = state.tasks_in(event.stage) + (task,)
    logger.debug("created: %s in %s", task.id, event.stage.value)
    return BoardState(columns=state._with_column(event.stage, column), loading=False)


def _apply_updated(state: BoardState, event: TaskUpdated) -> BoardState:
    column = state.tasks_in(event.stage)
    for i, task in enumerate(column):
        if task.id != event.task_id:
            continue
        merged = merge_task_updates(task, event.updates)
        if merged is task:
            return state
        new_column = column[:i] + (merged,) + column[i + 1 :]
        logger.debug("updated: %s in %s (%s)", task.id, event.stage.value, ", ".join(event.updates))
        return replace(state, columns=state._with_column(event.stage, new_column))

    logger.warning("updated: task %s not found in %s", event.task_id, event.stage.value)
    return state


def _apply_moved(state: BoardState, event: TaskMoved) -> BoardState:
    source = state.tasks_in(event.from_stage)
    task = next((t for t in source if t.id == event.task_id), None)
    if task is None:
        logger.warning("moved: task %s not found in source stage %s", event.task_id, event.from_stage.value)
        return state

    remaining = tuple(t for t in source if t.id != event.task_id)
    cols = list(state.columns)
    cols[_index(event.from_stage)] = remaining
    # Tail of the destination, never a specific position.
    cols[_index(event.to_stage)] = cols[_index(event.to_stage)] + (replace(task, stage=event.to_stage),)
    logger.debug("moved: %s %s -> %s", task.id, event.from_stage.value, event.to_stage.value)
    return replace(state, columns=tuple(cols))


def _apply_deleted(state: BoardState, event: TaskDeleted) -> BoardState:
    column = state.tasks_in(event.stage)
    remaining = tuple(t for t in column if t.id != event.task_id)
    if len(remaining) == len(column):
        logger.debug("deleted: task %s already absent from %s", event.task_id, event.stage.value)
        return state
    logger.debug("deleted: %s from %s", event.task_id, event.stage.value)
    return replace(state, columns=state._with_column(event.stage, remaining))


def apply(state: BoardState, event: BoardEvent) -> BoardState:
    """Next board state for `event`. Never raises."""
    try:
        if isinstance(event, TasksSynced):
            return _apply_sync(state, event)
        if isinstance(event, TaskCreated):
            return _apply_created(state, event)
        if isinstance(event, TaskUpdated):
            return _apply_updated(state, event)
        if isinstance(event, TaskMoved):
            return _apply_moved(state, event)
        if isinstance(event, TaskDeleted):
            return _apply_deleted(state, event)
        if isinstance(event, SyncRequested):
            return state if state.loading else replace(state, loading=True)
        if isinstance(event, BoardCleared):
            if state.total == 0:
                return state
            logger.info("Board cleared (%s)", event.reason or "no reason")
            return replace(state, columns=_EMPTY_COLUMNS)
    except Exception:
        logger.exception("Reducer failed on %r; state left unchanged", event)
        return state

    logger.warning("Ignoring unsupported board event %r", event)
    return state
