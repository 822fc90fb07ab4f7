# tests/test_commands.py

from __future__ import annotations

from taskboard_sync.board.task_events import TasksSynced
from taskboard_sync.board.task_models import task_from_payload
from taskboard_sync.board.task_reducer import apply, empty_state
from taskboard_sync.cli.commands import ConsoleContext, registry, render_board
from taskboard_sync.core.engine import SyncEngine

from .fakes import FakeGateway, InMemoryChannel, task_payload


def _ctx(engine) -> ConsoleContext:
    return ConsoleContext(gateway=FakeGateway(engine=engine))


def test_handle_returns_none_for_plain_text(engine) -> None:
    assert registry.handle(_ctx(engine), "hello there") is None


def test_unknown_and_empty_commands(engine) -> None:
    ctx = _ctx(engine)
    assert registry.handle(ctx, "/nope").startswith("Unknown command: /nope")
    assert registry.handle(ctx, "/").startswith("Empty command")
    assert registry.handle(ctx, '/add todo "unterminated').startswith("Cannot parse command")


def test_help_lists_commands_and_aliases_route(engine) -> None:
    ctx = _ctx(engine)
    text = registry.handle(ctx, "/help")
    assert "/board" in text
    assert "/move" in text
    assert registry.handle(ctx, "/?") == text


def test_render_board_lists_every_stage() -> None:
    task = task_from_payload(task_payload("t1", "In Progress", title="Ship it", description="today"))
    assert task is not None
    state = apply(empty_state(), TasksSynced(tasks=(task,)))

    text = render_board(state)
    assert "To Do (0)" in text
    assert "In Progress (1)" in text
    assert "Ship it" in text
    assert "<t1>" in text
    assert "today" in text
    assert "Done (0)" in text


def test_add_sends_create_command(engine, channel) -> None:
    reply = registry.handle(_ctx(engine), "/add todo Write release notes | for 0.1")

    assert reply.startswith("Create sent: task-")
    event = channel.sent[-1]
    assert event.name == "task:create"
    assert event.payload["stage"] == "To Do"
    assert event.payload["task"]["title"] == "Write release notes"
    assert event.payload["task"]["description"] == "for 0.1"


def test_add_rejects_unknown_stage(engine, channel) -> None:
    sent_before = len(channel.sent)
    reply = registry.handle(_ctx(engine), "/add someday Title")
    assert reply.startswith("Unknown stage")
    assert len(channel.sent) == sent_before


def test_update_move_delete_commands(engine, channel) -> None:
    ctx = _ctx(engine)

    assert registry.handle(ctx, "/update todo t1 priority=High") == "Update sent: t1"
    assert registry.handle(ctx, "/mv t1 todo done") == "Move sent: t1 To Do -> Done"
    assert registry.handle(ctx, "/rm done t1") == "Delete sent: t1"

    assert channel.names_sent()[-3:] == ["task:update", "task:move", "task:delete"]
    assert channel.sent[-3].payload == {"taskId": "t1", "updates": {"priority": "High"}, "stage": "To Do"}


def test_update_with_invalid_value_is_rejected(engine, channel) -> None:
    sent_before = len(channel.sent)
    reply = registry.handle(_ctx(engine), "/update todo t1 priority=Urgent")
    assert reply.startswith("Command rejected")
    assert len(channel.sent) == sent_before


def test_commands_report_missing_connection() -> None:
    channel = InMemoryChannel(connected=False)

    with SyncEngine(channel) as engine:
        ctx = _ctx(engine)
        assert registry.handle(ctx, "/del todo t1") == "Not connected: command was not sent."
        assert registry.handle(ctx, "/sync") == "Not connected: command was not sent."


def test_status_and_board_reflect_engine(engine, channel) -> None:
    channel.deliver("sync:tasks", {"tasks": [task_payload("a", "To Do"), task_payload("b", "Done")]})
    ctx = _ctx(engine)

    status = registry.handle(ctx, "/status")
    assert "Connection: connected" in status
    assert "Tasks: 2" in status
    assert "Completion: 50%" in status

    board = registry.handle(ctx, "/ls")
    assert "<a>" in board and "<b>" in board


def test_sync_command_requests_sync(engine, channel) -> None:
    assert registry.handle(_ctx(engine), "/sync") == "Sync requested."
    assert channel.names_sent()[-1] == "sync:request"
    assert engine.loading is True
