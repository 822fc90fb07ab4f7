# src/taskboard_sync/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..board.task_commands import CommandResult
from ..board.task_models import Stage, build_task
from ..board.task_reducer import STAGES, BoardState, summarize

logger = logging.getLogger(__name__)


class EngineGateway(Protocol):
    """Runs a callable on the engine's loop thread and returns its result."""

    engine: Any

    def call(self, fn: Callable[..., Any], *args: Any) -> Any: ...


@dataclass(slots=True)
class ConsoleContext:
    gateway: EngineGateway

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        return self.gateway.call(fn, *args)

    @property
    def engine(self) -> Any:
        return self.gateway.engine


CommandHandler = Callable[[ConsoleContext, list[str]], str]


class CommandRegistry:
    """Slash-command registry used by the console client (/help, /board, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, ctx: ConsoleContext, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(ctx, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- Rendering ----


def render_board(state: BoardState) -> str:
    lines: list[str] = []
    for stage in STAGES:
        tasks = state.tasks_in(stage)
        lines.append(f"{stage.value} ({len(tasks)})")
        if not tasks:
            lines.append("  (empty)")
        for t in tasks:
            clip = f" [{len(t.attachments)} file(s)]" if t.attachments else ""
            lines.append(f"  - [{t.priority.value}/{t.category.value}] {t.title}{clip}  <{t.id}>")
            if t.description:
                lines.append(f"      {t.description}")
    if state.loading:
        lines.append("(sync in progress...)")
    return "\n".join(lines)


def _result_text(result: CommandResult, sent: str) -> str:
    if result == CommandResult.SENT:
        return sent
    if result == CommandResult.NO_CONNECTION:
        return "Not connected: command was not sent."
    return "Command rejected (see log for details)."


def _stage_arg(raw: str) -> Stage | None:
    return Stage.parse(raw) or Stage.from_alias(raw)


def _stage_names() -> str:
    return ", ".join(s.value for s in STAGES)


# ---- Handlers ----


def cmd_help(ctx: ConsoleContext, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(ctx: ConsoleContext, args: list[str]) -> str:
    engine = ctx.engine
    status = ctx.call(lambda: engine.connection)
    summary = ctx.call(engine.summary)
    last_error = ctx.call(lambda: engine.last_error)

    state = getattr(status, "state", None)
    conn = state.value if state is not None else ("connected" if ctx.call(lambda: engine.connected) else "unknown")
    error = getattr(status, "error", None) or last_error

    counts = ", ".join(f"{stage.value}: {summary.counts[stage]}" for stage in STAGES)
    lines = [
        "Status:",
        f"  Connection: {conn}" + (f" ({error})" if error else ""),
        f"  Tasks: {summary.total} ({counts})",
        f"  Completion: {summary.completion * 100:.0f}%",
    ]
    return "\n".join(lines)


def cmd_board(ctx: ConsoleContext, args: list[str]) -> str:
    return render_board(ctx.call(lambda: ctx.engine.snapshot))


def cmd_sync(ctx: ConsoleContext, args: list[str]) -> str:
    if ctx.call(ctx.engine.request_sync):
        return "Sync requested."
    return "Not connected: command was not sent."


def cmd_add(ctx: ConsoleContext, args: list[str]) -> str:
    """
    /add <stage> <title> [| description]
    """
    if len(args) < 2:
        return f"Usage: /add <stage> <title> [| description]. Stages: {_stage_names()}"

    stage = _stage_arg(args[0])
    if stage is None:
        return f"Unknown stage {args[0]!r}. Stages: {_stage_names()}"

    title, _, description = " ".join(args[1:]).partition("|")
    task = build_task(title.strip(), description=description.strip())
    result = ctx.call(ctx.engine.commands.create_task, task, stage)
    return _result_text(result, f"Create sent: {task.id} -> {stage.value}")


def cmd_update(ctx: ConsoleContext, args: list[str]) -> str:
    """
    /update <stage> <id> field=value [field=value ...]
    """
    if len(args) < 3:
        return "Usage: /update <stage> <id> field=value ... (fields: title, description, priority, category)"

    stage = _stage_arg(args[0])
    if stage is None:
        return f"Unknown stage {args[0]!r}. Stages: {_stage_names()}"

    updates: dict[str, str] = {}
    for pair in args[2:]:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            return f"Expected field=value, got {pair!r}"
        updates[key.strip()] = value

    result = ctx.call(ctx.engine.commands.update_task, args[1], updates, stage)
    return _result_text(result, f"Update sent: {args[1]}")


def cmd_move(ctx: ConsoleContext, args: list[str]) -> str:
    """
    /move <id> <from> <to>
    """
    if len(args) != 3:
        return "Usage: /move <id> <from-stage> <to-stage>"

    src, dst = _stage_arg(args[1]), _stage_arg(args[2])
    if src is None or dst is None:
        return f"Unknown stage. Stages: {_stage_names()}"

    result = ctx.call(ctx.engine.commands.move_task, args[0], src, dst)
    return _result_text(result, f"Move sent: {args[0]} {src.value} -> {dst.value}")


def cmd_delete(ctx: ConsoleContext, args: list[str]) -> str:
    """
    /del <stage> <id>
    """
    if len(args) != 2:
        return "Usage: /del <stage> <id>"

    stage = _stage_arg(args[0])
    if stage is None:
        return f"Unknown stage {args[0]!r}. Stages: {_stage_names()}"

    result = ctx.call(ctx.engine.commands.delete_task, args[1], stage)
    return _result_text(result, f"Delete sent: {args[1]}")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Connection state and board summary.")
registry.register("board", cmd_board, help_text="Print the board.", aliases=["ls"])
registry.register("sync", cmd_sync, help_text="Request a full sync from the server.")
registry.register("add", cmd_add, help_text="Create a task: /add <stage> <title> [| description].")
registry.register("update", cmd_update, help_text="Update fields: /update <stage> <id> field=value ...")
registry.register("move", cmd_move, help_text="Move a task: /move <id> <from> <to>.", aliases=["mv"])
registry.register("del", cmd_delete, help_text="Delete a task: /del <stage> <id>.", aliases=["rm"])
