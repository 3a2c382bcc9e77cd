"""
Output formatting for the CLI.

``RichEventPrinter`` is the event sink used by ``taskpilot run``. It renders
each lifecycle event as it arrives; the run waits for every print.
"""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from taskpilot.core.domain.events import (
    AgentEvent,
    AgentEventType,
    AssistantMessage,
    Completed,
    ErrorEvent,
    Started,
    ToolCallCompleted,
    ToolCallStarted,
)
from taskpilot.core.domain.models import AgentExecutionResult, SessionSummary

MAX_LISTED_SESSIONS = 10


class OutputMode(str, Enum):
    """How much of a run is shown."""

    QUIET = "quiet"  # Only the final result
    COMPACT = "compact"  # Tool calls with a success mark (default)
    VERBOSE = "verbose"  # Arguments and assistant messages as well


class RichEventPrinter:
    """Render agent events to a rich console."""

    def __init__(self, console: Console, mode: OutputMode = OutputMode.COMPACT):
        self.console = console
        self.mode = mode
        self._handlers: dict[AgentEventType, Callable[[Any], None]] = {
            AgentEventType.STARTED: self._on_started,
            AgentEventType.TOOL_CALL_STARTED: self._on_tool_call_started,
            AgentEventType.TOOL_CALL_COMPLETED: self._on_tool_call_completed,
            AgentEventType.ASSISTANT_MESSAGE: self._on_assistant_message,
            AgentEventType.ERROR: self._on_error,
            AgentEventType.COMPLETED: self._on_completed,
        }

    async def emit(self, event: AgentEvent) -> None:
        self._handlers[event.type](event)

    def _on_started(self, event: Started) -> None:
        if self.mode is OutputMode.VERBOSE:
            self.console.print(f"[cyan]Starting:[/cyan] {escape(event.task)}")

    def _on_tool_call_started(self, event: ToolCallStarted) -> None:
        if self.mode is OutputMode.QUIET:
            return
        self.console.print(f"[blue]> {escape(event.name)}[/blue]", end="")
        if self.mode is OutputMode.VERBOSE:
            self.console.print(f"\n   [dim]Arguments: {escape(event.arguments)}[/dim]", end="")

    def _on_tool_call_completed(self, event: ToolCallCompleted) -> None:
        if self.mode is OutputMode.QUIET:
            return
        if event.result.success:
            self.console.print(" [green]✓[/green]")
        else:
            self.console.print(" [red]✗[/red]")
            if event.result.error_message:
                self.console.print(f"   [red]{escape(event.result.error_message)}[/red]")

    def _on_assistant_message(self, event: AssistantMessage) -> None:
        if self.mode is OutputMode.VERBOSE:
            self.console.print(f"\n[magenta]Assistant:[/magenta] {escape(event.content)}")

    def _on_error(self, event: ErrorEvent) -> None:
        if self.mode is OutputMode.VERBOSE:
            self.console.print(f"\n[red]Error: {escape(event.message)}[/red]")

    def _on_completed(self, event: Completed) -> None:
        # Final summary is printed by the command after the run returns
        return None


def print_result(
    console: Console,
    result: AgentExecutionResult,
    mode: OutputMode,
    json_output: bool = False,
) -> None:
    if json_output:
        console.print_json(data={"success": True, "result": result.to_dict()})
    elif mode is OutputMode.QUIET:
        console.print(result.content, markup=False)
    else:
        console.print("\n[bold green]Task completed[/bold green]")
        if result.content:
            console.print(result.content, markup=False)
        if mode is OutputMode.VERBOSE:
            console.print(
                f"[dim]Session {result.session_id} · {result.metadata.tool_call_count} tool calls"
                f" · {result.metadata.duration:.1f}s[/dim]"
            )


def print_error(console: Console, message: str, json_output: bool = False) -> None:
    if json_output:
        console.print_json(data={"success": False, "error": message})
    else:
        console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def format_time_ago(moment: datetime, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = (now - moment).total_seconds()

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        minutes = int(seconds / 60)
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    if seconds < 86400:
        hours = int(seconds / 3600)
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    days = int(seconds / 86400)
    return f"{days} day{'' if days == 1 else 's'} ago"


def print_sessions(
    console: Console,
    sessions: list[SessionSummary],
    json_output: bool = False,
) -> None:
    if json_output:
        console.print_json(
            json.dumps(
                {
                    "success": True,
                    "sessions": [
                        {
                            "id": s.id,
                            "created_at": s.created_at.isoformat(),
                            "updated_at": s.updated_at.isoformat(),
                            "message_count": s.message_count,
                        }
                        for s in sessions
                    ],
                }
            )
        )
        return

    if not sessions:
        console.print("No agent sessions found.")
        return

    table = Table(title="Agent Sessions")
    table.add_column("#", style="blue")
    table.add_column("Session ID", style="cyan")
    table.add_column("Messages", style="white")
    table.add_column("Last activity", style="white")

    for index, session in enumerate(sessions[:MAX_LISTED_SESSIONS], start=1):
        table.add_row(
            str(index),
            session.id,
            str(session.message_count),
            format_time_ago(session.updated_at),
        )
    console.print(table)

    if len(sessions) > MAX_LISTED_SESSIONS:
        console.print(f"[dim]... and {len(sessions) - MAX_LISTED_SESSIONS} more sessions[/dim]")
    console.print('[dim]To resume: taskpilot run task --resume <session-id> "<continuation>"[/dim]')

