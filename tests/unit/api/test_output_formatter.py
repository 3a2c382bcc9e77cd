"""Tests for output formatting helpers."""

from datetime import datetime, timedelta, timezone

import pytest
from rich.console import Console

from taskpilot.api.cli.output_formatter import OutputMode, RichEventPrinter, format_time_ago
from taskpilot.core.domain.events import (
    AssistantMessage,
    ErrorEvent,
    Started,
    ToolCallCompleted,
    ToolCallStarted,
)
from taskpilot.core.domain.models import ToolResult

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestFormatTimeAgo:
    """Tests for format_time_ago()."""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=30), "just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=23), "23 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=3), "3 days ago"),
        ],
    )
    def test_buckets(self, delta, expected):
        assert format_time_ago(NOW - delta, now=NOW) == expected


def make_printer(mode: OutputMode) -> tuple[RichEventPrinter, Console]:
    console = Console(record=True, width=120, force_terminal=False)
    return RichEventPrinter(console, mode), console


class TestRichEventPrinter:
    """Tests for RichEventPrinter rendering per output mode."""

    @pytest.mark.asyncio
    async def test_compact_shows_tool_calls(self):
        printer, console = make_printer(OutputMode.COMPACT)

        await printer.emit(Started(task="t"))
        await printer.emit(ToolCallStarted(name="lookup", arguments='{"q": 1}'))
        await printer.emit(ToolCallCompleted(tool_call_id="c1", result=ToolResult.ok(1, tool_call_id="c1")))
        await printer.emit(AssistantMessage(content="final words"))

        text = console.export_text()
        assert "> lookup ✓" in text
        assert "Arguments" not in text
        assert "final words" not in text

    @pytest.mark.asyncio
    async def test_failed_tool_shows_error(self):
        printer, console = make_printer(OutputMode.COMPACT)

        await printer.emit(ToolCallStarted(name="lookup", arguments="{}"))
        await printer.emit(
            ToolCallCompleted(tool_call_id="c1", result=ToolResult.failure("no such [thing]", tool_call_id="c1"))
        )

        text = console.export_text()
        assert "✗" in text
        assert "no such [thing]" in text

    @pytest.mark.asyncio
    async def test_verbose_shows_arguments_and_messages(self):
        printer, console = make_printer(OutputMode.VERBOSE)

        await printer.emit(Started(task="my task"))
        await printer.emit(ToolCallStarted(name="lookup", arguments='{"q": 1}'))
        await printer.emit(AssistantMessage(content="final words"))
        await printer.emit(ErrorEvent(message="boom"))

        text = console.export_text()
        assert "Starting: my task" in text
        assert 'Arguments: {"q": 1}' in text
        assert "Assistant: final words" in text
        assert "Error: boom" in text

    @pytest.mark.asyncio
    async def test_quiet_prints_nothing(self):
        printer, console = make_printer(OutputMode.QUIET)

        await printer.emit(Started(task="t"))
        await printer.emit(ToolCallStarted(name="lookup", arguments="{}"))
        await printer.emit(ToolCallCompleted(tool_call_id="c1", result=ToolResult.ok(tool_call_id="c1")))
        await printer.emit(ErrorEvent(message="boom"))

        assert console.export_text() == ""
