"""
Tests for the CLI entry point and commands.

The executor is replaced with a mock so no model API is contacted.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from taskpilot.api.cli.main import app
from taskpilot.api.cli.output_formatter import RichEventPrinter
from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.errors import AuthFailureError, SessionNotFoundError
from taskpilot.core.domain.models import (
    AgentExecutionResult,
    ExecutionMetadata,
    Message,
    Session,
    SessionSummary,
    ToolCall,
)


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("taskpilot.api.cli.runtime.configure_logging"):
        yield


@pytest.fixture
def result():
    return AgentExecutionResult(
        content="Task finished.",
        session_id="sess-1",
        tool_calls=(ToolCall(id="c1", name="lookup", arguments="{}"),),
        metadata=ExecutionMetadata(
            duration=1.5, tool_call_count=1, model_name="gpt-test", is_resumed=False
        ),
    )


@pytest.fixture
def mock_executor(result):
    executor = MagicMock()
    executor.execute_task = AsyncMock(return_value=result)
    executor.list_sessions = AsyncMock(return_value=[])
    executor.close = AsyncMock()
    return executor


class TestMainCLI:
    """Test the main CLI application."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_cli_help(self):
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "run" in result.stdout
        assert "sessions" in result.stdout

    def test_version(self):
        result = self.runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestRunCommand:
    """Tests for `taskpilot run task`."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_run_task(self, mock_executor):
        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["run", "task", "Find the answer", "--model", "gpt-test"])

        assert result.exit_code == 0
        assert "Task completed" in result.stdout
        assert "Task finished." in result.stdout

        call = mock_executor.execute_task.call_args
        assert call.args == ("Find the answer",)
        assert call.kwargs["session_id"] is None
        assert call.kwargs["model_name"] == "gpt-test"
        assert call.kwargs["max_steps"] is None
        assert isinstance(call.kwargs["event_sink"], RichEventPrinter)
        assert isinstance(call.kwargs["cancel_token"], CancellationToken)
        mock_executor.close.assert_awaited_once()

    def test_run_task_resume_and_max_steps(self, mock_executor):
        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(
                app, ["run", "task", "Continue", "--resume", "sess-1", "--max-steps", "4"]
            )

        assert result.exit_code == 0
        assert "Resuming session: sess-1" in result.stdout
        kwargs = mock_executor.execute_task.call_args.kwargs
        assert kwargs["session_id"] == "sess-1"
        assert kwargs["max_steps"] == 4

    def test_run_task_json_output(self, mock_executor):
        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["run", "task", "Go", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["result"]["content"] == "Task finished."
        assert payload["result"]["session_id"] == "sess-1"
        assert payload["result"]["tool_calls"][0]["function"]["name"] == "lookup"
        assert mock_executor.execute_task.call_args.kwargs["event_sink"] is None

    def test_run_task_quiet_prints_only_content(self, mock_executor):
        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["run", "task", "Go", "--quiet"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "Task finished."

    def test_run_task_error_exits_non_zero(self, mock_executor):
        mock_executor.execute_task.side_effect = AuthFailureError()

        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["run", "task", "Go"])

        assert result.exit_code == 1
        assert "Invalid API key" in result.stdout
        mock_executor.close.assert_awaited_once()

    def test_run_task_unexpected_error_exits_non_zero(self, mock_executor):
        mock_executor.execute_task.side_effect = OSError("disk full")

        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["run", "task", "Go"])

        assert result.exit_code == 1
        assert "Execution failed: OSError: disk full" in result.stdout
        mock_executor.close.assert_awaited_once()

    def test_run_task_error_json(self, mock_executor):
        mock_executor.execute_task.side_effect = SessionNotFoundError("nope")

        with patch("taskpilot.api.cli.commands.run.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["run", "task", "Go", "--json", "--resume", "nope"])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"success": False, "error": "Session not found: nope"}


class TestSessionsCommand:
    """Tests for `taskpilot sessions`."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_list_empty(self, mock_executor):
        with patch("taskpilot.api.cli.commands.sessions.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["sessions", "list"])

        assert result.exit_code == 0
        assert "No agent sessions found." in result.stdout

    def test_list_table_truncates_to_ten(self, mock_executor):
        now = datetime.now(timezone.utc)
        mock_executor.list_sessions.return_value = [
            SessionSummary(
                id=f"s{i:02d}",
                created_at=now - timedelta(hours=i),
                updated_at=now - timedelta(hours=i),
                message_count=i,
            )
            for i in range(12)
        ]

        with patch("taskpilot.api.cli.commands.sessions.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["sessions", "list"])

        assert result.exit_code == 0
        assert "s00" in result.stdout
        assert "s09" in result.stdout
        assert "s10" not in result.stdout
        assert "... and 2 more sessions" in result.stdout

    def test_list_json(self, mock_executor):
        moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        mock_executor.list_sessions.return_value = [
            SessionSummary(id="abc", created_at=moment, updated_at=moment, message_count=3)
        ]

        with patch("taskpilot.api.cli.commands.sessions.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["sessions", "list", "--json"])

        payload = json.loads(result.stdout)
        assert payload["sessions"] == [
            {
                "id": "abc",
                "created_at": "2024-05-01T12:00:00+00:00",
                "updated_at": "2024-05-01T12:00:00+00:00",
                "message_count": 3,
            }
        ]

    def test_show_session(self, mock_executor):
        moment = datetime(2024, 5, 1, tzinfo=timezone.utc)
        session = Session(
            id="abc",
            created_at=moment,
            updated_at=moment,
            message_count=2,
            transcript=[
                Message.user("hello [there]").model_copy(update={"position": 0}),
                Message.assistant("hi").model_copy(update={"position": 1}),
            ],
        )
        mock_executor.factory.session_store.get = AsyncMock(return_value=session)

        with patch("taskpilot.api.cli.commands.sessions.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["sessions", "show", "abc"])

        assert result.exit_code == 0
        assert "hello [there]" in result.stdout
        assert "1. assistant" in result.stdout

    def test_show_unknown_session(self, mock_executor):
        mock_executor.factory.session_store.get = AsyncMock(side_effect=SessionNotFoundError("zzz"))

        with patch("taskpilot.api.cli.commands.sessions.create_executor", return_value=mock_executor):
            result = self.runner.invoke(app, ["sessions", "show", "zzz"])

        assert result.exit_code == 1
        assert "Session not found: zzz" in result.stdout
