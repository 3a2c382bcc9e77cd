"""Run command - Execute agent tasks."""

import asyncio
import contextlib
import signal
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from taskpilot.api.cli.output_formatter import (
    OutputMode,
    RichEventPrinter,
    print_error,
    print_result,
)
from taskpilot.api.cli.runtime import create_executor, load_settings
from taskpilot.application.executor import AgentExecutor
from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.errors import AgentError
from taskpilot.core.domain.models import AgentExecutionResult

app = typer.Typer(help="Execute agent tasks")
console = Console()


@app.command("task")
def run_task(
    ctx: typer.Context,
    task: str = typer.Argument(..., help="Natural language description of the task"),
    resume: Optional[str] = typer.Option(
        None, "--resume", "-r", help="Resume an existing session by id"
    ),
    max_steps: Optional[int] = typer.Option(
        None, "--max-steps", min=1, help="Maximum number of model calls"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to use"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show the final result"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show tool arguments and assistant messages"
    ),
):
    """Execute a task with the agent.

    Examples:
        # Execute a task in a new session
        taskpilot run task "Summarize the open issues"

        # Continue an earlier session
        taskpilot run task "Now close the duplicates" --resume 3f2a...
    """
    settings = load_settings(ctx)
    mode = OutputMode.QUIET if quiet else (OutputMode.VERBOSE if verbose else OutputMode.COMPACT)
    model_name = model or settings.default_model

    if not json_output and mode is not OutputMode.QUIET:
        console.print(f"[bold cyan]Taskpilot[/bold cyan] [dim]({escape(model_name)})[/dim]")
        console.print(f"[dim]Task: {escape(task)}[/dim]")
        if resume:
            console.print(f"[dim]Resuming session: {escape(resume)}[/dim]")
        console.print()

    executor = create_executor(settings)
    printer = None if json_output else RichEventPrinter(console, mode)

    try:
        result = asyncio.run(
            _execute(executor, task, resume, model_name, max_steps, printer)
        )
    except AgentError as e:
        print_error(console, e.message, json_output=json_output)
        raise typer.Exit(1)
    except Exception as e:
        print_error(console, f"Execution failed: {type(e).__name__}: {e}", json_output=json_output)
        if (ctx.obj or {}).get("debug") and not json_output:
            console.print_exception()
        raise typer.Exit(1)

    print_result(console, result, mode, json_output=json_output)


async def _execute(
    executor: AgentExecutor,
    task: str,
    session_id: Optional[str],
    model_name: str,
    max_steps: Optional[int],
    printer: Optional[RichEventPrinter],
) -> AgentExecutionResult:
    """Run the task, turning Ctrl-C into cooperative cancellation."""
    cancel_token = CancellationToken()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel_token.cancel)

    try:
        return await executor.execute_task(
            task,
            session_id=session_id,
            model_name=model_name,
            event_sink=printer,
            max_steps=max_steps,
            cancel_token=cancel_token,
        )
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        await executor.close()
