"""Sessions command - Inspect agent sessions."""

import asyncio

import typer
from rich.console import Console
from rich.markup import escape

from taskpilot.api.cli.output_formatter import print_error, print_sessions
from taskpilot.api.cli.runtime import create_executor, load_settings
from taskpilot.core.domain.errors import SessionNotFoundError

app = typer.Typer(help="Session management")
console = Console()


@app.command("list")
def list_sessions(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List agent sessions, most recent first."""
    executor = create_executor(load_settings(ctx))
    sessions = asyncio.run(executor.list_sessions())
    print_sessions(console, sessions, json_output=json_output)


@app.command("show")
def show_session(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),
):
    """Show a session transcript."""
    executor = create_executor(load_settings(ctx))

    try:
        session = asyncio.run(executor.factory.session_store.get(session_id))
    except SessionNotFoundError as e:
        print_error(console, e.message)
        raise typer.Exit(1)

    console.print(f"\n[bold]Session:[/bold] {session.id}")
    console.print(f"[bold]Messages:[/bold] {session.message_count}")
    console.print(f"[bold]Updated:[/bold] {session.updated_at.isoformat()}\n")
    for message in session.transcript:
        if message.tool_calls:
            calls = ", ".join(tc.name for tc in message.tool_calls)
            body = f"[tool calls: {calls}]"
        else:
            body = message.content or ""
        console.print(f"[cyan]{message.position}. {message.role.value}[/cyan] {escape(body)}")
