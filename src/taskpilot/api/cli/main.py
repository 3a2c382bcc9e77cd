"""Taskpilot CLI entry point."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from taskpilot.api.cli.commands import run, sessions

app = typer.Typer(
    name="taskpilot",
    help="Taskpilot - autonomous task execution with tool-calling models",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

# Register command groups
app.add_typer(run.app, name="run", help="Execute tasks")
app.add_typer(sessions.app, name="sessions", help="Session management")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML settings file", exists=True, dir_okay=False
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Taskpilot Agent CLI."""
    # Store global options in context for subcommands
    ctx.obj = {"config": config, "debug": debug}


@app.command()
def version():
    """Show Taskpilot version."""
    from taskpilot import __version__

    console.print(f"[bold blue]Taskpilot[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
