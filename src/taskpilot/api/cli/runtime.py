"""Shared CLI plumbing: settings, logging and executor construction."""

from pathlib import Path

import typer

from taskpilot.application.executor import AgentExecutor
from taskpilot.application.factory import AgentFactory
from taskpilot.application.settings import TaskpilotSettings
from taskpilot.infrastructure.logging_config import configure_logging


def load_settings(ctx: typer.Context) -> TaskpilotSettings:
    """Load settings from the global ``--config`` file (if any) and configure logging."""
    global_opts = ctx.obj or {}
    config_path: Path | None = global_opts.get("config")
    settings = TaskpilotSettings.load_from_file(config_path) if config_path else TaskpilotSettings()

    level = "DEBUG" if global_opts.get("debug") else settings.log_level
    configure_logging(level, json_output=settings.log_json)
    return settings


def create_executor(settings: TaskpilotSettings) -> AgentExecutor:
    return AgentExecutor(AgentFactory(settings))
