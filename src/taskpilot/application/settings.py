"""
Configuration management.

Settings come from (highest priority first) explicit keyword arguments,
``TASKPILOT_*`` environment variables, a ``.env`` file and defaults. A YAML
file can be layered on top with ``load_from_file``.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskpilot.infrastructure.llm.retry_policy import RetryConfiguration


class TaskpilotSettings(BaseSettings):
    """Runtime settings with environment variable support."""

    # Model API
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TASKPILOT_API_KEY", "OPENAI_API_KEY", "api_key"),
        description="API key for the model endpoint",
    )
    base_url: str = Field(default="https://api.openai.com/v1", description="Model API base URL")
    default_model: str = Field(default="gpt-4.1", description="Model used when none is given")
    system_prompt: str | None = Field(default=None, description="System prompt for every run")
    request_timeout: float = Field(default=120.0, description="Per-request timeout in seconds")

    # Run loop
    max_steps: int = Field(default=30, ge=1, description="Maximum model calls per run")

    # Retry policy
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_backoff_factor: float = Field(default=2.0, ge=1)
    retry_max_delay: float = Field(default=30.0, ge=0)

    # Sessions
    session_backend: Literal["file", "memory"] = Field(default="file")
    session_dir: str = Field(default="~/.taskpilot/sessions", description="Session storage path")

    # Debug settings
    log_level: str = Field(default="WARNING", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")
    debug_api: bool = Field(default=False, description="Log request/response body prefixes")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TASKPILOT_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def load_from_file(cls, config_path: Path) -> "TaskpilotSettings":
        """Load settings from a YAML configuration file."""
        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

        return cls(**config_data)

    def retry_config(self) -> RetryConfiguration:
        return RetryConfiguration(
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay,
            backoff_factor=self.retry_backoff_factor,
            max_delay=self.retry_max_delay,
        )
