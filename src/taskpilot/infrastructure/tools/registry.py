"""
Tool Registry

A concrete tool layer that maps tool names to plain or async Python
callables. Handlers receive the decoded JSON arguments as keyword
arguments; their return value becomes the success payload.
"""

import inspect
import json
from collections.abc import Callable
from typing import Any

import structlog

from taskpilot.core.domain.errors import ToolInvocationError
from taskpilot.core.domain.models import ToolResult
from taskpilot.core.interfaces.tools import ToolDefinition


class ToolRegistry:
    """In-process tool layer keyed by tool name."""

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[..., Any]] = {}
        self._definitions: dict[str, ToolDefinition] = {}
        self.logger = structlog.get_logger().bind(component="tool_registry")

    def register(self, definition: ToolDefinition, handler: Callable[..., Any]) -> None:
        if definition.name in self._handlers:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._definitions[definition.name] = definition
        self._handlers[definition.name] = handler

    def tool(
        self,
        name: str,
        description: str,
        parameters_schema: dict[str, Any] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``register``."""

        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            extra = {"parameters_schema": parameters_schema} if parameters_schema else {}
            self.register(ToolDefinition(name=name, description=description, **extra), handler)
            return handler

        return decorator

    def definitions(self) -> list[ToolDefinition]:
        return list(self._definitions.values())

    async def invoke(self, name: str, arguments: str) -> ToolResult:
        """
        Run the handler registered under ``name``.

        Raises:
            ToolInvocationError: Unknown tool, arguments that are not a JSON
                object, or a handler failure.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise ToolInvocationError(f"Tool not found: {name}")

        try:
            kwargs = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as exc:
            raise ToolInvocationError(f"Invalid arguments for {name}: {exc}") from exc
        if not isinstance(kwargs, dict):
            raise ToolInvocationError(f"Arguments for {name} must be a JSON object")

        self.logger.debug("tool_execute", tool=name, args_keys=list(kwargs.keys()))
        try:
            payload = handler(**kwargs)
            if inspect.isawaitable(payload):
                payload = await payload
        except ToolInvocationError:
            raise
        except Exception as exc:
            raise ToolInvocationError(f"{type(exc).__name__}: {exc}") from exc

        return ToolResult.ok(payload)
