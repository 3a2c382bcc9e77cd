"""Protocol for the external tool layer."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from taskpilot.core.domain.models import ToolResult


@dataclass(frozen=True)
class ToolDefinition:
    """Static metadata advertised to the model for one tool."""

    name: str
    description: str
    parameters_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ToolLayerProtocol(Protocol):
    """
    Opaque executor of tool calls.

    The engine forwards the raw argument payload and never validates it.
    ``invoke`` may raise; the run loop turns any exception into a failed
    ToolResult rather than failing the run.
    """

    def definitions(self) -> list[ToolDefinition]:
        ...

    async def invoke(self, name: str, arguments: str) -> ToolResult:
        ...
