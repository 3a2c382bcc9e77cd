"""Protocol for event consumers."""

from typing import Protocol

from taskpilot.core.domain.events import AgentEvent


class EventSinkProtocol(Protocol):
    """Receives run events in order; the run waits for each emit to return."""

    async def emit(self, event: AgentEvent) -> None:
        ...
