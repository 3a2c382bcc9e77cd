"""
Event sinks - synchronous, ordered delivery of run events.

The run loop awaits ``emit`` for every event before it advances, so a slow
consumer throttles the run. Nothing is buffered or queued.
"""

import inspect
from collections.abc import Awaitable, Callable

from taskpilot.core.domain.events import AgentEvent

EventCallback = Callable[[AgentEvent], Awaitable[None] | None]


class CallbackEventSink:
    """Adapt a plain or async callable to the event sink protocol."""

    def __init__(self, callback: EventCallback):
        self._callback = callback

    async def emit(self, event: AgentEvent) -> None:
        outcome = self._callback(event)
        if inspect.isawaitable(outcome):
            await outcome


class CollectingEventSink:
    """Record every event in delivery order."""

    def __init__(self) -> None:
        self.events: list[AgentEvent] = []

    async def emit(self, event: AgentEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type.value for event in self.events]


class NullEventSink:
    async def emit(self, event: AgentEvent) -> None:
        return None
