"""
Agent Lifecycle Events

Events are ephemeral facts about a run, delivered in order to the event
sink and never persisted:

- Started: the user task was accepted
- ToolCallStarted / ToolCallCompleted: one tool invocation
- AssistantMessage: the final assistant answer
- ErrorEvent: the run is terminating with a failure
- Completed: the run produced its result

Each variant is a frozen dataclass tagged with an ``AgentEventType``.
``AgentEvent`` is the closed union of all variants.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from taskpilot.core.domain.models import AgentExecutionResult, ToolResult


class AgentEventType(str, Enum):
    STARTED = "started"
    TOOL_CALL_STARTED = "tool_call_started"
    TOOL_CALL_COMPLETED = "tool_call_completed"
    ASSISTANT_MESSAGE = "assistant_message"
    ERROR = "error"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Started:
    type: ClassVar[AgentEventType] = AgentEventType.STARTED
    task: str


@dataclass(frozen=True)
class ToolCallStarted:
    type: ClassVar[AgentEventType] = AgentEventType.TOOL_CALL_STARTED
    name: str
    arguments: str


@dataclass(frozen=True)
class ToolCallCompleted:
    type: ClassVar[AgentEventType] = AgentEventType.TOOL_CALL_COMPLETED
    tool_call_id: str
    result: ToolResult


@dataclass(frozen=True)
class AssistantMessage:
    type: ClassVar[AgentEventType] = AgentEventType.ASSISTANT_MESSAGE
    content: str


@dataclass(frozen=True)
class ErrorEvent:
    type: ClassVar[AgentEventType] = AgentEventType.ERROR
    message: str


@dataclass(frozen=True)
class Completed:
    type: ClassVar[AgentEventType] = AgentEventType.COMPLETED
    result: AgentExecutionResult


AgentEvent = Union[
    Started,
    ToolCallStarted,
    ToolCallCompleted,
    AssistantMessage,
    ErrorEvent,
    Completed,
]
