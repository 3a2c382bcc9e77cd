"""
Core Domain Models

This module defines the data models shared by the run loop, the session
store and the model client:

- Message / ToolCall / ToolResult: transcript entries and tool traffic
- Session / SessionSummary: persisted conversations
- Usage / ModelReply: what a single model call returns
- ExecutionMetadata / AgentExecutionResult: the final outcome of a run

Persisted models are pydantic models so the file store can serialize them
directly. Run results are frozen dataclasses produced once per run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """
    A tool invocation requested by the model.

    ``arguments`` is the raw serialized payload produced by the model. The
    engine forwards it to the tool layer untouched and never inspects it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"


class ToolResult(BaseModel):
    """
    Outcome of one tool invocation.

    Tool layers do not know the call id; the run loop stamps
    ``tool_call_id`` before the result is recorded.
    """

    model_config = ConfigDict(frozen=True)

    tool_call_id: str | None = None
    success: bool
    payload: Any = None
    error_message: str | None = None

    @classmethod
    def ok(cls, payload: Any = None, tool_call_id: str | None = None) -> "ToolResult":
        return cls(tool_call_id=tool_call_id, success=True, payload=payload)

    @classmethod
    def failure(cls, error_message: str, tool_call_id: str | None = None) -> "ToolResult":
        return cls(tool_call_id=tool_call_id, success=False, error_message=error_message)

    def as_dict(self) -> dict[str, Any]:
        """Shape sent back to the model as tool message content."""
        if self.success:
            return {"success": True, "result": self.payload}
        return {"success": False, "error": self.error_message}


class Message(BaseModel):
    """
    One transcript entry.

    ``position`` is assigned by the session store when the message is
    appended; messages built by the run loop leave it unset.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None
    position: int | None = None

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str | None, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=list(tool_calls or []))


class SessionSummary(BaseModel):
    """Session metadata returned by listings."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    updated_at: datetime
    message_count: int


class Session(BaseModel):
    """A persisted, resumable conversation."""

    id: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0
    transcript: list[Message] = Field(default_factory=list)

    def summary(self) -> SessionSummary:
        return SessionSummary(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            message_count=self.message_count,
        )


@dataclass(frozen=True)
class Usage:
    """Token counters as reported by the model API."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class ModelReply:
    """
    Decoded result of one model call.

    Either a final answer (no tool calls) or a batch of tool calls to be
    dispatched in order.
    """

    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Usage | None = None

    @property
    def is_final(self) -> bool:
        return not self.tool_calls


@dataclass(frozen=True)
class ExecutionMetadata:
    duration: float
    tool_call_count: int
    model_name: str
    is_resumed: bool


@dataclass(frozen=True)
class AgentExecutionResult:
    """
    Final outcome of a completed run.

    Attributes:
        content: Final assistant message
        session_id: Session the run was bound to
        tool_calls: Every tool call dispatched during the run, in order
        metadata: Duration (seconds), tool call count, model, resume flag
        usage: Summed token usage, None when the API reported none
    """

    content: str
    session_id: str
    tool_calls: tuple[ToolCall, ...]
    metadata: ExecutionMetadata
    usage: Usage | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "session_id": self.session_id,
            "tool_calls": [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.arguments},
                }
                for tc in self.tool_calls
            ],
            "metadata": {
                "duration": self.metadata.duration,
                "tool_call_count": self.metadata.tool_call_count,
                "model_name": self.metadata.model_name,
                "is_resumed": self.metadata.is_resumed,
            },
            "usage": (
                {
                    "prompt_tokens": self.usage.prompt_tokens,
                    "completion_tokens": self.usage.completion_tokens,
                    "total_tokens": self.usage.total_tokens,
                }
                if self.usage
                else None
            ),
        }
