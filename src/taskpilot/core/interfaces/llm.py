"""Protocol for the model API consumed by the run loop."""

from typing import Protocol

from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.models import Message, ModelReply
from taskpilot.core.interfaces.tools import ToolDefinition
from taskpilot.infrastructure.llm.retry_policy import RetryConfiguration


class ModelClientProtocol(Protocol):
    """
    A chat-completions style model endpoint.

    Implementations send the full transcript plus tool metadata and return
    either a final assistant message or a batch of tool calls. Failures are
    raised as ``AgentError`` subclasses after retries are exhausted.
    """

    async def complete(
        self,
        transcript: list[Message],
        tools: list[ToolDefinition],
        model: str,
        system_prompt: str | None = None,
        retry_config: RetryConfiguration | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelReply:
        ...
