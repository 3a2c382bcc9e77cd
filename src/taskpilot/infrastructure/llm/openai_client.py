"""
OpenAI Chat Completions client.

Builds chat completion requests from the session transcript and decodes
the reply into a ``ModelReply``. All HTTP handling, retries and error
classification are delegated to the ``RequestExecutor``.
"""

import json

import httpx
import structlog
from pydantic import BaseModel, Field

from taskpilot.core.domain.cancellation import CancellationToken
from taskpilot.core.domain.models import Message, ModelReply, ToolCall, Usage
from taskpilot.core.interfaces.tools import ToolDefinition
from taskpilot.infrastructure.llm.request_executor import RequestExecutor
from taskpilot.infrastructure.llm.retry_policy import RetryConfiguration
from taskpilot.infrastructure.tools.tool_converter import (
    messages_to_openai_format,
    tools_to_openai_format,
)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = 120.0


class FunctionCall(BaseModel):
    name: str
    arguments: str = "{}"


class ToolCallPayload(BaseModel):
    id: str
    type: str = "function"
    function: FunctionCall


class AssistantPayload(BaseModel):
    role: str = "assistant"
    content: str | None = None
    tool_calls: list[ToolCallPayload] = Field(default_factory=list)


class Choice(BaseModel):
    index: int = 0
    message: AssistantPayload
    finish_reason: str | None = None


class UsagePayload(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Subset of the chat completion response body used by the engine."""

    id: str | None = None
    model: str | None = None
    choices: list[Choice] = Field(min_length=1)
    usage: UsagePayload | None = None

    def to_reply(self) -> ModelReply:
        message = self.choices[0].message
        usage = None
        if self.usage is not None:
            usage = Usage(
                prompt_tokens=self.usage.prompt_tokens,
                completion_tokens=self.usage.completion_tokens,
                total_tokens=self.usage.total_tokens,
            )
        return ModelReply(
            content=message.content,
            tool_calls=[
                ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments)
                for tc in message.tool_calls
            ],
            usage=usage,
        )


def decode_chat_completion(body: bytes) -> ModelReply:
    return ChatCompletionResponse.model_validate_json(body).to_reply()


class OpenAIChatClient:
    """Model client for OpenAI-compatible ``/chat/completions`` endpoints."""

    def __init__(
        self,
        api_key: str,
        executor: RequestExecutor,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.api_key = api_key
        self.executor = executor
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = structlog.get_logger().bind(component="openai_client")

    def build_request(
        self,
        transcript: list[Message],
        tools: list[ToolDefinition],
        model: str,
        system_prompt: str | None = None,
    ) -> httpx.Request:
        """Build the POST request carrying the full transcript and tool metadata."""
        body: dict = {
            "model": model,
            "messages": messages_to_openai_format(transcript, system_prompt),
        }
        if tools:
            body["tools"] = tools_to_openai_format(tools)
            body["tool_choice"] = "auto"

        return httpx.Request(
            "POST",
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            content=json.dumps(body, ensure_ascii=False).encode("utf-8"),
            extensions={"timeout": httpx.Timeout(self.timeout).as_dict()},
        )

    async def complete(
        self,
        transcript: list[Message],
        tools: list[ToolDefinition],
        model: str,
        system_prompt: str | None = None,
        retry_config: RetryConfiguration | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelReply:
        request = self.build_request(transcript, tools, model, system_prompt)
        self.logger.info(
            "llm_completion_started",
            model=model,
            message_count=len(transcript),
            tool_count=len(tools),
        )

        reply = await self.executor.execute(
            request,
            decode_chat_completion,
            retry_config=retry_config,
            cancel_token=cancel_token,
        )

        self.logger.info(
            "llm_completion_success",
            model=model,
            tool_calls=len(reply.tool_calls),
            tokens=reply.usage.total_tokens if reply.usage else None,
        )
        return reply
