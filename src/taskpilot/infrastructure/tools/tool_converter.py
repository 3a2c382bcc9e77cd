"""
Tool Converter - OpenAI function calling format conversion.

This module converts between the domain transcript/tool types and the
wire format expected by OpenAI-compatible chat completion APIs.
"""

import json
from typing import Any

from taskpilot.core.domain.models import Message, Role, ToolResult
from taskpilot.core.interfaces.tools import ToolDefinition

DEFAULT_MAX_OUTPUT_CHARS = 20000


def tools_to_openai_format(definitions: list[ToolDefinition]) -> list[dict[str, Any]]:
    """
    Convert tool definitions to OpenAI function calling format.

    Returns:
        List of tool definitions:
        [
            {
                "type": "function",
                "function": {
                    "name": "tool_name",
                    "description": "Tool description",
                    "parameters": { JSON Schema }
                }
            },
            ...
        ]
    """
    return [
        {
            "type": "function",
            "function": {
                "name": definition.name,
                "description": definition.description,
                "parameters": definition.parameters_schema,
            },
        }
        for definition in definitions
    ]


def message_to_openai_format(message: Message) -> dict[str, Any]:
    """Convert one transcript message to an OpenAI chat message."""
    if message.role is Role.TOOL:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "name": message.name,
            "content": message.content or "",
        }

    if message.role is Role.ASSISTANT and message.tool_calls:
        return {
            "role": "assistant",
            "content": message.content,
            "tool_calls": [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.arguments},
                }
                for tc in message.tool_calls
            ],
        }

    return {"role": message.role.value, "content": message.content or ""}


def messages_to_openai_format(
    transcript: list[Message],
    system_prompt: str | None = None,
) -> list[dict[str, Any]]:
    """Build the request message list: optional system prompt, then the transcript."""
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend(message_to_openai_format(message) for message in transcript)
    return messages


def tool_result_to_message(
    tool_name: str,
    result: ToolResult,
    max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
) -> Message:
    """
    Convert a tool result into a tool-role transcript message.

    Large payloads are truncated to keep the transcript within the model's
    context window. The default limit is 20,000 chars (~5,000 tokens).
    """
    content = json.dumps(
        _truncate_tool_result(result.as_dict(), max_output_chars),
        ensure_ascii=False,
        default=str,
    )
    return Message(
        role=Role.TOOL,
        name=tool_name,
        tool_call_id=result.tool_call_id,
        content=content,
    )


def _truncate_tool_result(result: dict[str, Any], max_chars: int) -> dict[str, Any]:
    """Truncate the large fields of a tool result dictionary."""
    truncated = result.copy()

    for key in ("result", "error"):
        if key not in truncated:
            continue
        value = truncated[key]
        if isinstance(value, (list, dict)):
            value_str = json.dumps(value, ensure_ascii=False, default=str)
            if len(value_str) > max_chars:
                value = value_str
        if isinstance(value, str) and len(value) > max_chars:
            overflow = len(value) - max_chars
            truncated[key] = (
                value[:max_chars] + f"\n\n[... TRUNCATED - {overflow} more chars ...]"
            )

    return truncated
