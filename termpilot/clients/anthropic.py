"""Anthropic Messages API client."""

import json
from typing import Any, Literal

from anthropic import APIError, AsyncAnthropic
from anthropic.types import Message as AnthropicAPIMessage
from pydantic import BaseModel, ConfigDict

from termpilot.clients.base import BaseCompletionClient, ClientConfig, RateLimiter
from termpilot.errors import CompletionError
from termpilot.models.llm import CompletionResponse, CompletionUsage, ToolSchema
from termpilot.models.messages import Message, ToolCallRef
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


class TextBlock(BaseModel):
    """Text content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]


def to_anthropic_messages(messages: list[Message]) -> tuple[str, list[AnthropicMessage]]:
    """Convert the conversation log into a system prompt and Anthropic turns.

    Tool messages become ``tool_result`` blocks inside a user turn and
    consecutive turns with the same role are merged, as the API requires
    strictly alternating roles.
    """
    system_parts: list[str] = []
    turns: list[AnthropicMessage] = []

    def append(role: Literal["user", "assistant"], blocks: list[ContentBlock]) -> None:
        if not blocks:
            return
        if turns and turns[-1].role == role and isinstance(turns[-1].content, list):
            turns[-1].content.extend(blocks)
        else:
            turns.append(AnthropicMessage(role=role, content=blocks))

    for message in messages:
        if message.role == "system":
            system_parts.append(message.content)
        elif message.role == "user":
            append("user", [TextBlock(text=message.content)])
        elif message.role == "assistant":
            blocks: list[ContentBlock] = []
            if message.content:
                blocks.append(TextBlock(text=message.content))
            blocks.extend(
                ToolUseBlock(id=call.id, name=call.name, input=_decode_arguments(call.arguments_json))
                for call in message.tool_calls
            )
            append("assistant", blocks)
        else:
            append(
                "user",
                [
                    ToolResultBlock(
                        tool_use_id=message.tool_call_id or "",
                        content=message.content,
                        is_error=message.is_error,
                    )
                ],
            )

    return "\n\n".join(system_parts), turns


def _decode_arguments(arguments_json: str) -> dict[str, Any]:
    try:
        decoded = json.loads(arguments_json or "{}")
    except json.JSONDecodeError:
        return {"raw_arguments": arguments_json}
    return decoded if isinstance(decoded, dict) else {"value": decoded}


class AnthropicClient(BaseCompletionClient):
    """Completion client for Anthropic models."""

    provider = "anthropic"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        config: ClientConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        client: AsyncAnthropic | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key
            base_url: Alternative API endpoint (optional)
            config: Client configuration
            rate_limiter: Shared rate limiter (optional)
            client: Preconstructed SDK client, mainly for tests
        """
        if not api_key and client is None:
            raise ValueError("An Anthropic API key is required")

        super().__init__(config, rate_limiter)
        self.client = client or AsyncAnthropic(
            api_key=api_key,
            base_url=base_url or None,
            timeout=self.config.request_timeout,
            max_retries=0,
        )

    async def _create(self, messages: list[Message], tools: list[ToolSchema]) -> CompletionResponse:
        system_prompt, turns = to_anthropic_messages(messages)
        anthropic_tools = [
            AnthropicTool(name=tool.name, description=tool.description, input_schema=tool.parameters)
            for tool in tools
        ]

        request_params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [turn.model_dump() for turn in turns],
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if anthropic_tools:
            request_params["tools"] = [tool.model_dump() for tool in anthropic_tools]

        logger.debug(f"Making Anthropic API call with model: {request_params['model']}")
        try:
            response: AnthropicAPIMessage = await self.client.messages.create(**request_params)
        except APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise CompletionError(f"Anthropic API error: {e}") from e

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )
        return self._convert_response(response)

    def _convert_response(self, response: AnthropicAPIMessage) -> CompletionResponse:
        text_parts: list[str] = []
        tool_calls: list[ToolCallRef] = []

        for block in response.content:
            block_dict = block.model_dump() if hasattr(block, "model_dump") else dict(block)
            if block_dict.get("type") == "text":
                text_parts.append(TextBlock.model_validate(block_dict).text)
            elif block_dict.get("type") == "tool_use":
                tool_block = ToolUseBlock.model_validate(block_dict)
                tool_calls.append(
                    ToolCallRef(id=tool_block.id, name=tool_block.name, arguments_json=json.dumps(tool_block.input))
                )
            else:
                logger.warning(f"Unknown content block type: {block_dict.get('type')}")

        usage = None
        if response.usage:
            usage = CompletionUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                cache_creation_input_tokens=response.usage.cache_creation_input_tokens or 0,
                cache_read_input_tokens=response.usage.cache_read_input_tokens or 0,
            )

        return CompletionResponse(
            content="".join(text_parts),
            tool_calls=tool_calls,
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
            provider="anthropic",
        )
