"""OpenAI-compatible chat completions client."""

from typing import Any

from openai import AsyncOpenAI, OpenAIError

from termpilot.clients.base import BaseCompletionClient, ClientConfig, RateLimiter
from termpilot.errors import CompletionError
from termpilot.models.llm import CompletionResponse, CompletionUsage, ToolSchema
from termpilot.models.messages import Message, ToolCallRef
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


def to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert the conversation log to Chat Completions messages."""
    converted: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "tool":
            converted.append({"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content})
        elif message.role == "assistant" and message.tool_calls:
            converted.append(
                {
                    "role": "assistant",
                    "content": message.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": call.arguments_json},
                        }
                        for call in message.tool_calls
                    ],
                }
            )
        else:
            converted.append({"role": message.role, "content": message.content})
    return converted


def to_openai_tools(tools: list[ToolSchema]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {"name": tool.name, "description": tool.description, "parameters": tool.parameters},
        }
        for tool in tools
    ]


class OpenAIClient(BaseCompletionClient):
    """Completion client for OpenAI and OpenAI-compatible endpoints."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        config: ClientConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        client: AsyncOpenAI | None = None,
    ):
        if not api_key and client is None:
            raise ValueError("An OpenAI API key is required")

        super().__init__(config, rate_limiter)
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=self.config.request_timeout,
            max_retries=0,
        )

    async def _create(self, messages: list[Message], tools: list[ToolSchema]) -> CompletionResponse:
        request_params: dict[str, Any] = {
            "model": self.config.model,
            "messages": to_openai_messages(messages),
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if tools:
            request_params["tools"] = to_openai_tools(tools)
            request_params["tool_choice"] = "auto"

        logger.debug(f"Making OpenAI API call with model: {request_params['model']}")
        try:
            response = await self.client.chat.completions.create(**request_params)
        except OpenAIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise CompletionError(f"OpenAI API error: {e}") from e

        usage = None
        if response.usage:
            usage = CompletionUsage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        if not response.choices:
            logger.warning("Completion response carried no choices")
            return CompletionResponse(usage=usage, model=response.model, provider="openai")

        choice = response.choices[0]
        tool_calls = [
            ToolCallRef(id=call.id, name=call.function.name, arguments_json=call.function.arguments or "{}")
            for call in choice.message.tool_calls or []
            if call.type == "function"
        ]

        return CompletionResponse(
            content=choice.message.content or "",
            tool_calls=tool_calls,
            stop_reason=choice.finish_reason,
            usage=usage,
            model=response.model,
            provider="openai",
        )
