"""Shared completion client plumbing: configuration, rate limiting and token budgeting."""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

import tiktoken
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from termpilot.errors import CompletionError
from termpilot.models.llm import CompletionResponse, ToolSchema
from termpilot.models.messages import Message
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


class CompletionClient(Protocol):
    """Anything that can turn a conversation into the next assistant turn."""

    async def create_completion(self, messages: list[Message], tools: list[ToolSchema]) -> CompletionResponse: ...

    def validate_message_tokens(self, message: str) -> None: ...


@dataclass
class ClientConfig:
    """Configuration for completion API clients."""

    model: str = "gpt-4o-mini"
    max_tokens: int = 4096
    temperature: float = 0.1
    request_timeout: float = 120.0

    # Token limits for validation and truncation
    max_message_tokens: int = 32_000  # Maximum tokens per individual user message
    max_conversation_tokens: int = 128_000
    token_headroom: int = 4096  # Reserve tokens for response

    requests_per_minute: int = 50
    tokens_per_minute: int = 400_000


class RateLimiter:
    """Moving-window request and token rate limiter built on the limits library."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 400_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "completion") -> None:
        """Wait until the request fits within the request and token windows."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        cost = max(1, min(estimated_tokens, self.token_limit.amount))
        if not self.limiter.hit(self.token_limit, token_identifier, cost=cost):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit, identifier: str, kind: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{kind} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class BaseCompletionClient(ABC):
    """Common behaviour for provider clients.

    Transport errors are never retried here: a failed call ends the current round
    and is reported to the operator.
    """

    provider: str = ""

    def __init__(self, config: ClientConfig | None = None, rate_limiter: RateLimiter | None = None):
        self.config = config or ClientConfig()
        self.rate_limiter = rate_limiter or RateLimiter(
            self.config.requests_per_minute,
            self.config.tokens_per_minute,
        )

        # Initialize tokenizer for token estimation
        self.tokenizer: tiktoken.Encoding | None
        try:
            self.tokenizer = tiktoken.get_encoding("cl100k_base")
        except Exception:
            logger.warning("tiktoken encoding unavailable, falling back to character estimates")
            self.tokenizer = None

    async def create_completion(self, messages: list[Message], tools: list[ToolSchema]) -> CompletionResponse:
        """Send the conversation and return the next assistant turn.

        Raises:
            CompletionError: If the conversation cannot fit or the provider call fails
        """
        truncated = self.truncate_conversation(messages, tools)
        if any(m.role != "system" for m in messages) and all(m.role == "system" for m in truncated):
            raise CompletionError(
                f"latest message does not fit within the {self.config.max_conversation_tokens} token conversation limit"
            )

        estimated_tokens = sum(self.estimate_message_tokens(_message_text(m)) for m in truncated)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens, identifier=self.provider)

        logger.debug(f"Creating completion with {len(truncated)} messages, {len(tools)} tools")
        return await self._create(truncated, tools)

    @abstractmethod
    async def _create(self, messages: list[Message], tools: list[ToolSchema]) -> CompletionResponse:
        """Perform the provider call."""

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            raise ValueError(
                f"Message exceeds token limit: {token_count} tokens > {self.config.max_message_tokens} limit"
            )

    def truncate_conversation(self, messages: list[Message], tools: list[ToolSchema] | None = None) -> list[Message]:
        """Drop the oldest messages so the conversation fits within token limits.

        System messages are always kept. The kept tail always starts at a user
        message so tool results are never separated from the call that produced them.
        """
        if not messages:
            return messages

        system_messages = [m for m in messages if m.role == "system"]
        conversation = [m for m in messages if m.role != "system"]

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= sum(self.estimate_message_tokens(m.content) for m in system_messages)
        if tools:
            tool_content = "".join(tool.name + tool.description + str(tool.parameters) for tool in tools)
            available_tokens -= self.estimate_message_tokens(tool_content)

        kept: list[Message] = []
        current_tokens = 0
        for message in reversed(conversation):
            message_tokens = self.estimate_message_tokens(_message_text(message))
            if current_tokens + message_tokens > available_tokens:
                break
            kept.insert(0, message)
            current_tokens += message_tokens

        while kept and kept[0].role != "user":
            kept.pop(0)

        if len(kept) < len(conversation):
            logger.warning(
                f"Truncated conversation from {len(conversation)} to {len(kept)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return [*system_messages, *kept]


def _message_text(message: Message) -> str:
    return message.content + "".join(call.name + call.arguments_json for call in message.tool_calls)
