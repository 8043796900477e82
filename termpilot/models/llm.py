"""Completion API data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel

from termpilot.models.messages import ToolCallRef


class ToolSchema(BaseModel):
    """Function schema advertised to the completion API."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class CompletionUsage:
    """Token usage information from the completion provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100


@dataclass
class CompletionResponse:
    """Provider-agnostic response to one completion request."""

    content: str = ""
    tool_calls: list[ToolCallRef] = field(default_factory=list)
    stop_reason: str | None = None
    usage: CompletionUsage | None = None
    model: str = ""
    provider: Literal["anthropic", "openai"] = "anthropic"

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
