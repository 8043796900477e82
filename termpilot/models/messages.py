"""Conversation message models."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolCallRef(BaseModel):
    """A tool invocation requested by the completion API."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments_json: str = "{}"


class ToolCall(BaseModel):
    """A tool call whose arguments have been decoded, ready for dispatch."""

    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """One entry of the conversation log sent to the completion API."""

    role: Literal["user", "assistant", "tool", "system"]
    content: str = ""
    tool_call_id: str | None = None
    tool_name: str | None = None
    tool_calls: list[ToolCallRef] = Field(default_factory=list)
    is_error: bool = False


class ToolResult(BaseModel):
    """Outcome of exactly one tool execution."""

    call_id: str
    name: str
    result: Any = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class DisplayKind(str, Enum):
    """How a display message should be rendered."""

    PROGRAM = "program"
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


class DisplayMessage(BaseModel):
    """UI projection of the conversation log."""

    model_config = ConfigDict(frozen=True)

    kind: DisplayKind
    content: str
    tool_call_id: str | None = None
    tool_name: str | None = None
    tool_args: str | None = None
    is_error: bool = False
