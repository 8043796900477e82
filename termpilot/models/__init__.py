"""Data models for conversations, bus events and completion responses."""

from termpilot.models.events import (
    ConfirmationRequest,
    ConfirmationResponse,
    CoreEvent,
    SendMessage,
    StateUpdate,
    UIEvent,
)
from termpilot.models.llm import CompletionResponse, CompletionUsage, ToolSchema
from termpilot.models.messages import DisplayKind, DisplayMessage, Message, ToolCall, ToolCallRef, ToolResult

__all__ = [
    "CompletionResponse",
    "CompletionUsage",
    "ConfirmationRequest",
    "ConfirmationResponse",
    "CoreEvent",
    "DisplayKind",
    "DisplayMessage",
    "Message",
    "SendMessage",
    "StateUpdate",
    "ToolCall",
    "ToolCallRef",
    "ToolResult",
    "ToolSchema",
    "UIEvent",
]
