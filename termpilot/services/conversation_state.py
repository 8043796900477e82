"""Single source of truth for the conversation.

Every mutation is a named, atomic transition taken under one lock; readers get
copies. The orchestrator is the only writer.
"""

import threading
from collections.abc import Callable, Iterable

from termpilot.errors import RecursionLimitError
from termpilot.models.messages import DisplayKind, DisplayMessage, Message, ToolCallRef
from termpilot.services.prompts import get_system_prompt
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RECURSION_DEPTH = 5


class ConversationState:
    """Message log, processing flags, tool-call barrier and recursion guard."""

    def __init__(
        self,
        max_recursion_depth: int = DEFAULT_MAX_RECURSION_DEPTH,
        system_prompt_factory: Callable[[], str] = get_system_prompt,
    ):
        """Initialize conversation state.

        Args:
            max_recursion_depth: Completion rounds allowed per user message
            system_prompt_factory: Builds a fresh system prompt for every request
        """
        if max_recursion_depth < 1:
            raise ValueError("max_recursion_depth must be at least 1")

        self._lock = threading.Lock()
        self._history: list[Message] = []
        self._program_messages: list[DisplayMessage] = []
        self._is_processing = False
        self._last_error: Exception | None = None
        self._pending_tool_calls: set[str] = set()
        self._recursion_depth = 0
        self.max_recursion_depth = max_recursion_depth
        self._system_prompt_factory = system_prompt_factory

    # Read-only views

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._is_processing

    @property
    def last_error(self) -> Exception | None:
        with self._lock:
            return self._last_error

    @property
    def recursion_depth(self) -> int:
        with self._lock:
            return self._recursion_depth

    def get_history(self) -> list[Message]:
        with self._lock:
            return [message.model_copy(deep=True) for message in self._history]

    def get_history_with_system_prompt(self) -> list[Message]:
        """Return the log prefixed with a freshly generated system message."""
        system_message = Message(role="system", content=self._system_prompt_factory())
        return [system_message, *self.get_history()]

    def get_messages(self) -> list[DisplayMessage]:
        """Project program messages and the log into UI display form."""
        with self._lock:
            result = list(self._program_messages)
            tool_names = {call.id: call.name for message in self._history for call in message.tool_calls}

            for message in self._history:
                result.extend(_project(message, tool_names))

            return result

    def has_pending_tool_calls(self) -> bool:
        with self._lock:
            return bool(self._pending_tool_calls)

    def pending_tool_calls(self) -> set[str]:
        with self._lock:
            return set(self._pending_tool_calls)

    # Transitions

    def add_program_message(self, content: str) -> None:
        with self._lock:
            self._program_messages.append(DisplayMessage(kind=DisplayKind.PROGRAM, content=content))

    def start_processing_with_user_message(self, content: str) -> None:
        with self._lock:
            self._is_processing = True
            self._last_error = None
            self._history.append(Message(role="user", content=content))

    def add_assistant_message_with_tool_calls(self, content: str, tool_calls: Iterable[ToolCallRef] = ()) -> None:
        """Append one assistant entry carrying both the text and its tool calls."""
        with self._lock:
            self._history.append(Message(role="assistant", content=content, tool_calls=list(tool_calls)))

    def add_tool_result_message(self, call_id: str, name: str, result_text: str, is_error: bool = False) -> None:
        with self._lock:
            self._history.append(
                Message(role="tool", content=result_text, tool_call_id=call_id, tool_name=name, is_error=is_error)
            )

    def add_pending_tool_call(self, call_id: str) -> None:
        with self._lock:
            self._pending_tool_calls.add(call_id)

    def complete_pending_tool_call(self, call_id: str) -> bool:
        """Remove a call from the barrier.

        Returns:
            True if the pending set is now empty, computed under the same lock as
            the removal so exactly one caller per round observes it.
        """
        with self._lock:
            if call_id not in self._pending_tool_calls:
                logger.warning(f"Completing tool call {call_id} that was not pending")
                return False
            self._pending_tool_calls.discard(call_id)
            return not self._pending_tool_calls

    def can_recurse(self) -> bool:
        with self._lock:
            return self._recursion_depth < self.max_recursion_depth

    def increment_recursion(self) -> int:
        with self._lock:
            if self._recursion_depth >= self.max_recursion_depth:
                raise RecursionLimitError(self.max_recursion_depth)
            self._recursion_depth += 1
            return self._recursion_depth

    def reset_recursion(self) -> None:
        with self._lock:
            self._recursion_depth = 0

    def finish_processing(self) -> None:
        with self._lock:
            self._is_processing = False
            self._last_error = None

    def finish_processing_with_error(self, error: Exception) -> None:
        with self._lock:
            self._is_processing = False
            self._last_error = error


def _project(message: Message, tool_names: dict[str, str]) -> list[DisplayMessage]:
    if message.role == "user":
        return [DisplayMessage(kind=DisplayKind.USER, content=message.content)]

    if message.role == "system":
        return [DisplayMessage(kind=DisplayKind.SYSTEM, content=message.content)]

    if message.role == "assistant":
        projected = []
        if message.content:
            projected.append(DisplayMessage(kind=DisplayKind.ASSISTANT, content=message.content))
        projected.extend(
            DisplayMessage(
                kind=DisplayKind.TOOL_CALL,
                content=call.arguments_json,
                tool_call_id=call.id,
                tool_name=call.name,
                tool_args=call.arguments_json,
            )
            for call in message.tool_calls
        )
        return projected

    return [
        DisplayMessage(
            kind=DisplayKind.TOOL_RESULT,
            content=message.content,
            tool_call_id=message.tool_call_id,
            tool_name=tool_names.get(message.tool_call_id or "", "unknown"),
            is_error=message.is_error,
        )
    ]
