"""Events exchanged between the terminal UI and the core over the event bus."""

from dataclasses import dataclass, field

from termpilot.models.messages import DisplayMessage


class UIEvent:
    """Marker base for events travelling UI → core."""


class CoreEvent:
    """Marker base for events travelling core → UI."""


@dataclass(frozen=True)
class SendMessage(UIEvent):
    """The operator submitted a chat message."""

    text: str


@dataclass(frozen=True)
class ConfirmationResponse(UIEvent):
    """The operator's answer to a ConfirmationRequest with the same id."""

    id: str
    approved: bool


@dataclass(frozen=True)
class StateUpdate(CoreEvent):
    """Messages appended since the previous update, plus current flags."""

    new_messages: list[DisplayMessage] = field(default_factory=list)
    is_processing: bool = False
    error: str | None = None


@dataclass(frozen=True)
class ConfirmationRequest(CoreEvent):
    """A tool asks the operator to approve an operation."""

    id: str
    operation: str
    command: str
    dangerous: bool = False
