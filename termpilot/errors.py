"""Exception types shared across termpilot."""

from datetime import UTC, datetime


class TermpilotError(Exception):
    """Base class for all termpilot errors."""


class ConfigError(TermpilotError):
    """Configuration file could not be read, parsed or updated."""


class NoClientConfiguredError(TermpilotError):
    """No valid profile, so no completion client is available."""

    def __init__(self, message: str = "completion API integration not available: no valid profile configured"):
        super().__init__(message)


class CompletionError(TermpilotError):
    """The remote completion API call failed."""


class RecursionLimitError(TermpilotError):
    """Too many completion rounds were chained by tool calls."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"maximum tool call recursion depth reached ({max_depth} rounds)")


class ToolArgumentError(TermpilotError):
    """Tool call arguments were not a valid JSON object for the tool."""


class ToolNotFoundError(TermpilotError):
    """A tool call named a tool that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"tool '{name}' not found")


class EventBusError(TermpilotError):
    """A bus send was rejected."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        self.timestamp = datetime.now(UTC)
        super().__init__(f"{operation}: {reason}")


class CircuitOpenError(EventBusError):
    """The bus circuit breaker is open."""

    def __init__(self, operation: str):
        super().__init__(operation, "circuit breaker is open")


class ChannelFullError(EventBusError):
    """The target channel has no free capacity."""

    def __init__(self, operation: str, channel: str):
        self.channel = channel
        super().__init__(operation, f"{channel} channel is full")


class BusClosedError(EventBusError):
    """The bus has been closed."""

    def __init__(self, operation: str):
        super().__init__(operation, "event bus is closed")
