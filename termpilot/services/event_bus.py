"""Bounded, typed channel pair between the terminal UI and the core."""

import asyncio
from collections.abc import Callable

from termpilot.errors import BusClosedError, ChannelFullError, CircuitOpenError, EventBusError
from termpilot.models.events import CoreEvent, UIEvent
from termpilot.services.circuit_breaker import CircuitBreaker, CircuitState
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHANNEL_CAPACITY = 100

ErrorCallback = Callable[[EventBusError], None]


class EventBus:
    """The only communication path between the presentation layer and the core.

    Sends never block: a full channel is reported as a failure so a slow consumer
    can never stall the producer. Every send is gated by a circuit breaker shared
    by both directions.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CHANNEL_CAPACITY,
        circuit_breaker: CircuitBreaker | None = None,
    ):
        """Initialize event bus.

        Args:
            capacity: Maximum queued events per direction
            circuit_breaker: Breaker to use (defaults to 5 failures / 30s reset)
        """
        self._ui_to_core: asyncio.Queue[UIEvent] = asyncio.Queue(maxsize=capacity)
        self._core_to_ui: asyncio.Queue[CoreEvent] = asyncio.Queue(maxsize=capacity)
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self._error_callback: ErrorCallback | None = None
        self._closed = asyncio.Event()

    @property
    def ui_to_core(self) -> asyncio.Queue[UIEvent]:
        return self._ui_to_core

    @property
    def core_to_ui(self) -> asyncio.Queue[CoreEvent]:
        return self._core_to_ui

    @property
    def circuit_state(self) -> CircuitState:
        return self.circuit_breaker.state

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def set_error_callback(self, callback: ErrorCallback | None) -> None:
        self._error_callback = callback

    def send_to_core(self, event: UIEvent) -> None:
        """Queue a UI event for the core.

        Raises:
            TypeError: If the event is not a UIEvent
            EventBusError: If the send was rejected
        """
        if not isinstance(event, UIEvent):
            raise TypeError(f"send_to_core expects a UIEvent, got {type(event).__name__}")
        self._send("send_to_core", "UI to core", self._ui_to_core, event)

    def send_to_ui(self, event: CoreEvent) -> None:
        """Queue a core event for the UI.

        Raises:
            TypeError: If the event is not a CoreEvent
            EventBusError: If the send was rejected
        """
        if not isinstance(event, CoreEvent):
            raise TypeError(f"send_to_ui expects a CoreEvent, got {type(event).__name__}")
        self._send("send_to_ui", "core to UI", self._core_to_ui, event)

    async def receive_from_ui(self) -> UIEvent | None:
        """Wait for the next UI event; None once the bus is closed."""
        return await self._receive(self._ui_to_core)

    async def receive_from_core(self) -> CoreEvent | None:
        """Wait for the next core event; None once the bus is closed."""
        return await self._receive(self._core_to_ui)

    def close(self) -> None:
        """Reject further sends and wake every pending receiver."""
        if not self._closed.is_set():
            logger.info("Closing event bus")
            self._closed.set()

    def _send(self, operation: str, channel: str, queue: asyncio.Queue, event: object) -> None:
        if self._closed.is_set():
            raise BusClosedError(operation)

        if self.circuit_breaker.is_open():
            error: EventBusError = CircuitOpenError(operation)
            self._report_error(error)
            raise error

        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            error = ChannelFullError(operation, channel)
            self._report_error(error)
            raise error from None

        self.circuit_breaker.record_success()

    def _report_error(self, error: EventBusError) -> None:
        self.circuit_breaker.record_failure()
        stats = self.circuit_breaker.stats()
        logger.warning(
            f"Event bus send failed: {error} "
            f"(circuit {stats.state.value}, {stats.failure_count} consecutive failures)"
        )
        if self._error_callback is not None:
            self._error_callback(error)

    async def _receive(self, queue: asyncio.Queue) -> UIEvent | CoreEvent | None:
        if not queue.empty():
            return queue.get_nowait()
        if self._closed.is_set():
            return None

        get_task = asyncio.ensure_future(queue.get())
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait({get_task, closed_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            get_task.cancel()
            closed_task.cancel()

        if get_task in done and not get_task.cancelled():
            return get_task.result()
        return None
