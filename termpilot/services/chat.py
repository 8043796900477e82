"""Chat service: the completion ↔ tool-call control loop.

The service consumes UI events from the bus, records every change through
``ConversationState`` transitions and pushes incremental state updates back to
the UI. Tool calls of one completion round run concurrently; the result handler
that empties the pending set is the only one that starts the next round.
"""

import asyncio
import json
import threading
from collections.abc import Coroutine
from typing import Any

from cuid2 import cuid_wrapper

from termpilot.clients.base import CompletionClient
from termpilot.config import Config
from termpilot.errors import (
    CompletionError,
    EventBusError,
    NoClientConfiguredError,
    RecursionLimitError,
    ToolArgumentError,
)
from termpilot.models.events import ConfirmationRequest, ConfirmationResponse, SendMessage, StateUpdate, UIEvent
from termpilot.models.messages import ToolCall, ToolCallRef, ToolResult
from termpilot.services.conversation_state import ConversationState
from termpilot.services.event_bus import EventBus
from termpilot.tools.registry import ToolRegistry
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


def parse_tool_arguments(arguments_json: str) -> dict[str, Any]:
    """Decode a tool call's JSON arguments into an object.

    Raises:
        ToolArgumentError: If the arguments are not a JSON object
    """
    try:
        args = json.loads(arguments_json or "{}")
    except json.JSONDecodeError as e:
        raise ToolArgumentError(str(e)) from e

    if not isinstance(args, dict):
        raise ToolArgumentError(f"expected a JSON object, got {type(args).__name__}")
    return args


def format_tool_result(result: ToolResult) -> str:
    """Render a tool result as the content of a tool message."""
    if result.error is not None:
        return f"Error: {result.error}"
    if isinstance(result.result, str):
        return result.result
    return json.dumps(result.result, indent=2, default=str)


class ChatService:
    """Orchestrates one conversation between the operator, the model and the tools."""

    def __init__(
        self,
        event_bus: EventBus,
        tool_registry: ToolRegistry,
        client: CompletionClient | None,
        state: ConversationState | None = None,
        config: Config | None = None,
    ):
        """Initialize chat service.

        Args:
            event_bus: Bus shared with the presentation layer
            tool_registry: Tools available to the model; this service becomes their confirmator
            client: Completion client, or None when no valid profile is configured
            state: Conversation state (a fresh one by default)
            config: Loaded configuration, used for the welcome screen
        """
        self.event_bus = event_bus
        self.tool_registry = tool_registry
        self.client = client
        self.state = state or ConversationState()
        self.config = config

        self._last_sent_count = 0
        self._push_lock = threading.Lock()
        self._pending_confirms: dict[str, asyncio.Future[bool]] = {}
        self._confirm_lock = threading.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._event_loop_task: asyncio.Task | None = None
        self._stopped = asyncio.Event()

        self.tool_registry.set_confirmator(self)
        self._add_welcome_messages()

    @property
    def is_ready(self) -> bool:
        return self.client is not None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def pending_confirmation_ids(self) -> list[str]:
        with self._confirm_lock:
            return list(self._pending_confirms)

    # Lifecycle

    def start(self) -> None:
        """Push the initial state to the UI and start consuming UI events."""
        self.push_state_to_ui()
        self._event_loop_task = asyncio.create_task(self._event_loop(), name="chat-event-loop")
        logger.info("Chat service started")

    async def stop(self) -> None:
        """Stop consuming events; pending confirmations resolve to denied."""
        if self._stopped.is_set():
            return
        logger.info("Stopping chat service")
        self._stopped.set()

        if self._event_loop_task is not None:
            self._event_loop_task.cancel()
            try:
                await self._event_loop_task
            except asyncio.CancelledError:
                pass

    async def wait_idle(self) -> None:
        """Wait until every background round, tool and result handler has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _event_loop(self) -> None:
        while not self._stopped.is_set():
            event = await self.event_bus.receive_from_ui()
            if event is None:
                logger.info("Event bus closed, leaving event loop")
                return
            self.handle_ui_event(event)

    def handle_ui_event(self, event: UIEvent) -> None:
        if isinstance(event, SendMessage):
            self._spawn(self.process_message(event.text), name="process-message")
        elif isinstance(event, ConfirmationResponse):
            self.handle_confirmation_response(event)
        else:
            logger.warning(f"Ignoring unknown UI event: {type(event).__name__}")

    # Conversation flow

    async def process_message(self, text: str) -> None:
        """Record a user message and run completion rounds until the model stops calling tools."""
        logger.info(f"Processing user message: {text[:50]}...")
        self.state.start_processing_with_user_message(text)
        self.state.reset_recursion()
        self.push_state_to_ui()

        if self.client is not None:
            try:
                self.client.validate_message_tokens(text)
            except ValueError as e:
                self._finish_with_error(e)
                return

        await self.continue_conversation()

    async def continue_conversation(self) -> None:
        """Run one completion round.

        Invoked once per user message and once per completed tool barrier.
        """
        try:
            await self._run_round()
        except Exception as e:
            logger.error(f"Completion round failed unexpectedly: {e}", exc_info=True)
            self._finish_with_error(e)

    async def _run_round(self) -> None:
        if self._stopped.is_set():
            logger.info("Chat service stopped, not starting another round")
            self.state.finish_processing()
            self.state.reset_recursion()
            self.push_state_to_ui()
            return

        if self.client is None:
            self._finish_with_error(NoClientConfiguredError())
            return

        if not self.state.can_recurse():
            logger.warning(f"Recursion limit of {self.state.max_recursion_depth} completion rounds reached")
            self._finish_with_error(RecursionLimitError(self.state.max_recursion_depth))
            return

        depth = self.state.increment_recursion()
        messages = self.state.get_history_with_system_prompt()
        logger.debug(f"Completion round {depth}/{self.state.max_recursion_depth} with {len(messages)} messages")

        try:
            response = await self.client.create_completion(messages, self.tool_registry.describe_all())
        except CompletionError as e:
            self._finish_with_error(e)
            return

        if response.usage:
            usage = response.usage
            logger.info(
                f"Token usage - Input: {usage.input_tokens}, Output: {usage.output_tokens}, "
                f"Cache hit rate: {usage.cache_hit_rate:.1f}%"
            )

        if response.content or response.tool_calls:
            self.state.add_assistant_message_with_tool_calls(response.content, response.tool_calls)
            self.push_state_to_ui()

        if response.tool_calls:
            logger.info(f"Model requested {len(response.tool_calls)} tool calls")
            await self._dispatch_tool_calls(response.tool_calls)
            return

        logger.info(f"Conversation round complete after {depth} completion calls")
        self.state.finish_processing()
        self.state.reset_recursion()
        self.push_state_to_ui()

    async def _dispatch_tool_calls(self, tool_calls: list[ToolCallRef]) -> None:
        unique: list[ToolCallRef] = []
        duplicates: list[ToolCallRef] = []
        seen: set[str] = set()
        for call in tool_calls:
            (duplicates if call.id in seen else unique).append(call)
            seen.add(call.id)

        # Every id joins the barrier before any result can arrive.
        for call in unique:
            self.state.add_pending_tool_call(call.id)

        # A repeated id shares its barrier slot with the first call, so it is
        # answered here and never dispatched.
        for call in duplicates:
            logger.warning(f"Skipping tool call {call.name} with duplicate id {call.id}")
            self.state.add_tool_result_message(call.id, call.name, f"Error: duplicate tool call id {call.id}", True)
            self.push_state_to_ui()

        barrier_released = False
        loop = asyncio.get_running_loop()
        for call in unique:
            try:
                args = parse_tool_arguments(call.arguments_json)
            except ToolArgumentError as e:
                logger.warning(f"Malformed arguments for tool {call.name}: {e}")
                barrier_released = self._record_tool_result(call.id, call.name, f"Error parsing arguments: {e}", True)
                continue

            result: asyncio.Future[ToolResult] = loop.create_future()
            self._track(self.tool_registry.execute_async(ToolCall(id=call.id, name=call.name, args=args), result))
            self._spawn(self._handle_tool_result(result), name=f"tool-result-{call.id}")

        if barrier_released:
            await self.continue_conversation()

    async def _handle_tool_result(self, result: asyncio.Future[ToolResult]) -> None:
        tool_result = await result
        all_complete = self._record_tool_result(
            tool_result.call_id, tool_result.name, format_tool_result(tool_result), tool_result.is_error
        )
        if all_complete:
            await self.continue_conversation()

    def _record_tool_result(self, call_id: str, name: str, content: str, is_error: bool = False) -> bool:
        self.state.add_tool_result_message(call_id, name, content, is_error)
        self.push_state_to_ui()
        return self.state.complete_pending_tool_call(call_id)

    def _finish_with_error(self, error: Exception) -> None:
        logger.error(f"Conversation round ended with error: {error}")
        self.state.finish_processing_with_error(error)
        self.state.reset_recursion()
        self.push_state_to_ui()

    # Confirmation handshake

    async def request_confirmation(self, operation: str, command: str, dangerous: bool) -> bool:
        """Ask the operator to approve an operation and wait for the answer.

        Returns False when the request cannot be delivered or the service stops
        before an answer arrives.
        """
        if self._stopped.is_set():
            return False

        confirmation_id = cuid()
        response: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        with self._confirm_lock:
            self._pending_confirms[confirmation_id] = response

        try:
            try:
                self.event_bus.send_to_ui(
                    ConfirmationRequest(id=confirmation_id, operation=operation, command=command, dangerous=dangerous)
                )
            except EventBusError as e:
                logger.warning(f"Could not deliver confirmation request, denying: {e}")
                return False

            logger.info(f"Awaiting confirmation {confirmation_id}: {operation} ({command})")
            stop_wait = asyncio.ensure_future(self._stopped.wait())
            try:
                done, _ = await asyncio.wait({response, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                stop_wait.cancel()

            if response in done and not response.cancelled():
                approved = response.result()
                logger.info(f"Confirmation {confirmation_id} {'approved' if approved else 'denied'}")
                return approved

            logger.info(f"Confirmation {confirmation_id} cancelled by shutdown")
            return False
        finally:
            with self._confirm_lock:
                self._pending_confirms.pop(confirmation_id, None)
            if not response.done():
                response.cancel()

    def handle_confirmation_response(self, event: ConfirmationResponse) -> None:
        with self._confirm_lock:
            response = self._pending_confirms.get(event.id)

        if response is None:
            logger.debug(f"Ignoring confirmation response for unknown id {event.id}")
            return
        if not response.done():
            response.set_result(event.approved)

    # UI propagation

    def push_state_to_ui(self) -> None:
        """Send the messages appended since the last push, plus the current flags."""
        with self._push_lock:
            all_messages = self.state.get_messages()
            new_messages = all_messages[self._last_sent_count :]
            self._last_sent_count = len(all_messages)

            last_error = self.state.last_error
            update = StateUpdate(
                new_messages=new_messages,
                is_processing=self.state.is_processing,
                error=str(last_error) if last_error else None,
            )

            try:
                self.event_bus.send_to_ui(update)
            except EventBusError as e:
                logger.warning(f"Dropped state update with {len(new_messages)} messages: {e}")

    def _add_welcome_messages(self) -> None:
        self.state.add_program_message("-- TERMPILOT --")

        profile_name = self.config.active_profile if self.config else "none"
        if self.is_ready:
            self.state.add_program_message(f"Active Profile: {profile_name} [OK]")
            self.state.add_program_message("Ready to chat! Type your message and press Enter")
        else:
            self.state.add_program_message(f"Active Profile: {profile_name} [NOT CONFIGURED]")
            self.state.add_program_message("Configure your profile to start chatting:")
            self.state.add_program_message("• Run: termpilot profile add <name> --api-key <key>")
            self.state.add_program_message("• Or edit: ~/.termpilot/config.json")

        self.state.add_program_message("Commands: /help, /quit")

    # Task bookkeeping

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str | None = None) -> asyncio.Task:
        return self._track(asyncio.create_task(coro, name=name))

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task {task.get_name()} failed: {task.exception()}")
