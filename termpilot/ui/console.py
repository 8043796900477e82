"""Rich terminal front end that talks to the core only through the event bus."""

import asyncio
import json
from collections.abc import Callable

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from termpilot.errors import EventBusError
from termpilot.models.events import ConfirmationRequest, ConfirmationResponse, SendMessage, StateUpdate
from termpilot.models.messages import DisplayKind, DisplayMessage
from termpilot.services.event_bus import EventBus
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

MAX_RESULT_DISPLAY_CHARS = 2000

QUIT_COMMANDS = {"/quit", "/exit", "quit", "exit"}


class ConsoleUI:
    """Interactive chat interface for the terminal."""

    def __init__(
        self,
        event_bus: EventBus,
        console: Console | None = None,
        prompt: Callable[[], str] | None = None,
        confirm: Callable[[ConfirmationRequest], bool] | None = None,
    ):
        """Initialize console UI.

        Args:
            event_bus: Bus shared with the chat service
            console: Rich console to render into
            prompt: Reads one line of operator input (blocking)
            confirm: Asks the operator to approve a request (blocking)
        """
        self.event_bus = event_bus
        self.console = console or Console()
        self._prompt = prompt or self._ask_message
        self._confirm = confirm or self._ask_confirmation
        self._idle = asyncio.Event()
        self._render_task: asyncio.Task | None = None

    async def run(self) -> None:
        """Render core events and read operator input until the operator quits."""
        self._render_task = asyncio.create_task(self._render_loop(), name="console-render")
        try:
            while True:
                await self._idle.wait()
                if self._render_task.done():
                    break

                user_input = (await asyncio.to_thread(self._prompt)).strip()
                if user_input.lower() in QUIT_COMMANDS:
                    break
                if user_input.lower() == "/help":
                    self._show_help()
                    continue
                if not user_input:
                    continue

                self._idle.clear()
                try:
                    self.event_bus.send_to_core(SendMessage(text=user_input))
                except EventBusError as e:
                    self.console.print(f"[red]Could not send message: {escape(str(e))}[/red]")
                    self._idle.set()
        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self._render_task.cancel()
            try:
                await self._render_task
            except asyncio.CancelledError:
                pass
            self.console.print("\n[yellow]Goodbye![/yellow]")

    async def _render_loop(self) -> None:
        try:
            while True:
                event = await self.event_bus.receive_from_core()
                if event is None:
                    return
                if isinstance(event, StateUpdate):
                    self.render_update(event)
                elif isinstance(event, ConfirmationRequest):
                    await self.handle_confirmation(event)
        finally:
            # Unblock the input loop so it can notice the render loop ended.
            self._idle.set()

    def render_update(self, update: StateUpdate) -> None:
        for message in update.new_messages:
            self.render_message(message)

        if update.error:
            self.console.print(f"[red]Error: {escape(update.error)}[/red]")

        if update.is_processing:
            self._idle.clear()
        else:
            self._idle.set()

    def render_message(self, message: DisplayMessage) -> None:
        if message.kind == DisplayKind.PROGRAM:
            self.console.print(f"[dim]{escape(message.content)}[/dim]")
        elif message.kind == DisplayKind.SYSTEM:
            self.console.print(f"[yellow]{escape(message.content)}[/yellow]")
        elif message.kind == DisplayKind.USER:
            # Already visible at the prompt
            return
        elif message.kind == DisplayKind.ASSISTANT:
            self.console.print(
                Panel(
                    Markdown(message.content),
                    title="[bold green]termpilot[/bold green]",
                    border_style="green",
                    padding=(1, 2),
                )
            )
        elif message.kind == DisplayKind.TOOL_CALL:
            self.console.print(
                Panel(
                    escape(_pretty_arguments(message.tool_args or message.content)),
                    title=f"[magenta]tool call: {escape(message.tool_name or 'unknown')}[/magenta]",
                    border_style="magenta",
                )
            )
        else:
            content = message.content
            if len(content) > MAX_RESULT_DISPLAY_CHARS:
                content = content[:MAX_RESULT_DISPLAY_CHARS] + "\n..."
            border_style = "red" if message.is_error else "blue"
            self.console.print(
                Panel(
                    escape(content),
                    title=f"[{border_style}]result: {escape(message.tool_name or 'unknown')}[/{border_style}]",
                    border_style=border_style,
                )
            )

    async def handle_confirmation(self, request: ConfirmationRequest) -> None:
        style = "bold red" if request.dangerous else "bold yellow"
        self.console.print(
            Panel(
                escape(request.command),
                title=f"[{style}]{escape(request.operation)}[/{style}]",
                border_style="red" if request.dangerous else "yellow",
            )
        )

        approved = await asyncio.to_thread(self._confirm, request)
        try:
            self.event_bus.send_to_core(ConfirmationResponse(id=request.id, approved=approved))
        except EventBusError as e:
            logger.warning(f"Could not deliver confirmation response {request.id}: {e}")
            self.console.print(f"[red]Could not deliver confirmation: {escape(str(e))}[/red]")

    def _ask_message(self) -> str:
        return Prompt.ask("\n[bold cyan]You[/bold cyan]", console=self.console)

    def _ask_confirmation(self, request: ConfirmationRequest) -> bool:
        question = "Allow this operation?"
        if request.dangerous:
            question = "[red]This operation may modify your system.[/red] Allow it?"
        return Confirm.ask(question, console=self.console, default=False)

    def _show_help(self) -> None:
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /quit or /exit - Exit the chat

[bold]Example requests:[/bold]
1. "What files are in this directory?"
2. "Show me the first 20 lines of README.md"
3. "Run the test suite"

[bold]Tips:[/bold]
• Commands that modify your system always ask for confirmation
• The assistant works relative to the directory you started it in
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def _pretty_arguments(arguments_json: str) -> str:
    try:
        return json.dumps(json.loads(arguments_json), indent=2)
    except json.JSONDecodeError:
        return arguments_json
