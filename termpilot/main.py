"""Application wiring: config, bus, tools, client, chat service and terminal UI."""

import os
from pathlib import Path

from rich.console import Console

from termpilot.clients import create_client
from termpilot.clients.base import CompletionClient
from termpilot.config import CONFIG_DIR_NAME, HOME_ENV_VAR, Config, load_config
from termpilot.services.chat import ChatService
from termpilot.services.event_bus import EventBus
from termpilot.tools import ToolRegistry, register_builtin_tools
from termpilot.ui.console import ConsoleUI
from termpilot.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)

LOG_FILE_NAME = "termpilot.log"


def get_log_path() -> Path:
    home = os.getenv(HOME_ENV_VAR)
    base = Path(home) if home else Path.home()
    return base / CONFIG_DIR_NAME / LOG_FILE_NAME


class Application:
    """Owns every long-lived component for one terminal session."""

    def __init__(
        self,
        config: Config | None = None,
        client: CompletionClient | None = None,
        console: Console | None = None,
    ):
        """Initialize application.

        Args:
            config: Loaded configuration (read from disk by default)
            client: Completion client (built from the active profile by default)
            console: Rich console for the terminal UI
        """
        self.config = config if config is not None else load_config()
        self.event_bus = EventBus()
        self.tool_registry = register_builtin_tools(ToolRegistry())
        self.client = client if client is not None else create_client(self.config.current_profile)
        self.chat_service = ChatService(
            event_bus=self.event_bus,
            tool_registry=self.tool_registry,
            client=self.client,
            config=self.config,
        )
        self.ui = ConsoleUI(self.event_bus, console=console)

        self.event_bus.set_error_callback(lambda error: logger.debug(f"Event bus error at {error.timestamp}"))

    async def run(self) -> None:
        """Run the chat session until the operator quits."""
        logger.info(f"Starting termpilot with profile '{self.config.active_profile}'")
        self.chat_service.start()
        try:
            await self.ui.run()
        finally:
            await self.stop()

    async def stop(self) -> None:
        await self.chat_service.stop()
        self.event_bus.close()
        logger.info("termpilot stopped")


def configure_logging(level: str | None = None) -> None:
    """Send logs to the log file so they never interleave with the terminal UI."""
    setup_logging(LogConfig(level=level or os.getenv("LOG_LEVEL", "INFO"), file=get_log_path()))
