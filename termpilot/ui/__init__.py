"""Terminal front end."""

from termpilot.ui.console import ConsoleUI

__all__ = ["ConsoleUI"]
