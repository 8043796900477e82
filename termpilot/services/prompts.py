"""System prompt generation."""

import os
import platform
from datetime import datetime

_OS_NAMES = {"Darwin": "macOS", "Windows": "Windows", "Linux": "Linux"}


def get_system_prompt(cwd: str | None = None) -> str:
    """Generate the system prompt describing the current run-time environment.

    Args:
        cwd: Working directory to report (defaults to the process cwd)

    Returns:
        System prompt string
    """
    if cwd is None:
        try:
            cwd = os.getcwd()
        except OSError:
            cwd = "unknown"

    system = platform.system()
    os_name = _OS_NAMES.get(system, system or "unknown")

    return f"""You are termpilot, an active coding assistant agent. Your role is to explore, \
understand, and cooperate with the user to complete coding tasks efficiently.

## Environment Context
- **Current Working Directory**: {cwd}
- **Operating System**: {os_name} ({system.lower() or "unknown"})
- **Architecture**: {platform.machine() or "unknown"}
- **Current date and time**: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}

## Your Capabilities
You have access to tools that allow you to:
- Execute shell commands and scripts
- Read, list and create files inside the working directory
- Make HTTP requests
- Look up the current time

## Guidelines
- Explore the codebase with tools before making recommendations
- Explain what you are doing and why, concisely
- Ask for clarification when requirements are ambiguous
- Dangerous operations are confirmed by the user; if one is aborted, do not retry it
  without asking
- Focus on practical, working solutions"""
