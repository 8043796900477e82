"""Shell command execution tool."""

import asyncio
import os
import signal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from termpilot.tools.base import ConfirmableTool, resolve_workspace_path
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_TIMEOUT = 300.0
MAX_OUTPUT_CHARS = 20_000

# Commands matching one of these are treated as read-only: the operator is still
# asked, but the request is not flagged dangerous.
READ_ONLY_PREFIXES = (
    "ls",
    "dir",
    "pwd",
    "echo",
    "cat",
    "type",
    "find",
    "grep",
    "head",
    "tail",
    "wc",
    "sort",
    "uniq",
    "which",
    "where",
    "git status",
    "git log",
    "git diff",
    "git show",
    "pip list",
    "python --version",
    "node --version",
)

_CHAINING_TOKENS = ("&&", "||", ";", "|", ">", "<", "`", "$(")


class ShellInput(BaseModel):
    """Input schema for the shell tool."""

    command: str = Field(..., min_length=1, description="The shell command to execute")
    timeout: float = Field(
        DEFAULT_TIMEOUT,
        gt=0,
        description=f"Timeout in seconds (default: {DEFAULT_TIMEOUT:.0f}, max: {MAX_TIMEOUT:.0f})",
    )
    working_dir: str | None = Field(
        None, description="Working directory for the command, relative to the current directory (optional)"
    )

    @field_validator("timeout")
    @classmethod
    def cap_timeout(cls, v: float) -> float:
        return min(v, MAX_TIMEOUT)


def is_dangerous_command(command: str) -> bool:
    """Return True unless the command is a single read-only invocation."""
    normalized = " ".join(command.strip().lower().split())
    if any(token in normalized for token in _CHAINING_TOKENS):
        return True
    return not any(normalized == prefix or normalized.startswith(prefix + " ") for prefix in READ_ONLY_PREFIXES)


class ShellTool(ConfirmableTool):
    """Execute shell commands with a timeout, after operator confirmation."""

    name = "shell"
    description = "Execute shell commands with safety features and timeout control"
    input_model = ShellInput

    async def execute(self, args: ShellInput) -> dict[str, Any]:
        cwd: Path | None = None
        if args.working_dir:
            cwd = resolve_workspace_path(args.working_dir)
            if not cwd.is_dir():
                raise ValueError(f"working directory does not exist: {args.working_dir}")

        dangerous = is_dangerous_command(args.command)
        if not await self.confirm("Execute command", args.command, dangerous):
            logger.info(f"Operator aborted command: {args.command}")
            return {"output": "User aborted command execution", "aborted": True}

        logger.info(f"Running shell command: {args.command}")
        process = await asyncio.create_subprocess_shell(
            args.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=cwd,
            env=os.environ.copy(),
            start_new_session=True,
        )

        result: dict[str, Any] = {
            "command": args.command,
            "working_dir": args.working_dir or "",
            "timeout": args.timeout,
        }

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=args.timeout)
        except TimeoutError:
            _kill_process_group(process)
            stdout, _ = await process.communicate()
            result.update(
                output=_truncate(stdout.decode(errors="replace")),
                success=False,
                timed_out=True,
                error=f"command timed out after {args.timeout:g}s",
            )
            return result

        result.update(
            output=_truncate(stdout.decode(errors="replace")),
            exit_code=process.returncode,
            success=process.returncode == 0,
        )
        if process.returncode != 0:
            result["error"] = f"exit status {process.returncode}"
        return result


def _truncate(output: str) -> str:
    if len(output) <= MAX_OUTPUT_CHARS:
        return output
    return output[:MAX_OUTPUT_CHARS] + f"\n... [truncated {len(output) - MAX_OUTPUT_CHARS} characters]"


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    # The shell runs in its own session; kill its children too so the pipe closes.
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
