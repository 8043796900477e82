"""Tools registry for managing assistant tools."""

import asyncio

from termpilot.errors import ToolArgumentError, ToolNotFoundError
from termpilot.models.llm import ToolSchema
from termpilot.models.messages import ToolCall, ToolResult
from termpilot.tools.base import ConfirmableTool, Confirmator, Tool
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """Name → tool map with asynchronous dispatch.

    Constructed once per application and injected into the chat service.
    """

    def __init__(self, confirmator: Confirmator | None = None):
        """Initialize tool registry.

        Args:
            confirmator: Confirmation handler injected into confirmable tools
        """
        self._tools: dict[str, Tool] = {}
        self._confirmator = confirmator

    def register(self, tool: Tool) -> None:
        """Register a tool, replacing any tool with the same name."""
        if self.has_tool(tool.name):
            logger.warning(f"Replacing registered tool: {tool.name}")
        if isinstance(tool, ConfirmableTool) and self._confirmator is not None:
            tool.set_confirmator(self._confirmator)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def get_tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def set_confirmator(self, confirmator: Confirmator | None) -> None:
        """Inject the confirmation handler into every confirmable tool."""
        self._confirmator = confirmator
        for tool in self._tools.values():
            if isinstance(tool, ConfirmableTool):
                tool.set_confirmator(confirmator)

    def describe_all(self) -> list[ToolSchema]:
        """Get provider-neutral function schemas for the completion API."""
        return [
            ToolSchema(name=tool.name, description=tool.description, parameters=tool.parameter_schema())
            for tool in self._tools.values()
        ]

    def execute_async(self, call: ToolCall, result: asyncio.Future[ToolResult]) -> asyncio.Task[None]:
        """Run a tool call on its own task.

        Exactly one ToolResult is set on ``result``: unknown tools, invalid
        arguments and exceptions raised by the tool all become ``ToolResult.error``.
        """
        return asyncio.create_task(self._execute(call, result), name=f"tool-{call.name}-{call.id}")

    async def execute(self, call: ToolCall) -> ToolResult:
        """Run a tool call and return its result."""
        tool = self.get(call.name)
        if tool is None:
            logger.error(f"Unknown tool requested: {call.name}")
            return ToolResult(call_id=call.id, name=call.name, error=str(ToolNotFoundError(call.name)))

        try:
            args = tool.parse_arguments(call.args)
        except ToolArgumentError as e:
            logger.warning(f"Rejected arguments for {call.name}: {e}")
            return ToolResult(call_id=call.id, name=call.name, error=str(e))

        logger.debug(f"Executing tool: {call.name} with input: {call.args}")
        try:
            output = await tool.execute(args)
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {e}")
            return ToolResult(call_id=call.id, name=call.name, error=str(e) or type(e).__name__)

        logger.debug(f"Tool {call.name} succeeded: {str(output)[:100]}...")
        return ToolResult(call_id=call.id, name=call.name, result=output)

    async def _execute(self, call: ToolCall, result: asyncio.Future[ToolResult]) -> None:
        try:
            tool_result = await self.execute(call)
        except asyncio.CancelledError:
            if not result.done():
                result.set_result(ToolResult(call_id=call.id, name=call.name, error="tool execution cancelled"))
            raise

        if not result.done():
            result.set_result(tool_result)
