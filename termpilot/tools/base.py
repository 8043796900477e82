"""Base types and definitions for tools."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Protocol

from pydantic import BaseModel

from termpilot.errors import ToolArgumentError


class Confirmator(Protocol):
    """Something that can ask the operator to approve an operation."""

    async def request_confirmation(self, operation: str, command: str, dangerous: bool) -> bool: ...


class Tool(ABC):
    """A capability the assistant can invoke.

    Subclasses declare ``name``, ``description`` and a pydantic ``input_model``;
    the JSON schema sent to the completion API and the list of required
    parameters are derived from that model.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    input_model: ClassVar[type[BaseModel]]

    def parameter_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        schema["required"] = self.required_parameters()
        return schema

    def required_parameters(self) -> list[str]:
        return [name for name, field in self.input_model.model_fields.items() if field.is_required()]

    def parse_arguments(self, raw_args: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input.

        Raises:
            ToolArgumentError: If the arguments do not match the input model
        """
        try:
            return self.input_model.model_validate(raw_args)
        except ValueError as e:
            raise ToolArgumentError(f"invalid arguments for {self.name}: {e}") from e

    @abstractmethod
    async def execute(self, args: Any) -> Any:
        """Run the tool with validated arguments and return a JSON-friendly result.

        Raising an exception reports a tool execution error; the conversation
        continues with the error shown to the model.
        """


class ConfirmableTool(Tool):
    """A tool that asks the operator before doing something risky."""

    def __init__(self) -> None:
        self.confirmator: Confirmator | None = None

    def set_confirmator(self, confirmator: Confirmator | None) -> None:
        self.confirmator = confirmator

    async def confirm(self, operation: str, command: str, dangerous: bool) -> bool:
        """Return True when the operation may proceed.

        Without a confirmator nothing supervises the tool, so it proceeds.
        """
        if self.confirmator is None:
            return True
        return await self.confirmator.request_confirmation(operation, command, dangerous)


def resolve_workspace_path(path: str, root: Path | None = None) -> Path:
    """Resolve a relative path inside the working directory.

    Raises:
        ValueError: If the path is absolute or escapes through ``..``
    """
    candidate = Path(path)
    if candidate.is_absolute():
        raise ValueError("path must be relative, not absolute")
    if ".." in candidate.parts:
        raise ValueError("path cannot contain parent directory references (..)")
    return (root or Path.cwd()) / candidate
