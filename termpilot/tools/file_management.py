"""File and directory management tools: copy, move, rename, create and delete."""

import asyncio
import shutil
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from termpilot.tools.base import ConfirmableTool, resolve_workspace_path
from termpilot.tools.files import list_directory
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


class FileManageInput(BaseModel):
    """Input schema for the file management tool."""

    operation: Literal["copy", "move", "rename"] = Field(..., description="Operation to perform")
    source: str = Field(..., description="Source path relative to the current working directory")
    destination: str = Field(..., description="Destination path relative to the current working directory")
    overwrite: bool = Field(False, description="Replace the destination if it already exists")


class FileManageTool(ConfirmableTool):
    """Copy, move or rename files inside the working directory."""

    name = "file_manage"
    description = "Perform file operations: copy, move, or rename files"
    input_model = FileManageInput

    async def execute(self, args: FileManageInput) -> dict[str, Any]:
        source = resolve_workspace_path(args.source)
        destination = resolve_workspace_path(args.destination)

        if not source.exists():
            raise FileNotFoundError(f"source does not exist: {args.source}")
        if args.operation == "copy" and source.is_dir():
            raise IsADirectoryError(f"cannot copy a directory: {args.source}")
        if source.resolve() == destination.resolve():
            raise ValueError("source and destination are the same path")

        destination_exists = destination.exists()
        if destination_exists and not args.overwrite:
            raise FileExistsError(f"destination already exists: {args.destination} (set overwrite to replace it)")
        if destination_exists and destination.is_dir():
            raise IsADirectoryError(f"destination is a directory: {args.destination}")

        message = f"{args.operation.capitalize()} {args.source} to {args.destination}"
        if destination_exists:
            message += " (will overwrite existing file)"
        dangerous = destination_exists or args.operation == "move"
        if not await self.confirm("File management", message, dangerous):
            return {"operation": args.operation, "output": "User aborted file operation", "aborted": True}

        size = source.stat().st_size
        await asyncio.to_thread(_transfer, args.operation, source, destination)
        logger.info(message)

        return {
            "operation": args.operation,
            "source": args.source,
            "destination": args.destination,
            "size": size,
            "success": True,
        }


def _transfer(operation: str, source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    if operation == "copy":
        shutil.copy2(source, destination)
    else:
        shutil.move(source, destination)


class DirManageInput(BaseModel):
    """Input schema for the directory management tool."""

    operation: Literal["create", "delete", "list"] = Field(..., description="Operation to perform")
    path: str = Field(..., description="Directory path relative to the current working directory")
    recursive: bool = Field(
        False, description="For create: also create parent directories. For delete: remove all contents."
    )
    show_hidden: bool = Field(False, description="For list: include hidden entries")
    details: bool = Field(False, description="For list: include size, permissions and modification time")


class DirManageTool(ConfirmableTool):
    """Create, delete or list directories."""

    name = "dir_manage"
    description = "Manage directories: create, delete, or list directory contents"
    input_model = DirManageInput

    async def execute(self, args: DirManageInput) -> dict[str, Any] | str:
        full_path = resolve_workspace_path(args.path)

        if args.operation == "list":
            if not full_path.is_dir():
                raise NotADirectoryError(f"not a directory: {args.path}")
            return await asyncio.to_thread(list_directory, full_path, args.path, args.show_hidden, args.details)

        if args.operation == "create":
            return await self._create(full_path, args)
        return await self._delete(full_path, args)

    async def _create(self, full_path: Path, args: DirManageInput) -> dict[str, Any] | str:
        if full_path.exists():
            if full_path.is_dir():
                return f"Directory already exists: {args.path}"
            raise FileExistsError(f"a file already exists at {args.path}")
        if not args.recursive and not full_path.parent.is_dir():
            raise FileNotFoundError(f"parent directory does not exist: {args.path} (set recursive to create it)")

        message = f"Create directory {args.path}"
        if args.recursive:
            message += " (with parent directories)"
        if not await self.confirm("Create directory", message, False):
            return {"path": args.path, "output": "User aborted directory creation", "aborted": True}

        await asyncio.to_thread(full_path.mkdir, parents=args.recursive)
        logger.info(message)
        return {"operation": "create", "path": args.path, "recursive": args.recursive, "success": True}

    async def _delete(self, full_path: Path, args: DirManageInput) -> dict[str, Any]:
        if full_path.resolve() == Path.cwd().resolve():
            raise ValueError("refusing to delete the working directory")
        if not full_path.exists():
            raise FileNotFoundError(f"directory does not exist: {args.path}")
        if not full_path.is_dir():
            raise NotADirectoryError(f"not a directory: {args.path}")
        if not args.recursive and any(full_path.iterdir()):
            raise OSError(f"directory is not empty: {args.path} (set recursive to delete its contents)")

        message = f"Delete directory {args.path}"
        if args.recursive:
            message += " (recursively, including all contents)"
        if not await self.confirm("Delete directory", message, True):
            return {"path": args.path, "output": "User aborted directory deletion", "aborted": True}

        if args.recursive:
            await asyncio.to_thread(shutil.rmtree, full_path)
        else:
            await asyncio.to_thread(full_path.rmdir)
        logger.info(message)
        return {"operation": "delete", "path": args.path, "recursive": args.recursive, "success": True}
