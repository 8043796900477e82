"""File system tools: read, list and create files inside the working directory."""

import asyncio
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from termpilot.tools.base import ConfirmableTool, Tool, resolve_workspace_path
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_LINES = 100
MAX_LINES_CAP = 1000
MAX_SCAN_LINES = 10_000

TEXT_EXTENSIONS = {
    ".txt", ".md", ".py", ".go", ".js", ".ts", ".java", ".c", ".cpp", ".h", ".hpp",
    ".json", ".xml", ".yaml", ".yml", ".html", ".css", ".sql", ".sh", ".toml", ".ini",
    ".cfg", ".conf", ".log", ".csv", ".tsv", ".env", ".gitignore", ".dockerfile", ".rst",
}  # fmt: skip


def is_text_file(path: Path) -> bool:
    """Guess whether a file can be shown as text."""
    if path.suffix.lower() in TEXT_EXTENSIONS:
        return True

    with path.open("rb") as f:
        head = f.read(512)

    if b"\x00" in head:
        return False
    try:
        head.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def describe_entry(entry: Path, details: bool) -> dict[str, Any]:
    item: dict[str, Any] = {"name": entry.name, "type": "directory" if entry.is_dir() else "file"}
    if details:
        stat = entry.stat()
        item["size"] = stat.st_size
        item["modified"] = datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
        item["mode"] = oct(stat.st_mode & 0o777)
    return item


def list_directory(path: Path, relative: str, show_hidden: bool = False, details: bool = False) -> dict[str, Any]:
    directories = []
    files = []
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        if not show_hidden and entry.name.startswith("."):
            continue
        item = describe_entry(entry, details)
        (directories if item["type"] == "directory" else files).append(item)

    return {
        "path": relative,
        "type": "directory",
        "directories": directories,
        "files": files,
        "total_dirs": len(directories),
        "total_files": len(files),
    }


class ReadFileInput(BaseModel):
    """Input schema for the read file tool."""

    path: str = Field(..., description="Relative path to the file or directory from the current working directory")
    lines_from: int | None = Field(None, ge=1, description="Start reading at this line number (1-based, optional)")
    lines_to: int | None = Field(None, ge=1, description="Stop reading at this line number (1-based, optional)")
    regex: str | None = Field(None, description="Regular expression to search for in the file (optional)")
    regex_match: int = Field(1, ge=1, description="Which match to return when using regex (1-based, default: 1)")
    context_lines: int = Field(3, ge=0, description="Lines of context around a regex match (default: 3)")
    max_lines: int = Field(
        DEFAULT_MAX_LINES, ge=1, description=f"Maximum lines to return (default: {DEFAULT_MAX_LINES}, max: {MAX_LINES_CAP})"
    )


class ReadFileTool(Tool):
    """Read file contents by line range or regex match; directories are listed."""

    name = "read_file"
    description = (
        "Read file or directory contents. Supports reading specific line ranges, "
        "regex matching with context, and directory listing."
    )
    input_model = ReadFileInput

    async def execute(self, args: ReadFileInput) -> dict[str, Any]:
        return await asyncio.to_thread(self._read, args)

    def _read(self, args: ReadFileInput) -> dict[str, Any]:
        full_path = resolve_workspace_path(args.path)
        if not full_path.exists():
            raise FileNotFoundError(f"path does not exist: {args.path}")

        if full_path.is_dir():
            return list_directory(full_path, args.path)

        if not is_text_file(full_path):
            return {
                "path": args.path,
                "type": "binary",
                "size": full_path.stat().st_size,
                "message": "File appears to be binary and cannot be displayed as text",
            }

        max_lines = min(args.max_lines, MAX_LINES_CAP)
        with full_path.open(encoding="utf-8", errors="replace") as f:
            lines = [line.rstrip("\n") for _, line in zip(range(MAX_SCAN_LINES), f, strict=False)]

        if args.regex:
            return self._search(args, lines, max_lines)

        start = (args.lines_from or 1) - 1
        end = args.lines_to if args.lines_to is not None else start + max_lines
        end = min(end, start + max_lines, len(lines))
        selected = lines[start:end]

        return {
            "path": args.path,
            "lines_from": start + 1,
            "lines_to": start + len(selected),
            "total_lines": len(lines),
            "truncated": end < len(lines) and args.lines_to is None,
            "content": "\n".join(selected),
        }

    def _search(self, args: ReadFileInput, lines: list[str], max_lines: int) -> dict[str, Any]:
        try:
            pattern = re.compile(args.regex or "")
        except re.error as e:
            raise ValueError(f"invalid regex pattern: {e}") from e

        matches = [index for index, line in enumerate(lines) if pattern.search(line)]
        if len(matches) < args.regex_match:
            return {"path": args.path, "regex": args.regex, "total_matches": len(matches), "found": False}

        hit = matches[args.regex_match - 1]
        start = max(0, hit - args.context_lines)
        end = min(len(lines), hit + args.context_lines + 1, start + max_lines)

        return {
            "path": args.path,
            "regex": args.regex,
            "found": True,
            "match_line": hit + 1,
            "total_matches": len(matches),
            "lines_from": start + 1,
            "lines_to": end,
            "content": "\n".join(lines[start:end]),
        }


class ListDirInput(BaseModel):
    """Input schema for the list directory tool."""

    path: str = Field(".", description="Directory path relative to the current working directory (default: '.')")
    show_hidden: bool = Field(False, description="Include hidden files and directories")
    details: bool = Field(False, description="Include size, permissions and modification time")


class ListDirTool(Tool):
    name = "list_dir"
    description = "List the files and directories inside a directory"
    input_model = ListDirInput

    async def execute(self, args: ListDirInput) -> dict[str, Any]:
        full_path = resolve_workspace_path(args.path)
        if not full_path.is_dir():
            raise NotADirectoryError(f"not a directory: {args.path}")
        return await asyncio.to_thread(list_directory, full_path, args.path, args.show_hidden, args.details)


class CreateFileInput(BaseModel):
    """Input schema for the create file tool."""

    path: str = Field(..., description="Relative path of the file to create")
    content: str = Field("", description="Full content to write")
    overwrite: bool = Field(False, description="Replace the file if it already exists")


class CreateFileTool(ConfirmableTool):
    """Create (or overwrite) a text file, after operator confirmation."""

    name = "create_file"
    description = "Create a new file with the given content, creating parent directories as needed"
    input_model = CreateFileInput

    async def execute(self, args: CreateFileInput) -> dict[str, Any]:
        full_path = resolve_workspace_path(args.path)
        exists = full_path.exists()
        if exists and full_path.is_dir():
            raise IsADirectoryError(f"path is a directory: {args.path}")
        if exists and not args.overwrite:
            raise FileExistsError(f"file already exists: {args.path} (set overwrite to replace it)")

        operation = "Overwrite file" if exists else "Create file"
        if not await self.confirm(operation, f"Create {args.path} ({len(args.content)} characters)", exists):
            return {"path": args.path, "output": "User aborted file creation", "aborted": True}

        await asyncio.to_thread(_write_text, full_path, args.content)
        logger.info(f"{operation}: {args.path}")

        return {
            "path": args.path,
            "created": not exists,
            "overwritten": exists,
            "bytes_written": len(args.content.encode("utf-8")),
        }


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
