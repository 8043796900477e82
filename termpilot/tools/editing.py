"""In-place editing tools: unified diffs, search and replace, line ranges and inserts.

Every edit is computed and validated before the operator is asked, so a
confirmation prompt always describes a change that can be applied.
"""

import asyncio
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from termpilot.tools.base import ConfirmableTool, resolve_workspace_path
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


@dataclass
class TextLines:
    """A text file split into lines, remembering its trailing newline."""

    lines: list[str]
    trailing_newline: bool = True

    @classmethod
    def read(cls, path: Path) -> "TextLines":
        text = path.read_text(encoding="utf-8")
        if not text:
            return cls([], False)
        trailing = text.endswith("\n")
        return cls(text.removesuffix("\n").split("\n"), trailing)

    def write(self, path: Path) -> None:
        text = "\n".join(self.lines)
        if self.lines and self.trailing_newline:
            text += "\n"
        path.write_text(text, encoding="utf-8")


def split_content(content: str) -> list[str]:
    """Split tool-supplied content into lines; one trailing newline is not an extra line."""
    if not content:
        return []
    return content.removesuffix("\n").split("\n")


def resolve_existing_file(path: str) -> Path:
    full_path = resolve_workspace_path(path)
    if not full_path.exists():
        raise FileNotFoundError(f"file does not exist: {path} (use create_file to create new files)")
    if full_path.is_dir():
        raise IsADirectoryError(f"path is a directory: {path}")
    return full_path


# Unified diffs


@dataclass
class Hunk:
    old_start: int
    old_lines: list[str] = field(default_factory=list)
    new_lines: list[str] = field(default_factory=list)


def parse_unified_diff(diff: str) -> list[Hunk]:
    """Parse the hunks of a unified diff; file headers before the first hunk are skipped.

    Raises:
        ValueError: If the diff has no hunks
    """
    hunks: list[Hunk] = []
    current: Hunk | None = None

    for line in diff.removesuffix("\n").split("\n"):
        header = HUNK_HEADER.match(line)
        if header:
            current = Hunk(old_start=int(header.group(1)))
            hunks.append(current)
            continue
        if current is None or line.startswith("\\"):
            continue

        if line.startswith("+"):
            current.new_lines.append(line[1:])
        elif line.startswith("-"):
            current.old_lines.append(line[1:])
        else:
            # Context; editors often strip the leading space from blank context lines
            text = line[1:] if line.startswith(" ") else line
            current.old_lines.append(text)
            current.new_lines.append(text)

    if not hunks:
        raise ValueError("no valid diff hunks found (expected '@@ -start,count +start,count @@' headers)")
    return hunks


def apply_unified_diff(lines: list[str], diff: str) -> list[str]:
    """Apply a unified diff to a list of lines.

    Each hunk is matched at its stated position (adjusted by the hunks before
    it); if the text there differs, the hunk's old lines are searched for and
    used when they occur exactly once.

    Raises:
        ValueError: If a hunk cannot be located
    """
    result = list(lines)
    offset = 0

    for number, hunk in enumerate(parse_unified_diff(diff), start=1):
        size = len(hunk.old_lines)
        # A pure insertion at "-N,0" goes after line N
        expected = hunk.old_start + offset - (1 if size else 0)
        expected = max(0, min(expected, len(result)))

        if result[expected : expected + size] == hunk.old_lines:
            position = expected
        else:
            matches = [
                index
                for index in range(len(result) - size + 1)
                if result[index : index + size] == hunk.old_lines
            ]
            if len(matches) != 1:
                found = "not found" if not matches else f"found {len(matches)} times"
                raise ValueError(f"hunk {number} does not match the file near line {hunk.old_start} ({found})")
            position = matches[0]
            logger.debug(f"Hunk {number} applied at line {position + 1} instead of {expected + 1}")

        result[position : position + size] = hunk.new_lines
        offset += len(hunk.new_lines) - size

    return result


class EditFileInput(BaseModel):
    """Input schema for the edit file tool."""

    path: str = Field(..., description="Relative path to the file to edit from the current working directory")
    diff: str = Field(
        ...,
        min_length=1,
        description=(
            "Unified diff to apply. Use '@@ -start,count +start,count @@' hunk headers, "
            "'-' for removed lines, '+' for added lines and ' ' for context lines."
        ),
    )


class EditFileTool(ConfirmableTool):
    """Apply a unified diff to an existing file."""

    name = "edit_file"
    description = "Edit an existing file by applying a unified diff (git diff format)"
    input_model = EditFileInput

    async def execute(self, args: EditFileInput) -> dict[str, Any]:
        full_path = resolve_existing_file(args.path)
        original = await asyncio.to_thread(TextLines.read, full_path)
        edited = TextLines(apply_unified_diff(original.lines, args.diff), original.trailing_newline)

        if not await self.confirm("Edit file", f"Apply diff to {args.path}", True):
            return {"path": args.path, "output": "User aborted file edit", "aborted": True}

        await asyncio.to_thread(edited.write, full_path)
        logger.info(f"Applied diff to {args.path}")

        return {
            "path": args.path,
            "original_lines": len(original.lines),
            "modified_lines": len(edited.lines),
            "diff_applied": True,
        }


# Search and replace


class SearchReplaceInput(BaseModel):
    """Input schema for the search and replace tool."""

    path: str = Field(..., description="Relative path to the file to edit from the current working directory")
    search: str = Field(..., min_length=1, description="Text or pattern to search for")
    replace: str = Field(..., description="Replacement text (regex mode supports \\1 group references)")
    regex: bool = Field(False, description="Treat search as a regular expression")
    replace_all: bool = Field(True, description="Replace every occurrence; false replaces only the first")
    case_sensitive: bool = Field(True, description="Match case exactly")


class SearchReplaceTool(ConfirmableTool):
    name = "search_replace"
    description = "Find and replace text in a file. Supports literal text and regular expressions."
    input_model = SearchReplaceInput

    async def execute(self, args: SearchReplaceInput) -> dict[str, Any] | str:
        full_path = resolve_existing_file(args.path)
        flags = 0 if args.case_sensitive else re.IGNORECASE
        try:
            pattern = re.compile(args.search if args.regex else re.escape(args.search), flags)
        except re.error as e:
            raise ValueError(f"invalid regex pattern: {e}") from e

        content = await asyncio.to_thread(full_path.read_text, encoding="utf-8")
        replacement = args.replace if args.regex else (lambda _: args.replace)
        updated, count = pattern.subn(replacement, content, count=0 if args.replace_all else 1)

        if count == 0:
            return f"No matches found for '{args.search}' in {args.path}"

        message = f"Replace {count} occurrence(s) of '{args.search}' in {args.path}"
        if not await self.confirm("Search and replace", message, True):
            return {"path": args.path, "output": "User aborted search and replace", "aborted": True}

        await asyncio.to_thread(full_path.write_text, updated, encoding="utf-8")
        logger.info(f"Replaced {count} occurrence(s) in {args.path}")

        return {"path": args.path, "replacements": count}


# Line-oriented edits


class ReplaceLinesInput(BaseModel):
    """Input schema for the replace lines tool."""

    path: str = Field(..., description="Relative path to the file to edit from the current working directory")
    start_line: int = Field(..., ge=1, description="First line to replace (1-based)")
    end_line: int | None = Field(None, ge=1, description="Last line to replace (1-based, default: start_line)")
    content: str = Field(..., description="New content for the range; empty deletes the lines")

    @model_validator(mode="after")
    def check_range(self) -> "ReplaceLinesInput":
        if self.end_line is not None and self.end_line < self.start_line:
            raise ValueError(f"end_line ({self.end_line}) must be >= start_line ({self.start_line})")
        return self


class ReplaceLinesTool(ConfirmableTool):
    name = "replace_lines"
    description = "Replace a range of lines in an existing file with new content"
    input_model = ReplaceLinesInput

    async def execute(self, args: ReplaceLinesInput) -> dict[str, Any]:
        full_path = resolve_existing_file(args.path)
        text = await asyncio.to_thread(TextLines.read, full_path)

        start = args.start_line
        end = args.end_line or start
        if end > len(text.lines):
            raise ValueError(f"line range {start}-{end} exceeds file length ({len(text.lines)} lines)")

        new_lines = split_content(args.content)
        message = f"Replace {end - start + 1} line(s) in {args.path} (lines {start}-{end})"
        if not await self.confirm("Replace lines", message, True):
            return {"path": args.path, "output": "User aborted line replacement", "aborted": True}

        text.lines[start - 1 : end] = new_lines
        await asyncio.to_thread(text.write, full_path)
        logger.info(message)

        return {
            "path": args.path,
            "lines_from": start,
            "lines_to": end,
            "lines_replaced": end - start + 1,
            "new_lines": len(new_lines),
        }


class InsertContentInput(BaseModel):
    """Input schema for the insert content tool."""

    path: str = Field(..., description="Relative path to the file to edit from the current working directory")
    content: str = Field(..., min_length=1, description="Content to insert")
    position: Literal["beginning", "end", "after_line"] = Field(
        ..., description="Where to insert: 'beginning', 'end', or 'after_line'"
    )
    line_number: int | None = Field(
        None, ge=1, description="Line to insert after (1-based, required when position is 'after_line')"
    )

    @model_validator(mode="after")
    def check_line_number(self) -> "InsertContentInput":
        if self.position == "after_line" and self.line_number is None:
            raise ValueError("line_number is required when position is 'after_line'")
        return self


class InsertContentTool(ConfirmableTool):
    name = "insert_content"
    description = "Insert content at the beginning or end of a file, or after a specific line"
    input_model = InsertContentInput

    async def execute(self, args: InsertContentInput) -> dict[str, Any]:
        full_path = resolve_existing_file(args.path)
        text = await asyncio.to_thread(TextLines.read, full_path)

        if args.position == "beginning":
            index, where = 0, "at beginning"
        elif args.position == "end":
            index, where = len(text.lines), "at end"
        else:
            line_number = args.line_number or 0
            if line_number > len(text.lines):
                raise ValueError(f"line_number ({line_number}) exceeds file length ({len(text.lines)} lines)")
            index, where = line_number, f"after line {line_number}"

        new_lines = split_content(args.content)
        if not await self.confirm("Insert content", f"Insert {len(new_lines)} line(s) {where} of {args.path}", True):
            return {"path": args.path, "output": "User aborted insert", "aborted": True}

        if not text.lines:
            text.trailing_newline = args.content.endswith("\n")
        text.lines[index:index] = new_lines
        await asyncio.to_thread(text.write, full_path)
        logger.info(f"Inserted {len(new_lines)} line(s) {where} of {args.path}")

        return {"path": args.path, "position": args.position, "inserted_lines": len(new_lines)}
