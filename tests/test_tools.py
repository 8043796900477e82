"""Tests for the built-in tools."""

import json
import time
from unittest.mock import AsyncMock

import httpx
import pytest

from termpilot.errors import ToolArgumentError
from termpilot.tools.base import resolve_workspace_path
from termpilot.tools.current_time import CurrentTimeInput, CurrentTimeTool
from termpilot.tools.editing import (
    EditFileInput,
    EditFileTool,
    InsertContentInput,
    InsertContentTool,
    ReplaceLinesInput,
    ReplaceLinesTool,
    SearchReplaceInput,
    SearchReplaceTool,
    apply_unified_diff,
)
from termpilot.tools.file_management import DirManageInput, DirManageTool, FileManageInput, FileManageTool
from termpilot.tools.files import CreateFileInput, CreateFileTool, ListDirInput, ListDirTool, ReadFileInput, ReadFileTool
from termpilot.tools.http_request import HttpRequestInput, HttpRequestTool
from termpilot.tools.shell import ShellInput, ShellTool, is_dangerous_command


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run each file tool test inside a scratch working directory."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("print('hi')\n")
    (tmp_path / "README.md").write_text("\n".join(f"line {i}" for i in range(1, 21)) + "\n")
    (tmp_path / ".hidden").write_text("secret")
    (tmp_path / "blob.bin").write_bytes(b"\x00\x01\x02binary")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def approving(answer: bool = True) -> AsyncMock:
    confirmator = AsyncMock()
    confirmator.request_confirmation.return_value = answer
    return confirmator


class TestWorkspacePaths:
    """Tests for path resolution."""

    def test_relative_path_resolved(self, tmp_path):
        """Test relative paths resolve under the root."""
        assert resolve_workspace_path("src/main.py", tmp_path) == tmp_path / "src" / "main.py"

    def test_absolute_path_rejected(self, tmp_path):
        """Test absolute paths are refused."""
        with pytest.raises(ValueError, match="must be relative"):
            resolve_workspace_path("/etc/passwd", tmp_path)

    def test_parent_reference_rejected(self, tmp_path):
        """Test paths cannot escape the working directory."""
        with pytest.raises(ValueError, match="parent directory"):
            resolve_workspace_path("src/../../etc", tmp_path)


class TestDangerousCommands:
    """Tests for shell command classification."""

    @pytest.mark.parametrize("command", ["ls", "ls -la", "git status", "cat README.md", "  pwd  "])
    def test_read_only_commands(self, command):
        """Test single read-only invocations are not flagged."""
        assert not is_dangerous_command(command)

    @pytest.mark.parametrize(
        "command",
        ["rm -rf build", "ls && rm x", "cat a | sh", "echo hi > file", "lsof", "git push", "echo $(whoami)"],
    )
    def test_dangerous_commands(self, command):
        """Test mutating or chained commands are flagged."""
        assert is_dangerous_command(command)


class TestShellTool:
    """Tests for the shell tool."""

    async def test_runs_command_after_confirmation(self, workspace):
        """Test an approved command runs and reports its output."""
        tool = ShellTool()
        tool.set_confirmator(approving())

        result = await tool.execute(ShellInput(command="echo hello"))

        assert result["success"] is True
        assert result["exit_code"] == 0
        assert result["output"].strip() == "hello"
        tool.confirmator.request_confirmation.assert_awaited_once_with("Execute command", "echo hello", False)

    async def test_denied_command_not_run(self, workspace):
        """Test a denied command never touches the file system."""
        tool = ShellTool()
        tool.set_confirmator(approving(False))

        result = await tool.execute(ShellInput(command="touch created.txt"))

        assert result == {"output": "User aborted command execution", "aborted": True}
        assert not (workspace / "created.txt").exists()
        tool.confirmator.request_confirmation.assert_awaited_once_with("Execute command", "touch created.txt", True)

    async def test_nonzero_exit_reported(self, workspace):
        """Test a failing command reports its exit status."""
        tool = ShellTool()

        result = await tool.execute(ShellInput(command="exit 3"))

        assert result["success"] is False
        assert result["exit_code"] == 3
        assert result["error"] == "exit status 3"

    async def test_timeout_kills_command(self, workspace):
        """Test a command exceeding its timeout is killed."""
        tool = ShellTool()
        started = time.monotonic()

        result = await tool.execute(ShellInput(command="sleep 10", timeout=0.5))

        assert result["timed_out"] is True
        assert result["success"] is False
        assert time.monotonic() - started < 5

    async def test_working_dir(self, workspace):
        """Test commands run in the requested subdirectory."""
        tool = ShellTool()

        result = await tool.execute(ShellInput(command="ls", working_dir="src"))

        assert "main.py" in result["output"]

    def test_timeout_is_capped(self):
        """Test timeouts above the maximum are clamped."""
        assert ShellInput(command="ls", timeout=9999).timeout == 300

    def test_empty_command_rejected(self):
        """Test the command is required."""
        with pytest.raises(ToolArgumentError):
            ShellTool().parse_arguments({"command": ""})


class TestCurrentTimeTool:
    """Tests for the current time tool."""

    async def test_iso_default(self):
        """Test the default format is ISO 8601."""
        result = await CurrentTimeTool().execute(CurrentTimeInput())

        assert "T" in result

    async def test_unix(self):
        """Test the unix format returns seconds since the epoch."""
        result = await CurrentTimeTool().execute(CurrentTimeInput(format="unix"))

        assert isinstance(result, int)
        assert abs(result - time.time()) < 5

    async def test_strftime_pattern(self):
        """Test custom patterns are passed to strftime."""
        result = await CurrentTimeTool().execute(CurrentTimeInput(format="%Y"))

        assert len(result) == 4 and result.isdigit()


class TestReadFileTool:
    """Tests for the read file tool."""

    async def test_read_whole_file(self, workspace):
        """Test reading a small text file returns every line."""
        result = await ReadFileTool().execute(ReadFileInput(path="README.md"))

        assert result["total_lines"] == 20
        assert result["content"].splitlines()[0] == "line 1"
        assert result["truncated"] is False

    async def test_line_range(self, workspace):
        """Test reading an explicit line range."""
        result = await ReadFileTool().execute(ReadFileInput(path="README.md", lines_from=5, lines_to=7))

        assert result["content"] == "line 5\nline 6\nline 7"
        assert result["lines_from"] == 5
        assert result["lines_to"] == 7

    async def test_max_lines_truncates(self, workspace):
        """Test max_lines limits the returned content."""
        result = await ReadFileTool().execute(ReadFileInput(path="README.md", max_lines=3))

        assert result["content"].count("\n") == 2
        assert result["truncated"] is True

    async def test_regex_match_with_context(self, workspace):
        """Test a regex search returns the match with surrounding lines."""
        result = await ReadFileTool().execute(ReadFileInput(path="README.md", regex=r"line 1\d", regex_match=2, context_lines=1))

        assert result["found"] is True
        assert result["match_line"] == 11
        assert result["content"] == "line 10\nline 11\nline 12"

    async def test_regex_without_match(self, workspace):
        """Test a regex that matches nothing reports it."""
        result = await ReadFileTool().execute(ReadFileInput(path="README.md", regex="nomatch"))

        assert result["found"] is False
        assert result["total_matches"] == 0

    async def test_binary_file(self, workspace):
        """Test binary files are described, not dumped."""
        result = await ReadFileTool().execute(ReadFileInput(path="blob.bin"))

        assert result["type"] == "binary"

    async def test_directory_listed(self, workspace):
        """Test reading a directory lists it."""
        result = await ReadFileTool().execute(ReadFileInput(path="src"))

        assert result["type"] == "directory"
        assert [f["name"] for f in result["files"]] == ["main.py"]

    async def test_missing_file(self, workspace):
        """Test a missing path raises."""
        with pytest.raises(FileNotFoundError):
            await ReadFileTool().execute(ReadFileInput(path="nope.txt"))


class TestListDirTool:
    """Tests for the list directory tool."""

    async def test_lists_current_directory(self, workspace):
        """Test hidden entries are skipped by default."""
        result = await ListDirTool().execute(ListDirInput())

        assert [d["name"] for d in result["directories"]] == ["src"]
        assert [f["name"] for f in result["files"]] == ["README.md", "blob.bin"]
        assert result["total_files"] == 2

    async def test_show_hidden_and_details(self, workspace):
        """Test hidden entries and details on request."""
        result = await ListDirTool().execute(ListDirInput(show_hidden=True, details=True))

        names = [f["name"] for f in result["files"]]
        assert ".hidden" in names
        assert all("size" in f for f in result["files"])

    async def test_not_a_directory(self, workspace):
        """Test listing a file raises."""
        with pytest.raises(NotADirectoryError):
            await ListDirTool().execute(ListDirInput(path="README.md"))


class TestCreateFileTool:
    """Tests for the create file tool."""

    async def test_creates_file_with_parents(self, workspace):
        """Test a confirmed creation writes the file."""
        tool = CreateFileTool()
        tool.set_confirmator(approving())

        result = await tool.execute(CreateFileInput(path="docs/notes.md", content="# Notes\n"))

        assert result["created"] is True
        assert (workspace / "docs" / "notes.md").read_text() == "# Notes\n"
        tool.confirmator.request_confirmation.assert_awaited_once()

    async def test_denied_creation(self, workspace):
        """Test a denied creation writes nothing."""
        tool = CreateFileTool()
        tool.set_confirmator(approving(False))

        result = await tool.execute(CreateFileInput(path="new.txt", content="x"))

        assert result["aborted"] is True
        assert not (workspace / "new.txt").exists()

    async def test_existing_file_needs_overwrite(self, workspace):
        """Test an existing file is not replaced without overwrite."""
        with pytest.raises(FileExistsError):
            await CreateFileTool().execute(CreateFileInput(path="README.md", content="x"))

    async def test_overwrite_is_dangerous(self, workspace):
        """Test overwriting asks with the dangerous flag set."""
        tool = CreateFileTool()
        tool.set_confirmator(approving())

        result = await tool.execute(CreateFileInput(path="README.md", content="new", overwrite=True))

        assert result["overwritten"] is True
        assert (workspace / "README.md").read_text() == "new"
        _, _, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert dangerous is True


class TestHttpRequestTool:
    """Tests for the HTTP request tool."""

    @pytest.fixture
    def transport(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"received": json.loads(request.content)})
            return httpx.Response(200, text="pong")

        return httpx.MockTransport(handler)

    async def test_get_does_not_ask(self, transport):
        """Test safe methods run without confirmation."""
        tool = HttpRequestTool(transport=transport)
        tool.set_confirmator(approving())

        result = await tool.execute(HttpRequestInput(url="https://example.test/ping"))

        assert result["status_code"] == 200
        assert result["body"] == "pong"
        tool.confirmator.request_confirmation.assert_not_awaited()

    async def test_post_with_json_asks(self, transport):
        """Test state-changing methods are confirmed as dangerous."""
        tool = HttpRequestTool(transport=transport)
        tool.set_confirmator(approving())

        args = tool.parse_arguments({"url": "https://example.test/items", "method": "POST", "json": {"a": 1}})
        result = await tool.execute(args)

        assert result["status_code"] == 201
        assert json.loads(result["body"]) == {"received": {"a": 1}}
        tool.confirmator.request_confirmation.assert_awaited_once_with(
            "HTTP POST request", "POST https://example.test/items", True
        )

    async def test_denied_post(self, transport):
        """Test a denied request is not sent."""
        tool = HttpRequestTool(transport=transport)
        tool.set_confirmator(approving(False))

        result = await tool.execute(HttpRequestInput(url="https://example.test/items", method="DELETE"))

        assert result["aborted"] is True

    def test_invalid_url_rejected(self):
        """Test only http(s) URLs are accepted."""
        with pytest.raises(ToolArgumentError):
            HttpRequestTool().parse_arguments({"url": "ftp://example.test"})


class TestApplyUnifiedDiff:
    """Tests for hunk parsing and application."""

    def test_single_hunk(self):
        """Test context, removed and added lines are applied in place."""
        diff = "@@ -1,3 +1,3 @@\n a\n-b\n+B\n c\n"

        assert apply_unified_diff(["a", "b", "c"], diff) == ["a", "B", "c"]

    def test_file_headers_and_multiple_hunks(self):
        """Test later hunks account for lines added by earlier ones."""
        lines = [f"line {i}" for i in range(1, 11)]
        diff = (
            "--- a/notes.txt\n+++ b/notes.txt\n"
            "@@ -2,1 +2,2 @@\n-line 2\n+line two\n+line 2.5\n"
            "@@ -8,1 +9,1 @@\n-line 8\n+line eight\n"
        )

        result = apply_unified_diff(lines, diff)

        assert len(result) == 11
        assert result[1:3] == ["line two", "line 2.5"]
        assert result[8] == "line eight"

    def test_stale_line_numbers_located_by_content(self):
        """Test a hunk whose line number is off still applies when its text is unique."""
        assert apply_unified_diff(["x", "y", "z"], "@@ -10,1 +10,1 @@\n-y\n+Y\n") == ["x", "Y", "z"]

    def test_pure_insertion(self):
        """Test a zero-length hunk inserts after the given line."""
        assert apply_unified_diff(["a", "b"], "@@ -1,0 +2,1 @@\n+new\n") == ["a", "new", "b"]

    def test_mismatch_rejected(self):
        """Test a hunk that matches nowhere is an error."""
        with pytest.raises(ValueError, match="hunk 1 does not match"):
            apply_unified_diff(["a"], "@@ -1,1 +1,1 @@\n-zzz\n+q\n")

    def test_ambiguous_hunk_rejected(self):
        """Test a misplaced hunk that matches several places is an error."""
        with pytest.raises(ValueError, match="found 2 times"):
            apply_unified_diff(["dup", "x", "dup"], "@@ -5,1 +5,1 @@\n-dup\n+d\n")

    def test_no_hunks(self):
        """Test text without hunk headers is rejected."""
        with pytest.raises(ValueError, match="no valid diff hunks"):
            apply_unified_diff(["a"], "-a\n+b\n")


class TestEditFileTool:
    """Tests for the edit file tool."""

    async def test_applies_diff_after_confirmation(self, workspace):
        """Test an approved diff is written and the trailing newline kept."""
        tool = EditFileTool()
        tool.set_confirmator(approving())

        result = await tool.execute(EditFileInput(path="README.md", diff="@@ -2,1 +2,1 @@\n-line 2\n+second line\n"))

        content = (workspace / "README.md").read_text()
        assert content.split("\n")[1] == "second line"
        assert content.endswith("line 20\n")
        assert result["diff_applied"] is True
        _, _, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert dangerous is True

    async def test_denied_edit_leaves_file(self, workspace):
        """Test a denied edit changes nothing."""
        tool = EditFileTool()
        tool.set_confirmator(approving(False))
        before = (workspace / "README.md").read_text()

        result = await tool.execute(EditFileInput(path="README.md", diff="@@ -1,1 +1,1 @@\n-line 1\n+first\n"))

        assert result["aborted"] is True
        assert (workspace / "README.md").read_text() == before

    async def test_bad_diff_fails_before_asking(self, workspace):
        """Test a diff that cannot apply never reaches the operator."""
        tool = EditFileTool()
        tool.set_confirmator(approving())

        with pytest.raises(ValueError):
            await tool.execute(EditFileInput(path="README.md", diff="@@ -1,1 +1,1 @@\n-nope\n+x\n"))
        tool.confirmator.request_confirmation.assert_not_awaited()

    async def test_missing_file(self, workspace):
        """Test editing a file that does not exist points to create_file."""
        with pytest.raises(FileNotFoundError, match="create_file"):
            await EditFileTool().execute(EditFileInput(path="ghost.py", diff="@@ -1 +1 @@\n-a\n+b\n"))


class TestSearchReplaceTool:
    """Tests for the search and replace tool."""

    @pytest.fixture
    def notes(self, workspace):
        path = workspace / "notes.txt"
        path.write_text("foo bar foo\nFOO\n")
        return path

    async def test_literal_replace_all(self, notes):
        """Test every case-sensitive occurrence is replaced."""
        tool = SearchReplaceTool()
        tool.set_confirmator(approving())

        result = await tool.execute(SearchReplaceInput(path="notes.txt", search="foo", replace="baz"))

        assert result["replacements"] == 2
        assert notes.read_text() == "baz bar baz\nFOO\n"

    async def test_first_match_case_insensitive(self, notes):
        """Test replace_all false stops after the first case-insensitive match."""
        tool = SearchReplaceTool()
        tool.set_confirmator(approving())

        await tool.execute(
            SearchReplaceInput(path="notes.txt", search="FOO", replace="qux", case_sensitive=False, replace_all=False)
        )

        assert notes.read_text() == "qux bar foo\nFOO\n"

    async def test_regex_groups(self, workspace):
        """Test regex mode supports group references."""
        (workspace / "vars.txt").write_text("x = 1\ny = 2\n")
        tool = SearchReplaceTool()
        tool.set_confirmator(approving())

        await tool.execute(SearchReplaceInput(path="vars.txt", search=r"(\w) = (\d)", replace=r"\1 := \2", regex=True))

        assert (workspace / "vars.txt").read_text() == "x := 1\ny := 2\n"

    async def test_literal_mode_escapes_everything(self, workspace):
        """Test literal search and replacement text are not interpreted as patterns."""
        (workspace / "odd.txt").write_text("a.b axb")
        tool = SearchReplaceTool()
        tool.set_confirmator(approving())

        await tool.execute(SearchReplaceInput(path="odd.txt", search="a.b", replace=r"\1"))

        assert (workspace / "odd.txt").read_text() == r"\1 axb"

    async def test_no_match_does_not_ask(self, notes):
        """Test a search without matches reports it and asks nothing."""
        tool = SearchReplaceTool()
        tool.set_confirmator(approving())

        result = await tool.execute(SearchReplaceInput(path="notes.txt", search="absent", replace="x"))

        assert result == "No matches found for 'absent' in notes.txt"
        tool.confirmator.request_confirmation.assert_not_awaited()

    async def test_invalid_regex(self, notes):
        """Test a broken pattern is an error."""
        with pytest.raises(ValueError, match="invalid regex"):
            await SearchReplaceTool().execute(SearchReplaceInput(path="notes.txt", search="(", replace="", regex=True))


class TestReplaceLinesTool:
    """Tests for the replace lines tool."""

    async def test_replace_range(self, workspace):
        """Test a range is replaced by a different number of lines."""
        tool = ReplaceLinesTool()
        tool.set_confirmator(approving())

        result = await tool.execute(
            ReplaceLinesInput(path="README.md", start_line=2, end_line=3, content="two\nthree\nthree and a half")
        )

        lines = (workspace / "README.md").read_text().split("\n")
        assert lines[:5] == ["line 1", "two", "three", "three and a half", "line 4"]
        assert result["lines_replaced"] == 2
        assert result["new_lines"] == 3

    async def test_empty_content_deletes(self, workspace):
        """Test empty content removes the range."""
        tool = ReplaceLinesTool()
        tool.set_confirmator(approving())

        await tool.execute(ReplaceLinesInput(path="README.md", start_line=1, end_line=2, content=""))

        content = (workspace / "README.md").read_text()
        assert content.startswith("line 3\n")
        assert content.count("\n") == 18

    def test_end_before_start_rejected(self):
        """Test an inverted range fails argument validation."""
        with pytest.raises(ToolArgumentError, match="must be >= start_line"):
            ReplaceLinesTool().parse_arguments({"path": "a", "start_line": 5, "end_line": 2, "content": ""})

    async def test_range_beyond_file(self, workspace):
        """Test a range past the end of the file is an error."""
        with pytest.raises(ValueError, match="exceeds file length"):
            await ReplaceLinesTool().execute(ReplaceLinesInput(path="README.md", start_line=21, content="x"))

    async def test_denied_replacement(self, workspace):
        """Test a denied replacement changes nothing."""
        tool = ReplaceLinesTool()
        tool.set_confirmator(approving(False))
        before = (workspace / "README.md").read_text()

        result = await tool.execute(ReplaceLinesInput(path="README.md", start_line=1, content="x"))

        assert result["aborted"] is True
        assert (workspace / "README.md").read_text() == before


class TestInsertContentTool:
    """Tests for the insert content tool."""

    @pytest.fixture
    def tool(self):
        tool = InsertContentTool()
        tool.set_confirmator(approving())
        return tool

    async def test_insert_at_beginning(self, workspace, tool):
        """Test content goes before the first line."""
        await tool.execute(InsertContentInput(path="src/main.py", content="#!/usr/bin/env python\n", position="beginning"))

        assert (workspace / "src" / "main.py").read_text() == "#!/usr/bin/env python\nprint('hi')\n"

    async def test_insert_at_end(self, workspace, tool):
        """Test content goes after the last line and the newline is kept."""
        await tool.execute(InsertContentInput(path="src/main.py", content="print('bye')", position="end"))

        assert (workspace / "src" / "main.py").read_text() == "print('hi')\nprint('bye')\n"

    async def test_insert_after_line(self, workspace, tool):
        """Test content goes after the given line."""
        result = await tool.execute(
            InsertContentInput(path="README.md", content="inserted", position="after_line", line_number=1)
        )

        assert (workspace / "README.md").read_text().split("\n")[:3] == ["line 1", "inserted", "line 2"]
        assert result["inserted_lines"] == 1

    async def test_insert_into_empty_file(self, workspace, tool):
        """Test an empty file takes the inserted content as is."""
        (workspace / "empty.txt").write_text("")

        await tool.execute(InsertContentInput(path="empty.txt", content="hello\n", position="end"))

        assert (workspace / "empty.txt").read_text() == "hello\n"

    def test_after_line_requires_line_number(self):
        """Test after_line without a line number fails argument validation."""
        with pytest.raises(ToolArgumentError, match="line_number is required"):
            InsertContentTool().parse_arguments({"path": "a", "content": "x", "position": "after_line"})

    async def test_line_beyond_file(self, workspace, tool):
        """Test inserting after a line that does not exist is an error."""
        with pytest.raises(ValueError, match="exceeds file length"):
            await tool.execute(InsertContentInput(path="src/main.py", content="x", position="after_line", line_number=5))


class TestFileManageTool:
    """Tests for the file management tool."""

    async def test_copy(self, workspace):
        """Test a copy keeps the source and creates destination directories."""
        tool = FileManageTool()
        tool.set_confirmator(approving())

        result = await tool.execute(FileManageInput(operation="copy", source="README.md", destination="backup/README.md"))

        assert (workspace / "backup" / "README.md").read_text() == (workspace / "README.md").read_text()
        assert result["success"] is True
        _, _, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert dangerous is False

    async def test_move_is_dangerous(self, workspace):
        """Test a move removes the source and is flagged dangerous."""
        tool = FileManageTool()
        tool.set_confirmator(approving())

        await tool.execute(FileManageInput(operation="move", source="src/main.py", destination="app.py"))

        assert not (workspace / "src" / "main.py").exists()
        assert (workspace / "app.py").read_text() == "print('hi')\n"
        _, _, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert dangerous is True

    async def test_existing_destination_needs_overwrite(self, workspace):
        """Test an existing destination is not replaced without overwrite."""
        with pytest.raises(FileExistsError, match="set overwrite"):
            await FileManageTool().execute(FileManageInput(operation="rename", source="README.md", destination=".hidden"))

    async def test_overwrite_rename(self, workspace):
        """Test overwriting asks with the dangerous flag set."""
        tool = FileManageTool()
        tool.set_confirmator(approving())
        readme = (workspace / "README.md").read_text()

        await tool.execute(FileManageInput(operation="rename", source="README.md", destination=".hidden", overwrite=True))

        assert (workspace / ".hidden").read_text() == readme
        _, message, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert "will overwrite" in message
        assert dangerous is True

    async def test_copy_directory_rejected(self, workspace):
        """Test directories cannot be copied."""
        with pytest.raises(IsADirectoryError):
            await FileManageTool().execute(FileManageInput(operation="copy", source="src", destination="src2"))

    async def test_missing_source(self, workspace):
        """Test a missing source is an error."""
        with pytest.raises(FileNotFoundError):
            await FileManageTool().execute(FileManageInput(operation="move", source="ghost", destination="x"))

    async def test_denied_operation(self, workspace):
        """Test a denied move changes nothing."""
        tool = FileManageTool()
        tool.set_confirmator(approving(False))

        result = await tool.execute(FileManageInput(operation="move", source="README.md", destination="OLD.md"))

        assert result["aborted"] is True
        assert (workspace / "README.md").exists()
        assert not (workspace / "OLD.md").exists()


class TestDirManageTool:
    """Tests for the directory management tool."""

    async def test_create_with_parents(self, workspace):
        """Test recursive creation is confirmed as non-dangerous."""
        tool = DirManageTool()
        tool.set_confirmator(approving())

        result = await tool.execute(DirManageInput(operation="create", path="a/b/c", recursive=True))

        assert (workspace / "a" / "b" / "c").is_dir()
        assert result["success"] is True
        _, _, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert dangerous is False

    async def test_create_without_parent(self, workspace):
        """Test a missing parent requires recursive."""
        with pytest.raises(FileNotFoundError, match="set recursive"):
            await DirManageTool().execute(DirManageInput(operation="create", path="x/y"))

    async def test_create_existing(self, workspace):
        """Test an existing directory is reported, not recreated."""
        result = await DirManageTool().execute(DirManageInput(operation="create", path="src"))

        assert result == "Directory already exists: src"

    async def test_delete_non_empty_needs_recursive(self, workspace):
        """Test a populated directory is only removed recursively, after a dangerous confirmation."""
        tool = DirManageTool()
        tool.set_confirmator(approving())

        with pytest.raises(OSError, match="not empty"):
            await tool.execute(DirManageInput(operation="delete", path="src"))

        await tool.execute(DirManageInput(operation="delete", path="src", recursive=True))

        assert not (workspace / "src").exists()
        _, _, dangerous = tool.confirmator.request_confirmation.await_args.args
        assert dangerous is True

    async def test_delete_empty(self, workspace):
        """Test an empty directory is removed without recursive."""
        (workspace / "empty").mkdir()

        await DirManageTool().execute(DirManageInput(operation="delete", path="empty"))

        assert not (workspace / "empty").exists()

    async def test_working_directory_protected(self, workspace):
        """Test the working directory itself cannot be deleted."""
        with pytest.raises(ValueError, match="working directory"):
            await DirManageTool().execute(DirManageInput(operation="delete", path=".", recursive=True))

    async def test_list(self, workspace):
        """Test list reuses the directory listing."""
        result = await DirManageTool().execute(DirManageInput(operation="list", path="."))

        assert "README.md" in [entry["name"] for entry in result["files"]]
        assert [entry["name"] for entry in result["directories"]] == ["src"]
