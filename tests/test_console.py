"""Tests for the terminal front end and the CLI."""

import io
import json

import pytest
from rich.console import Console
from typer.testing import CliRunner

from termpilot.cli import app
from termpilot.config import load_config
from termpilot.models.events import ConfirmationRequest, ConfirmationResponse, StateUpdate
from termpilot.models.messages import DisplayKind, DisplayMessage
from termpilot.services.event_bus import EventBus
from termpilot.ui.console import ConsoleUI


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def console(output):
    return Console(file=output, force_terminal=False, width=100)


class TestConsoleUI:
    """Tests for rendering and confirmation prompts."""

    async def test_render_update(self, console, output):
        """Test each message kind is rendered and the idle flag follows processing."""
        ui = ConsoleUI(EventBus(), console=console)
        ui.render_update(
            StateUpdate(
                new_messages=[
                    DisplayMessage(kind=DisplayKind.PROGRAM, content="-- TERMPILOT --"),
                    DisplayMessage(kind=DisplayKind.USER, content="list files"),
                    DisplayMessage(
                        kind=DisplayKind.TOOL_CALL,
                        content='{"path": "."}',
                        tool_name="list_dir",
                        tool_args='{"path": "."}',
                    ),
                    DisplayMessage(
                        kind=DisplayKind.TOOL_RESULT, content="Error: denied", tool_name="list_dir", is_error=True
                    ),
                    DisplayMessage(kind=DisplayKind.ASSISTANT, content="**Done**"),
                ],
                is_processing=False,
                error="something failed",
            )
        )

        text = output.getvalue()
        assert "-- TERMPILOT --" in text
        assert "list files" not in text
        assert "tool call: list_dir" in text
        assert "Error: denied" in text
        assert "Done" in text
        assert "Error: something failed" in text
        assert ui._idle.is_set()

    async def test_processing_blocks_input(self, console):
        """Test the prompt waits while the core is processing."""
        ui = ConsoleUI(EventBus(), console=console)
        ui.render_update(StateUpdate(is_processing=True))

        assert not ui._idle.is_set()

    async def test_confirmation_answer_sent(self, console, output):
        """Test the operator's answer goes back with the request id."""
        bus = EventBus()
        ui = ConsoleUI(bus, console=console, confirm=lambda request: request.command == "ls")

        await ui.handle_confirmation(ConfirmationRequest(id="abc", operation="Execute command", command="ls"))

        assert bus.ui_to_core.get_nowait() == ConfirmationResponse(id="abc", approved=True)
        assert "Execute command" in output.getvalue()

    async def test_run_until_quit(self, console, output):
        """Test the input loop renders pending updates and exits on /quit."""
        bus = EventBus()
        inputs = iter(["/quit"])
        ui = ConsoleUI(bus, console=console, prompt=lambda: next(inputs))
        bus.send_to_ui(StateUpdate(new_messages=[DisplayMessage(kind=DisplayKind.PROGRAM, content="welcome")]))

        await ui.run()

        assert "welcome" in output.getvalue()
        assert "Goodbye!" in output.getvalue()
        assert bus.ui_to_core.empty()


class TestProfileCommands:
    """Tests for the profile management CLI."""

    @pytest.fixture
    def runner(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TERMPILOT_HOME", str(tmp_path))
        return CliRunner()

    def test_version(self, runner):
        """Test --version prints the version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "termpilot v" in result.output

    def test_add_use_remove(self, runner, tmp_path):
        """Test a profile lifecycle through the CLI."""
        result = runner.invoke(app, ["profile", "add", "work", "--api-key", "sk-test", "--model", "gpt-4o"])
        assert result.exit_code == 0, result.output

        config = load_config()
        assert config.active_profile == "work"
        assert config.current_profile.model == "gpt-4o"

        result = runner.invoke(app, ["profile", "use", "default"])
        assert result.exit_code == 0
        assert load_config().active_profile == "default"

        result = runner.invoke(app, ["profile", "remove", "work"])
        assert result.exit_code == 0
        saved = json.loads((tmp_path / ".termpilot" / "config.json").read_text())
        assert list(saved["profiles"]) == ["default"]

    def test_list(self, runner):
        """Test profiles are listed with their status."""
        runner.invoke(app, ["profile", "add", "work", "--api-key", "sk-test"])

        result = runner.invoke(app, ["profile", "list"])

        assert result.exit_code == 0
        assert "work" in result.output
        assert "default" in result.output

    def test_use_unknown_profile(self, runner):
        """Test switching to a missing profile exits with an error."""
        result = runner.invoke(app, ["profile", "use", "ghost"])

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_unknown_provider(self, runner):
        """Test only supported providers are accepted."""
        result = runner.invoke(app, ["profile", "add", "x", "--api-key", "k", "--provider", "mystery"])

        assert result.exit_code == 1
