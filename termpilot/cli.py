"""Command-line interface for termpilot."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from termpilot import __version__
from termpilot.config import DEFAULT_MODEL, Profile, default_config, load_config
from termpilot.errors import ConfigError
from termpilot.main import Application, configure_logging

app = typer.Typer(
    name="termpilot",
    help="Terminal coding assistant with tool calling and operator confirmations",
    add_completion=False,
)
profile_app = typer.Typer(help="Manage completion API profiles")
app.add_typer(profile_app, name="profile")

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"termpilot v{__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Log level for ~/.termpilot/termpilot.log",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """termpilot - chat with a model that can run tools in your workspace.

    Examples:
        # Interactive chat
        termpilot

        # Configure a profile first
        termpilot profile add work --api-key sk-... --model gpt-4o
    """
    configure_logging(log_level)
    if ctx.invoked_subcommand is not None:
        return

    try:
        config = load_config()
    except ConfigError as e:
        console.print(f"[yellow]Warning:[/] {e}")
        console.print("[yellow]Continuing without a configured profile[/]")
        config = default_config()

    asyncio.run(Application(config=config).run())


@profile_app.command("list")
def list_profiles() -> None:
    """List configured profiles."""
    config = _load_or_exit()

    table = Table(title="Profiles")
    table.add_column("Name", style="cyan")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Base URL")
    table.add_column("Status")

    for name, profile in config.profiles.items():
        marker = " (active)" if name == config.active_profile else ""
        status = "[green]OK[/]" if profile.is_valid else "[red]NOT CONFIGURED[/]"
        table.add_row(f"{name}{marker}", profile.provider, profile.model, profile.base_url or "-", status)

    console.print(table)


@profile_app.command("add")
def add_profile(
    name: str = typer.Argument(..., help="Profile name"),
    api_key: str = typer.Option(..., "--api-key", "-k", help="API key for the provider"),
    model: str = typer.Option(DEFAULT_MODEL, "--model", "-m", help="Model to use"),
    base_url: str = typer.Option("", "--base-url", "-u", help="Alternative API endpoint"),
    provider: str = typer.Option("openai", "--provider", "-p", help="openai or anthropic"),
    activate: bool = typer.Option(True, "--activate/--no-activate", help="Make this the active profile"),
) -> None:
    """Add or replace a profile."""
    if provider not in ("openai", "anthropic"):
        console.print(f"[bold red]Error:[/] unknown provider '{provider}'")
        raise typer.Exit(1)

    config = _load_or_exit()
    config.add_profile(
        name,
        Profile(api_key=api_key, model=model, base_url=base_url, provider=provider),
        activate=activate,
    )
    path = config.save()
    console.print(f"[green]Profile '{name}' saved to {path}[/]")


@profile_app.command("use")
def use_profile(name: str = typer.Argument(..., help="Profile name")) -> None:
    """Switch the active profile."""
    config = _load_or_exit()
    try:
        config.use_profile(name)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1)
    config.save()
    console.print(f"[green]Active profile is now '{name}'[/]")


@profile_app.command("remove")
def remove_profile(name: str = typer.Argument(..., help="Profile name")) -> None:
    """Delete a profile."""
    config = _load_or_exit()
    try:
        config.remove_profile(name)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1)
    config.save()
    console.print(f"[green]Removed profile '{name}'[/]")


def _load_or_exit():
    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
