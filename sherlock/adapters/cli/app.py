"""
Main CLI application
"""
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from ... import __version__
from ...core.constants import APP_DESCRIPTION, APP_NAME
from ...core.exceptions import SherlockError
from ...core.logging import get_logger, get_stderr_console, get_stdout_console, setup_logging
from ...domain.agent import Agent
from ...infrastructure.state import HistoryStore
from ..config.loader import ConfigLoader
from ..config.settings import AppConfig
from ..llm import create_model_client
from .shell import SherlockShell, print_hosts

logger = get_logger(__name__)
console = get_stdout_console()
stderr_console = get_stderr_console()

app = typer.Typer(
    name="sherlock",
    add_completion=False,
    help=f"{APP_NAME} - {APP_DESCRIPTION}",
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{APP_NAME} version {__version__}")
        raise typer.Exit()


def _cli_overrides(
    provider: Optional[str],
    model: Optional[str],
    base_url: Optional[str],
    api_key: Optional[str],
) -> Dict[str, Any]:
    llm = {
        "provider": provider,
        "model": model,
        "base_url": base_url,
        "api_key": api_key,
    }
    llm = {k: v for k, v in llm.items() if v}
    return {"llm": llm} if llm else {}


def load_app_config(config_path: Optional[Path], overrides: Dict[str, Any]) -> AppConfig:
    """
    Load and validate configuration, exiting on errors.

    Raises:
        typer.Exit: If the configuration is unusable
    """
    try:
        config = ConfigLoader().load(config_path, cli_overrides=overrides)
    except SherlockError as e:
        stderr_console.print(f"[red]Error:[/red] Failed to load config: {e}")
        raise typer.Exit(1)

    if not config.ssh_key.private_key_path or not config.ssh_key.public_key_path:
        stderr_console.print(
            "[yellow]Warning:[/yellow] No SSH keys found in ~/.ssh/ (tried id_ed25519 and id_rsa).\n"
            "         Password authentication will be used for SSH connections."
        )

    try:
        config.validate()
    except SherlockError as e:
        stderr_console.print(f"[red]Error:[/red] Invalid configuration: {e}")
        stderr_console.print("Use --help for usage information or configure using a config file.")
        raise typer.Exit(1)

    return config


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (default: ~/.config/sherlock/config.toml)",
    ),
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        help="LLM provider (ollama, openai, deepseek)",
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Model name"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Base URL for LLM API"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key for LLM provider"),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version information",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """
    Sherlock - drive a remote or local shell in plain language.

    Without a subcommand, starts the interactive shell.
    """
    setup_logging(level=log_level, log_file=log_file)

    if ctx.invoked_subcommand is not None:
        return

    config = load_app_config(config_path, _cli_overrides(provider, model, base_url, api_key))

    try:
        model_client = create_model_client(config.llm)
    except SherlockError as e:
        stderr_console.print(f"[red]Error:[/red] Failed to initialize AI client: {e}")
        raise typer.Exit(1)

    shell = SherlockShell(config, Agent(model_client), history=HistoryStore())
    try:
        shell.run()
    except Exception as e:
        logger.exception("Shell error")
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def hosts() -> None:
    """Show all saved hosts"""
    print_hosts(console, HistoryStore())


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
