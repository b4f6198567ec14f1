"""Tests for the typer entry point."""

import importlib
import io
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from sherlock import __version__
from sherlock.adapters.config.loader import ConfigLoader
from sherlock.infrastructure.state import HistoryStore

# The package re-exports the Typer object under the submodule name
app_module = importlib.import_module("sherlock.adapters.cli.app")
runner = CliRunner()


@pytest.fixture
def consoles(monkeypatch: pytest.MonkeyPatch, fake_home: Path):
    """Capture console output and isolate config from the environment."""
    for key in ConfigLoader.ENV_MAPPINGS:
        monkeypatch.delenv(key, raising=False)
    out, err = io.StringIO(), io.StringIO()
    monkeypatch.setattr(app_module, "console", Console(file=out, width=120))
    monkeypatch.setattr(app_module, "stderr_console", Console(file=err, width=120))
    return out, err


def test_version(consoles) -> None:
    """--version prints the version and exits cleanly."""
    out, _ = consoles
    result = runner.invoke(app_module.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in out.getvalue()


def test_hosts_empty(consoles) -> None:
    """hosts with no history says so."""
    out, _ = consoles
    result = runner.invoke(app_module.app, ["hosts"])

    assert result.exit_code == 0
    assert "No saved hosts found." in out.getvalue()


def test_hosts_lists_saved_targets(consoles) -> None:
    """hosts renders the saved history."""
    out, _ = consoles
    HistoryStore().add_record("web.example.com", 22, "deploy")

    result = runner.invoke(app_module.app, ["hosts"])

    assert result.exit_code == 0
    assert "deploy@web.example.com:22" in out.getvalue()


def test_invalid_config_exits(consoles, tmp_path: Path) -> None:
    """A provider without its API key fails validation."""
    _, err = consoles
    result = runner.invoke(
        app_module.app, ["--config", str(tmp_path / "c.toml"), "--provider", "openai"]
    )

    assert result.exit_code == 1
    assert "API key is required" in err.getvalue()


def test_main_starts_shell(consoles, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Without a subcommand the interactive shell is started."""
    started = {}

    class RecordingShell:
        def __init__(self, config, agent, history=None):
            started["config"] = config
            started["agent"] = agent

        def run(self):
            started["ran"] = True

    monkeypatch.setattr(app_module, "SherlockShell", RecordingShell)

    result = runner.invoke(app_module.app, ["--config", str(tmp_path / "c.toml"), "--model", "llama3"])

    assert result.exit_code == 0
    assert started["ran"]
    assert started["config"].llm.model == "llama3"
    assert (tmp_path / "c.toml").exists()
