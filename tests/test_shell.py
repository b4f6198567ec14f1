"""Tests for the interactive shell dispatch with fake executors."""

import builtins
import io
from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from sherlock.adapters.cli.shell import SherlockShell
from sherlock.adapters.config.settings import AppConfig
from sherlock.core.exceptions import AuthenticationError, ConnectionError
from sherlock.core.interfaces import Executor
from sherlock.domain.agent import Agent
from sherlock.domain.ssh.models import ClientConfig, ExecuteResult, HostInfo
from sherlock.infrastructure.state import HistoryStore


class FakeExecutor(Executor):
    """Records commands and returns canned results"""

    def __init__(self, label: str = "me@box:local"):
        self.label = label
        self.commands: List[str] = []
        self.interactive: List[str] = []
        self.closed = False
        self.result = ExecuteResult(stdout="done\n")

    def execute(self, command: str, timeout: Optional[float] = None) -> ExecuteResult:
        self.commands.append(command)
        return self.result

    def execute_interactive(self, command: str) -> Optional[int]:
        self.interactive.append(command)
        return 0

    def is_connected(self) -> bool:
        return not self.closed

    def close(self) -> None:
        self.closed = True

    def host_info_string(self) -> str:
        return self.label

    @property
    def cwd(self) -> str:
        return ""


class FakeRemote(FakeExecutor):
    """RemoteClient stand-in accepting keys or one password"""

    def __init__(self, config: ClientConfig, key_ok: bool, password: Optional[str]):
        super().__init__(label=config.host_info.identity)
        self.config = config
        self.host_info = config.host_info
        self.key_ok = key_ok
        self.password = password
        self.pushed_keys: List[str] = []

    def connect(self) -> None:
        if self.config.password is None and not self.key_ok:
            raise AuthenticationError("keys rejected")
        if self.config.password is not None and self.config.password != self.password:
            raise AuthenticationError("password rejected")

    def add_public_key_to_authorized_keys(self, public_key_path: str) -> bool:
        self.pushed_keys.append(public_key_path)
        return True


class RemoteFactory:
    def __init__(self, key_ok: bool = True, password: Optional[str] = None):
        self.key_ok = key_ok
        self.password = password
        self.clients: List[FakeRemote] = []

    def __call__(self, config: ClientConfig) -> FakeRemote:
        client = FakeRemote(config, self.key_ok, self.password)
        self.clients.append(client)
        return client


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def prompts() -> MagicMock:
    mock = MagicMock()
    mock.prompt.return_value = ""
    mock.confirm.return_value = False
    return mock


def make_shell(
    tmp_path: Path,
    output: io.StringIO,
    prompts: MagicMock,
    factory: Optional[RemoteFactory] = None,
    agent: Optional[Agent] = None,
) -> SherlockShell:
    config = AppConfig()
    config.ssh_key.public_key_path = "/keys/id_ed25519.pub"
    return SherlockShell(
        config,
        agent or Agent(),
        history=HistoryStore(tmp_path / "history.json"),
        prompts=prompts,
        console=Console(file=output, width=120),
        local=FakeExecutor(),
        client_factory=factory or RemoteFactory(),
    )


# ============================================================
# Connecting
# ============================================================

def test_connect_with_key(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """A key login attaches the client and records history."""
    factory = RemoteFactory(key_ok=True)
    shell = make_shell(tmp_path, output, prompts, factory)

    shell.handle_input("connect admin@web:2222")

    assert shell.is_remote
    assert shell.executor is factory.clients[0]
    assert factory.clients[0].config.password is None
    record = shell.history.get_records()[0]
    assert (record.host, record.port, record.user, record.has_pub_key) == ("web", 2222, "admin", True)
    prompts.prompt.assert_not_called()


def test_password_fallback_pushes_key(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """Rejected keys lead to a password prompt, then the public key is installed."""
    factory = RemoteFactory(key_ok=False, password="s3cret")
    prompts.prompt.return_value = "s3cret"
    shell = make_shell(tmp_path, output, prompts, factory)

    assert shell.connect_to_host(HostInfo("web", 22, "admin"))

    first, second = factory.clients
    assert first.closed
    assert second.config.password == "s3cret"
    assert second.pushed_keys == ["/keys/id_ed25519.pub"]
    assert shell.history.get_records()[0].has_pub_key is True
    assert "falling back to password" in output.getvalue()


def test_password_cancelled(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """An empty password cancels without connecting."""
    shell = make_shell(tmp_path, output, prompts, RemoteFactory(key_ok=False))

    assert not shell.connect_to_host(HostInfo("web", 22, "admin"))
    assert not shell.is_remote
    assert len(shell.history) == 0


def test_wrong_password_raises(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """A rejected password surfaces as an error."""
    prompts.prompt.return_value = "wrong"
    shell = make_shell(tmp_path, output, prompts, RemoteFactory(key_ok=False, password="right"))

    with pytest.raises(ConnectionError):
        shell.connect_to_host(HostInfo("web", 22, "admin"))
    assert not shell.is_remote


def test_connect_by_history_id(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """connect <id> reuses a saved target."""
    factory = RemoteFactory()
    shell = make_shell(tmp_path, output, prompts, factory)
    shell.history.add_record("db.example.com", 2200, "postgres")

    shell.handle_input("connect 1")

    assert factory.clients[0].host_info == HostInfo("db.example.com", 2200, "postgres")


def test_natural_language_connect(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """Free-form connection requests go through the agent."""
    factory = RemoteFactory()
    shell = make_shell(tmp_path, output, prompts, factory)

    shell.handle_input("please log in to 10.0.0.9")

    assert factory.clients[0].host_info == HostInfo("10.0.0.9", 22, "root")


def test_disconnect(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """disconnect closes the remote and returns to local mode."""
    factory = RemoteFactory()
    shell = make_shell(tmp_path, output, prompts, factory)
    shell.handle_input("ssh admin@web")

    shell.handle_input("disconnect")

    assert factory.clients[0].closed
    assert not shell.is_remote
    assert shell.executor is shell.local


# ============================================================
# Commands
# ============================================================

def test_direct_command_runs_locally(
    tmp_path: Path, output: io.StringIO, prompts: MagicMock, capsys: pytest.CaptureFixture
) -> None:
    """$command runs on the local executor when not connected."""
    shell = make_shell(tmp_path, output, prompts)

    shell.handle_input("$ echo hi")

    assert shell.local.commands == ["echo hi"]
    assert capsys.readouterr().out == "done\n"


def test_commands_run_on_remote_when_connected(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """Once connected, commands go to the remote executor."""
    factory = RemoteFactory()
    shell = make_shell(tmp_path, output, prompts, factory)
    shell.handle_input("connect admin@web")

    shell.handle_input("ls -la")

    assert factory.clients[0].commands == ["ls -la"]
    assert shell.local.commands == []


def test_dangerous_command_needs_confirmation(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """Declining the confirmation skips execution."""
    shell = make_shell(tmp_path, output, prompts)

    shell.handle_input("rm -rf build")

    prompts.confirm.assert_called_once()
    assert shell.local.commands == []
    assert "Operation cancelled." in output.getvalue()


def test_interactive_command_uses_pty(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """Editors and pagers run interactively."""
    shell = make_shell(tmp_path, output, prompts)

    shell.handle_input("vim notes.txt")

    assert shell.local.interactive == ["vim notes.txt"]
    assert shell.local.commands == []


def test_execute_command_reports_errors(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """Transport errors stop the command and are printed."""
    shell = make_shell(tmp_path, output, prompts)
    shell.local.result = ExecuteResult(exit_code=-1, error=ConnectionError("lost"))

    assert shell.execute_command("uptime") is False
    assert "lost" in output.getvalue()


def test_nonzero_exit_code_is_printed(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """A failing command reports its exit status."""
    shell = make_shell(tmp_path, output, prompts)
    shell.local.result = ExecuteResult(stderr="nope\n", exit_code=2)

    assert shell.execute_command("false") is True
    assert "(exit code: 2)" in output.getvalue()


# ============================================================
# Built-ins and loop
# ============================================================

def test_history_and_hosts_builtins(tmp_path: Path, output: io.StringIO, prompts: MagicMock) -> None:
    """history and hosts render saved targets."""
    shell = make_shell(tmp_path, output, prompts)
    shell.handle_input("history")
    assert "No login history found." in output.getvalue()

    shell.history.add_record("web", 22, "admin")
    shell.handle_input("hosts")
    shell.handle_input("history web")

    text = output.getvalue()
    assert "Saved Hosts" in text
    assert "admin@web:22" in text


def test_run_loop(
    tmp_path: Path, output: io.StringIO, prompts: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The loop handles input, reports errors and cleans up on exit."""
    lines = iter(["help", "", "connect bad:port", "status", "exit"])
    monkeypatch.setattr(builtins, "input", lambda prompt="": next(lines))
    shell = make_shell(tmp_path, output, prompts)

    shell.run()

    text = output.getvalue()
    assert "Built-in commands" in text
    assert "Error:" in text
    assert "Status" in text
    assert text.rstrip().endswith("Goodbye!")
    assert shell.local.closed


def test_run_loop_stops_on_eof(
    tmp_path: Path, output: io.StringIO, prompts: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """EOF ends the loop."""

    def raise_eof(prompt: str = "") -> str:
        raise EOFError

    monkeypatch.setattr(builtins, "input", raise_eof)
    shell = make_shell(tmp_path, output, prompts)

    shell.run()

    assert "Goodbye!" in output.getvalue()
