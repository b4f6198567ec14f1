"""Shared fixtures: in-process keys and fake SSH channels."""

from pathlib import Path
from typing import Callable, List, Optional, Tuple

import paramiko
import pytest

Response = Tuple[bytes, bytes, int]


class FakeChannel:
    """Stands in for paramiko.Channel in batch execution tests."""

    def __init__(self, responder: Callable[[str], Response], never_exits: bool = False):
        self.responder = responder
        self.never_exits = never_exits
        self.command: Optional[str] = None
        self.closed = False
        self._stdout = bytearray()
        self._stderr = bytearray()
        self._exit_code = -1

    def exec_command(self, command: str) -> None:
        self.command = command
        stdout, stderr, exit_code = self.responder(command)
        self._stdout.extend(stdout)
        self._stderr.extend(stderr)
        self._exit_code = exit_code

    def recv_ready(self) -> bool:
        return bool(self._stdout)

    def recv(self, nbytes: int) -> bytes:
        data = bytes(self._stdout[:nbytes])
        del self._stdout[:nbytes]
        return data

    def recv_stderr_ready(self) -> bool:
        return bool(self._stderr)

    def recv_stderr(self, nbytes: int) -> bytes:
        data = bytes(self._stderr[:nbytes])
        del self._stderr[:nbytes]
        return data

    def exit_status_ready(self) -> bool:
        return not self.never_exits

    def recv_exit_status(self) -> int:
        return self._exit_code

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """Stands in for an authenticated paramiko.Transport."""

    def __init__(self, responder: Callable[[str], Response], never_exits: bool = False):
        self.responder = responder
        self.never_exits = never_exits
        self.channels: List[FakeChannel] = []
        self.active = True
        self.close_calls = 0

    @property
    def commands(self) -> List[Optional[str]]:
        return [c.command for c in self.channels]

    def open_session(self, timeout: Optional[float] = None) -> FakeChannel:
        channel = FakeChannel(self.responder, never_exits=self.never_exits)
        self.channels.append(channel)
        return channel

    def is_active(self) -> bool:
        return self.active

    def close(self) -> None:
        self.close_calls += 1
        self.active = False


@pytest.fixture
def host_key() -> paramiko.PKey:
    """A server host key generated in-process."""
    return paramiko.ECDSAKey.generate()


@pytest.fixture
def other_host_key() -> paramiko.PKey:
    """A second, different host key."""
    return paramiko.ECDSAKey.generate()


@pytest.fixture
def write_key(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a fresh private key file; returns its path."""

    def _write(name: str = "id_test", passphrase: Optional[str] = None) -> Path:
        path = tmp_path / name
        key = paramiko.ECDSAKey.generate()
        key.write_private_key_file(str(path), password=passphrase)
        path.with_name(name + ".pub").write_text(f"{key.get_name()} {key.get_base64()} test@sherlock\n")
        return path

    return _write


@pytest.fixture
def no_agent(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure no real SSH agent is consulted."""
    monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at an empty temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home
