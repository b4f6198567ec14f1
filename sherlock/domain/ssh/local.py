"""
Local command executor

Drop-in for RemoteClient when no remote host is connected: same
Executor contract, commands run through the local /bin/sh.
"""
import getpass
import os
import socket
import subprocess
from typing import Optional, Union

from ...core.exceptions import CommandTimeoutError, ConnectionError
from ...core.interfaces import Executor
from ...core.logging import get_logger
from .exec_helpers import parse_cd_command
from .models import ExecuteResult

logger = get_logger(__name__)


def _to_text(value: Optional[Union[str, bytes]]) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class LocalClient(Executor):
    """Runs commands on this machine with a tracked working directory"""

    def __init__(self, cwd: Optional[str] = None):
        self._cwd = os.path.abspath(cwd) if cwd else os.getcwd()
        self._previous_cwd = ""
        self.username = _current_user()
        self.hostname = socket.gethostname()

    @property
    def cwd(self) -> str:
        return self._cwd

    def is_connected(self) -> bool:
        return True

    def close(self) -> None:
        pass

    def host_info_string(self) -> str:
        return f"{self.username}@{self.hostname}:local"

    def execute(self, command: str, timeout: Optional[float] = None) -> ExecuteResult:
        """
        Run a command through sh in the tracked directory.

        A standalone cd is resolved locally and only updates the tracked
        directory.
        """
        target = parse_cd_command(command)
        if target is not None:
            return self._change_directory(target)

        try:
            proc = subprocess.run(
                command,
                shell=True,
                cwd=self._cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return ExecuteResult(
                stdout=_to_text(e.stdout),
                stderr=_to_text(e.stderr),
                exit_code=-1,
                error=CommandTimeoutError(f"command timed out after {timeout}s"),
            )
        except OSError as e:
            return ExecuteResult(exit_code=-1, error=e)

        return ExecuteResult(stdout=proc.stdout, stderr=proc.stderr, exit_code=proc.returncode)

    def _change_directory(self, target: str) -> ExecuteResult:
        display = target or "~"
        if target == "-":
            if not self._previous_cwd:
                return ExecuteResult(stderr="cd: OLDPWD not set", exit_code=1)
            target = self._previous_cwd

        path = os.path.expanduser(target or "~")
        if not os.path.isabs(path):
            path = os.path.join(self._cwd, path)
        path = os.path.normpath(path)

        if not os.path.exists(path):
            return ExecuteResult(stderr=f"cd: {display}: No such file or directory", exit_code=1)
        if not os.path.isdir(path):
            return ExecuteResult(stderr=f"cd: {display}: Not a directory", exit_code=1)
        if not os.access(path, os.X_OK):
            return ExecuteResult(stderr=f"cd: {display}: Permission denied", exit_code=1)

        self._previous_cwd = self._cwd
        self._cwd = path
        logger.debug("Local working directory is now %s", path)
        return ExecuteResult(stdout=path)

    def execute_interactive(self, command: str) -> Optional[int]:
        """
        Run a command attached to the inherited terminal.

        Returns:
            Exit status of the command

        Raises:
            ConnectionError: If the command cannot be started
        """
        try:
            return subprocess.run(command, shell=True, cwd=self._cwd).returncode
        except OSError as e:
            raise ConnectionError(f"failed to start local command: {e}") from e
