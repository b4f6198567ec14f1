"""
Execution helpers shared by the remote and local executors

Every remote command runs in a fresh channel with no memory of earlier
ones, so the working directory is tracked client-side and replayed as a
"cd <dir> && " prefix.
"""
import shlex
import time
from typing import List, Optional, Tuple

import paramiko

from ...core.exceptions import CommandTimeoutError, ConnectionError
from ...core.utils import resolve_term_type, shell_escape, shell_path_expr

RECV_BUFFER_SIZE = 32768
POLL_INTERVAL = 0.01


# ============================================================
# Command Building
# ============================================================

def parse_cd_command(command: str) -> Optional[str]:
    """
    Detect a standalone directory change.

    Returns:
        None if command is not a plain cd; "" for a bare "cd"; otherwise
        the (unquoted) target. Compound commands such as "cd /tmp && ls"
        are not treated as directory changes.
    """
    command = command.strip()
    if command == "cd":
        return ""
    if not command.startswith(("cd ", "cd\t")):
        return None

    raw = command[2:].strip()
    try:
        parts = shlex.split(raw)
    except ValueError:
        return None
    if len(parts) != 1:
        return None
    return parts[0]


def is_relative_target(target: str) -> bool:
    """Check if a cd target depends on the current directory"""
    return bool(target) and not target.startswith(("/", "~"))


def build_cd_resolve_command(cwd: str, target: str) -> str:
    """
    Build the one-round-trip command that resolves a cd target.

    The tracked directory is entered first only for relative targets;
    the resulting absolute path is printed by pwd.
    """
    cd_target = f"cd {shell_path_expr(target)}" if target else "cd"
    if cwd and is_relative_target(target):
        return f"cd {shell_escape(cwd)} && {cd_target} && pwd"
    return f"{cd_target} && pwd"


def with_cwd(command: str, cwd: str) -> str:
    """Prefix command with a change into the tracked directory"""
    if not cwd:
        return command
    return f"cd {shell_escape(cwd)} && {command}"


def with_term(command: str) -> str:
    """
    Force a known-safe TERM for the command.

    Exported in the command itself since servers often refuse setenv
    requests (sshd AcceptEnv).
    """
    return f"export TERM={shell_escape(resolve_term_type())}; {command}"


# ============================================================
# Output Collection
# ============================================================

def collect_output(
    channel: paramiko.Channel,
    out_buf: List[bytes],
    err_buf: List[bytes],
    timeout: Optional[float] = None,
) -> int:
    """
    Drain stdout and stderr of a running command until it exits.

    Both streams are read in the same loop so a full stderr window can
    never stall stdout. Data read so far stays in the buffers when an
    exception is raised.

    Returns:
        Remote exit status (-1 when the server reported none)

    Raises:
        CommandTimeoutError: If timeout elapses first
        ConnectionError: If the channel closes without an exit status
    """
    deadline = time.monotonic() + timeout if timeout else None

    while True:
        if deadline is not None and time.monotonic() > deadline:
            raise CommandTimeoutError(f"command timed out after {timeout}s")

        has_output = False

        if channel.recv_ready():
            data = channel.recv(RECV_BUFFER_SIZE)
            if data:
                out_buf.append(data)
                has_output = True

        if channel.recv_stderr_ready():
            data = channel.recv_stderr(RECV_BUFFER_SIZE)
            if data:
                err_buf.append(data)
                has_output = True

        if has_output:
            continue

        if channel.exit_status_ready():
            break

        if channel.closed:
            raise ConnectionError("channel closed before the command exited")

        time.sleep(POLL_INTERVAL)

    # Data that raced the exit-status message
    while channel.recv_ready():
        out_buf.append(channel.recv(RECV_BUFFER_SIZE))
    while channel.recv_stderr_ready():
        err_buf.append(channel.recv_stderr(RECV_BUFFER_SIZE))

    return channel.recv_exit_status()


def decode_output(chunks: List[bytes]) -> str:
    """Join and decode collected output"""
    return b"".join(chunks).decode("utf-8", errors="replace")


def split_streams(out_buf: List[bytes], err_buf: List[bytes]) -> Tuple[str, str]:
    """Decode both collected streams"""
    return decode_output(out_buf), decode_output(err_buf)
