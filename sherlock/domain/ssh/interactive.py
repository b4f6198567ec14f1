"""
PTY passthrough between the local terminal and a remote channel
"""
import os
import select
import sys
import threading
from typing import BinaryIO, Optional

import paramiko

from ...core.logging import get_logger
from ...core.terminal import get_terminal_size, on_window_resize, raw_mode
from ...core.utils import resolve_term_type

logger = get_logger(__name__)

RELAY_BUFFER_SIZE = 1024
SELECT_TIMEOUT = 0.1


class StdinRelay(threading.Thread):
    """Copies local keystrokes into the channel until EOF or stop()"""

    def __init__(self, channel: paramiko.Channel, stdin_fd: int):
        super().__init__(name="sherlock-stdin-relay", daemon=True)
        self.channel = channel
        self.stdin_fd = stdin_fd
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                readable, _, _ = select.select([self.stdin_fd], [], [], SELECT_TIMEOUT)
                if not readable:
                    continue
                data = os.read(self.stdin_fd, RELAY_BUFFER_SIZE)
                if not data:
                    self.channel.shutdown_write()
                    return
                self.channel.sendall(data)
            except (OSError, ValueError, paramiko.SSHException) as e:
                # Channel gone or stdin closed; the output side notices the exit
                logger.debug("stdin relay stopped: %s", e)
                return


class PtySession:
    """
    One interactive command on a PTY channel.

    Output is copied on the calling thread; a StdinRelay thread feeds
    keystrokes. The local terminal is put in raw mode for the duration
    and window resizes are forwarded to the remote PTY.
    """

    def __init__(
        self,
        channel: paramiko.Channel,
        stdin_fd: Optional[int] = None,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
    ):
        self.channel = channel
        self.stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
        self.stdout = stdout if stdout is not None else sys.stdout.buffer
        self.stderr = stderr if stderr is not None else sys.stderr.buffer

    def run(self, command: str) -> int:
        """
        Start command on a PTY and relay I/O until it exits.

        Returns:
            Remote exit status

        Raises:
            paramiko.SSHException, OSError, EOFError: On channel failure
        """
        width, height = get_terminal_size(self.stdin_fd)
        self.channel.get_pty(term=resolve_term_type(), width=width, height=height)
        self.channel.exec_command(command)

        with raw_mode(self.stdin_fd), on_window_resize(self._resize, self.stdin_fd):
            relay = StdinRelay(self.channel, self.stdin_fd)
            relay.start()
            try:
                self._relay_output()
            finally:
                relay.stop()
                # Restore the terminal only once the relay no longer reads stdin
                relay.join(SELECT_TIMEOUT * 2)

        return self.channel.recv_exit_status()

    def _resize(self, width: int, height: int) -> None:
        try:
            self.channel.resize_pty(width=width, height=height)
        except (paramiko.SSHException, OSError) as e:
            logger.debug("PTY resize failed: %s", e)

    def _relay_output(self) -> None:
        channel = self.channel
        while True:
            select.select([channel], [], [], SELECT_TIMEOUT)

            drained = False
            if channel.recv_ready():
                self._write(self.stdout, channel.recv(RELAY_BUFFER_SIZE))
                drained = True
            if channel.recv_stderr_ready():
                self._write(self.stderr, channel.recv_stderr(RELAY_BUFFER_SIZE))
                drained = True
            if drained:
                continue

            if channel.exit_status_ready() or channel.closed:
                return

    @staticmethod
    def _write(stream: BinaryIO, data: bytes) -> None:
        if data:
            stream.write(data)
            stream.flush()
