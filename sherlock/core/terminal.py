"""
Local terminal helpers for PTY passthrough (POSIX only)
"""
import os
import signal
import termios
import threading
import tty
from contextlib import contextmanager
from typing import Callable, Iterator, Tuple

from .constants import DEFAULT_TERMINAL_HEIGHT, DEFAULT_TERMINAL_WIDTH
from .logging import get_logger

logger = get_logger(__name__)


def get_terminal_size(fd: int) -> Tuple[int, int]:
    """
    Query the terminal attached to fd.

    Returns:
        (columns, rows); the fixed default when fd is not a terminal or
        the size cannot be read.
    """
    if not os.isatty(fd):
        return DEFAULT_TERMINAL_WIDTH, DEFAULT_TERMINAL_HEIGHT
    try:
        size = os.get_terminal_size(fd)
    except OSError:
        return DEFAULT_TERMINAL_WIDTH, DEFAULT_TERMINAL_HEIGHT
    if size.columns <= 0 or size.lines <= 0:
        return DEFAULT_TERMINAL_WIDTH, DEFAULT_TERMINAL_HEIGHT
    return size.columns, size.lines


@contextmanager
def raw_mode(fd: int) -> Iterator[bool]:
    """
    Put the terminal on fd into raw mode for the duration of the block.

    Yields True when raw mode was entered. Non-terminals are left
    untouched. The previous attributes are restored on every exit path.
    """
    if not os.isatty(fd):
        yield False
        return

    saved = termios.tcgetattr(fd)
    tty.setraw(fd, termios.TCSANOW)
    try:
        yield True
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


@contextmanager
def on_window_resize(callback: Callable[[int, int], None], fd: int) -> Iterator[None]:
    """
    Call callback(columns, rows) on every SIGWINCH while the block runs.

    Signal handlers can only be installed from the main thread; elsewhere
    resizes are not forwarded.
    """
    if not hasattr(signal, "SIGWINCH") or threading.current_thread() is not threading.main_thread():
        logger.debug("Window resize forwarding unavailable")
        yield
        return

    def _handler(signum, frame):
        if not os.isatty(fd):
            return
        callback(*get_terminal_size(fd))

    previous = signal.signal(signal.SIGWINCH, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGWINCH, previous)
