"""
Core utility functions
"""
import os
import re
from pathlib import Path
from typing import List

from .constants import DEFAULT_KEY_NAMES, DEFAULT_TERM_TYPE, SSH_DIR


_TERM_TYPE_RE = re.compile(r"[A-Za-z0-9_-]+")
_TILDE_PREFIX_RE = re.compile(r"~[A-Za-z0-9._-]*")


# ============================================================
# Shell Quoting
# ============================================================

def shell_escape(value: str) -> str:
    """
    Quote a value so a POSIX shell treats it as one literal word.

    The value is wrapped in single quotes; embedded single quotes are
    written as '\\''.

    Examples:
        shell_escape("with'quote") -> "'with'\\''quote'"
        shell_escape("$(command)") -> "'$(command)'"
    """
    return "'" + value.replace("'", "'\\''") + "'"


def shell_path_expr(path: str) -> str:
    """
    Build a shell word for a path, keeping a leading tilde expandable.

    "~" and "~user" prefixes stay unquoted so the remote shell expands
    them; everything after is escaped.

    Examples:
        shell_path_expr("~") -> "~"
        shell_path_expr("~/my dir") -> "~/'my dir'"
        shell_path_expr("/tmp/x") -> "'/tmp/x'"
    """
    match = _TILDE_PREFIX_RE.match(path)
    if match and (len(path) == match.end() or path[match.end()] == "/"):
        prefix = match.group(0)
        rest = path[match.end() + 1:]
        if not rest:
            return prefix
        return f"{prefix}/{shell_escape(rest)}"
    return shell_escape(path)


# ============================================================
# Terminal Type
# ============================================================

def is_valid_term_type(term: str) -> bool:
    """Check that a TERM value holds only alphanumerics, hyphens and underscores"""
    return bool(term) and _TERM_TYPE_RE.fullmatch(term) is not None


def resolve_term_type() -> str:
    """Return $TERM when it is safe to interpolate, else the default"""
    term = os.environ.get("TERM", "")
    if is_valid_term_type(term):
        return term
    return DEFAULT_TERM_TYPE


# ============================================================
# Path Resolution Utilities
# ============================================================

def expand_path(path: str) -> str:
    """Expand ~ and return an absolute, normalized path"""
    return os.path.abspath(os.path.expanduser(path))


def get_ssh_dir() -> Path:
    """Return the user's SSH configuration directory"""
    return Path(SSH_DIR).expanduser()


def get_default_key_paths() -> List[str]:
    """Return the default private key paths to probe, most preferred first"""
    ssh_dir = get_ssh_dir()
    return [str(ssh_dir / name) for name in DEFAULT_KEY_NAMES]
