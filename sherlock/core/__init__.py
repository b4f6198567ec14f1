"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import Executor, ModelClient, PromptProvider
from .utils import (
    shell_escape,
    shell_path_expr,
    is_valid_term_type,
    resolve_term_type,
    expand_path,
    get_default_key_paths,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "Executor",
    "ModelClient",
    "PromptProvider",
    "shell_escape",
    "shell_path_expr",
    "is_valid_term_type",
    "resolve_term_type",
    "expand_path",
    "get_default_key_paths",
]
