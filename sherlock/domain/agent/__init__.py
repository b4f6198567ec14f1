"""
Request agent: rule-based classifiers and model-backed parsing
"""
from .models import ConnectionInfo, CommandInfo
from .classifier import (
    COMMON_SHELL_COMMANDS,
    DANGEROUS_COMMANDS,
    INTERACTIVE_COMMANDS,
    is_shell_command,
    is_dangerous_command,
    is_interactive_command,
    is_connection_request,
    is_history_request,
    is_hosts_request,
    extract_history_query,
    parse_connection_direct,
    extract_json,
)
from .agent import Agent

__all__ = [
    "ConnectionInfo",
    "CommandInfo",
    "COMMON_SHELL_COMMANDS",
    "DANGEROUS_COMMANDS",
    "INTERACTIVE_COMMANDS",
    "is_shell_command",
    "is_dangerous_command",
    "is_interactive_command",
    "is_connection_request",
    "is_history_request",
    "is_hosts_request",
    "extract_history_query",
    "parse_connection_direct",
    "extract_json",
    "Agent",
]
