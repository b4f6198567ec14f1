"""
Configuration adapters
"""
from .settings import (
    AppConfig,
    LLMConfig,
    SSHKeyConfig,
    SSHSettings,
    ShellCommandsConfig,
    detect_ssh_keys,
)
from .loader import ConfigLoader, save_config

__all__ = [
    "AppConfig",
    "LLMConfig",
    "SSHKeyConfig",
    "SSHSettings",
    "ShellCommandsConfig",
    "detect_ssh_keys",
    "ConfigLoader",
    "save_config",
]
