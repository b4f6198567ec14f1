"""
sherlock - AI-powered SSH remote operations tool

Drive a remote or local shell with natural-language or shorthand
requests:
- SSH sessions with combined key/agent/password authentication
- Host key verification against ~/.ssh/known_hosts
- Working directory tracking across commands
- Interactive (PTY) programs such as editors and pagers
- Pluggable language model backends (Ollama, OpenAI, DeepSeek)
"""

__version__ = "0.1.0"

from .domain.ssh import (
    ClientConfig,
    ExecuteResult,
    HostInfo,
    LocalClient,
    RemoteClient,
)

__all__ = [
    "__version__",
    "ClientConfig",
    "ExecuteResult",
    "HostInfo",
    "LocalClient",
    "RemoteClient",
]
