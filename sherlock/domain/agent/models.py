"""
Agent request models
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ...core.constants import DEFAULT_SSH_PORT
from ...core.exceptions import AgentError
from ..ssh.models import HostInfo


@dataclass
class ConnectionInfo:
    """Connection target extracted from a request"""
    host: str
    port: int = DEFAULT_SSH_PORT
    user: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionInfo":
        """
        Build from a model reply.

        Raises:
            AgentError: If the reply carries an error or no host
        """
        if data.get("error"):
            raise AgentError(f"connection parse error: {data['error']}")
        host = str(data.get("host") or "").strip()
        if not host:
            raise AgentError("connection parse error: no host in reply")
        try:
            port = int(data.get("port") or DEFAULT_SSH_PORT)
        except (TypeError, ValueError):
            raise AgentError(f"connection parse error: invalid port {data.get('port')!r}") from None
        return cls(host=host, port=port, user=str(data.get("user") or "").strip())

    def to_host_info(self) -> HostInfo:
        return HostInfo(host=self.host, port=self.port, user=self.user)


@dataclass
class CommandInfo:
    """Shell commands derived from a request"""
    commands: List[str] = field(default_factory=list)
    description: str = ""
    needs_confirm: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommandInfo":
        """
        Build from a model reply.

        Raises:
            AgentError: If the reply carries an error or a malformed command list
        """
        if data.get("error"):
            raise AgentError(f"command parse error: {data['error']}")
        commands = data.get("commands") or []
        if isinstance(commands, str):
            commands = [commands]
        if not isinstance(commands, list):
            raise AgentError("command parse error: 'commands' must be a list")
        return cls(
            commands=[str(c).strip() for c in commands if str(c).strip()],
            description=str(data.get("description") or ""),
            needs_confirm=bool(data.get("needs_confirm", False)),
        )
