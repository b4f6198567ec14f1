"""
SSH domain models
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import paramiko

from ...core.constants import DEFAULT_SSH_PORT, DEFAULT_SSH_TIMEOUT, KNOWN_HOSTS_PATH, SSH_CONFIG_PATH
from ...core.exceptions import ConfigError


@dataclass(frozen=True)
class HostInfo:
    """Connection target: host, port and user"""
    host: str
    port: int = DEFAULT_SSH_PORT
    user: str = ""

    @classmethod
    def parse(cls, target: str) -> "HostInfo":
        """
        Parse a "[user@]host[:port]" target string.

        IPv6 literals need brackets when a port is given: "[::1]:2222".

        Examples:
            HostInfo.parse("server") -> HostInfo("server", 22, "")
            HostInfo.parse("admin@server:2222") -> HostInfo("server", 2222, "admin")

        Raises:
            ConfigError: If host is missing or port is not a valid number
        """
        target = target.strip()
        user = ""
        if "@" in target:
            user, target = target.rsplit("@", 1)

        host = target
        port = DEFAULT_SSH_PORT
        if target.startswith("["):
            end = target.find("]")
            if end == -1:
                raise ConfigError(f"Invalid host: {target}")
            host = target[1:end]
            rest = target[end + 1:]
            if rest:
                if not rest.startswith(":"):
                    raise ConfigError(f"Invalid host: {target}")
                port = _parse_port(rest[1:])
        elif target.count(":") == 1:
            host, port_str = target.split(":", 1)
            port = _parse_port(port_str)

        if not host:
            raise ConfigError("host is required")
        return cls(host=host, port=port, user=user)

    def replace(self, **changes: Any) -> "HostInfo":
        """Return a copy with the given fields substituted"""
        return dataclasses.replace(self, **changes)

    @property
    def identity(self) -> str:
        """Connection identity string: user@host:port"""
        return f"{self.user}@{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.identity


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"Invalid port: {value}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range: {port}")
    return port


@dataclass
class AliasRule:
    """One Host block from an SSH config file"""
    alias: str
    hostname: str = ""
    port: int = DEFAULT_SSH_PORT
    user: str = ""
    identity_files: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TrustRecord:
    """Known host key entry"""
    hostname: str
    key_type: str
    fingerprint: str


# ============================================================
# Authentication
# ============================================================

@dataclass
class PublicKeyAuth:
    """All collected signers, offered within a single auth method"""
    signers: List[paramiko.PKey]

    name = "publickey"


@dataclass
class PasswordAuth:
    """Password authentication"""
    password: str = field(repr=False)

    name = "password"


AuthMethod = Union[PublicKeyAuth, PasswordAuth]


@dataclass
class CredentialPlan:
    """
    Ordered authentication material for one connect attempt.

    signers are ordered agent first, then SSH config identity files, the
    explicit key and the default key paths. signer_paths lists the file
    each non-agent signer came from.
    """
    signers: List[paramiko.PKey] = field(default_factory=list)
    signer_paths: List[str] = field(default_factory=list)
    password: Optional[str] = field(default=None, repr=False)
    agent: Optional[paramiko.Agent] = field(default=None, repr=False)

    def auth_methods(self) -> List[AuthMethod]:
        """
        Collapse the plan into auth methods.

        Never more than two entries: one public key method carrying every
        signer, and a password method when a password was supplied.
        """
        methods: List[AuthMethod] = []
        if self.signers:
            methods.append(PublicKeyAuth(signers=list(self.signers)))
        if self.password:
            methods.append(PasswordAuth(password=self.password))
        return methods

    @property
    def has_public_key(self) -> bool:
        """Check if at least one signer is available"""
        return bool(self.signers)

    def close(self) -> None:
        """Release the agent connection, if any; safe to call repeatedly"""
        if self.agent is not None:
            agent, self.agent = self.agent, None
            agent.close()


# ============================================================
# Client Configuration
# ============================================================

@dataclass
class ClientConfig:
    """Settings for creating a RemoteClient"""
    host_info: Optional[HostInfo]
    password: Optional[str] = field(default=None, repr=False)
    key_path: Optional[str] = None
    key_passphrase: Optional[str] = field(default=None, repr=False)
    timeout: float = DEFAULT_SSH_TIMEOUT
    strict_host_key_checking: bool = False
    use_ssh_config: bool = True
    ssh_config_path: str = SSH_CONFIG_PATH
    known_hosts_path: str = KNOWN_HOSTS_PATH
    # Used when neither the target nor the SSH config names a user
    fallback_user: str = ""


# ============================================================
# Execution
# ============================================================

@dataclass
class ExecuteResult:
    """
    Command execution result.

    error is set only for transport-level failures; a nonzero exit
    status is carried in exit_code with error left unset.
    """
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        """Check if the command ran and exited with status 0"""
        return self.error is None and self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "error": str(self.error) if self.error else None,
        }

    def __str__(self) -> str:
        if self.error:
            return f"Error: {self.error}"
        if self.success:
            return self.stdout
        return f"Error (exit code {self.exit_code}): {self.stderr}"
