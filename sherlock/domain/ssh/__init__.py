"""
SSH session layer: credentials, host aliases, host key trust and
command execution (remote and local)
"""
from .models import (
    HostInfo,
    AliasRule,
    TrustRecord,
    PublicKeyAuth,
    PasswordAuth,
    CredentialPlan,
    ClientConfig,
    ExecuteResult,
)
from .credentials import CredentialResolver, load_private_key
from .ssh_config import SSHConfig, apply_ssh_config
from .known_hosts import HostKeyStatus, KnownHostsStore, fingerprint, known_hosts_name
from .client import RemoteClient
from .local import LocalClient

__all__ = [
    "HostInfo",
    "AliasRule",
    "TrustRecord",
    "PublicKeyAuth",
    "PasswordAuth",
    "CredentialPlan",
    "ClientConfig",
    "ExecuteResult",
    "CredentialResolver",
    "load_private_key",
    "SSHConfig",
    "apply_ssh_config",
    "HostKeyStatus",
    "KnownHostsStore",
    "fingerprint",
    "known_hosts_name",
    "RemoteClient",
    "LocalClient",
]
