"""
Host key trust store backed by an OpenSSH known_hosts file.

Strict mode accepts only recorded keys. Lenient mode (the default) also
accepts hosts it has never seen, but a recorded host presenting a
different key is rejected in both modes.

When the file is absent or unreadable, strict mode rejects every host and
lenient mode accepts every host, like StrictHostKeyChecking=yes/no.
"""
import base64
import hashlib
import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

import paramiko

from ...core.constants import DEFAULT_SSH_PORT, KNOWN_HOSTS_MODE, KNOWN_HOSTS_PATH, SSH_DIR_MODE
from ...core.logging import get_logger
from .models import TrustRecord

logger = get_logger(__name__)


class HostKeyStatus(str, Enum):
    """Result of looking a presented key up in the store"""
    KNOWN = "known"
    UNKNOWN = "unknown"
    CHANGED = "changed"
    UNAVAILABLE = "unavailable"


def fingerprint(key: paramiko.PKey) -> str:
    """OpenSSH-style SHA256 fingerprint of a public key"""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


def known_hosts_name(host: str, port: int = DEFAULT_SSH_PORT) -> str:
    """Host name as written in known_hosts: bare for port 22, else [host]:port"""
    if port == DEFAULT_SSH_PORT:
        return host
    return f"[{host}]:{port}"


class KnownHostsStore:
    """Persisted host key trust database"""

    def __init__(self, path: Optional[str] = None, strict: bool = False):
        """
        Load the trust store.

        Args:
            path: known_hosts file (default: ~/.ssh/known_hosts)
            strict: Reject hosts that are not already recorded
        """
        self.path = Path(path or KNOWN_HOSTS_PATH).expanduser()
        self.strict = strict
        self._host_keys = paramiko.HostKeys()
        self._available = False
        self._missing = False
        self._load()

    def _load(self) -> None:
        try:
            self._host_keys.load(str(self.path))
        except FileNotFoundError:
            self._missing = True
            logger.debug("known_hosts not found at %s", self.path)
            return
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read known_hosts %s: %s", self.path, e)
            return
        self._available = True

    @property
    def available(self) -> bool:
        """Check if the store file was loaded"""
        return self._available

    @property
    def missing(self) -> bool:
        """Check if the store file does not exist yet"""
        return self._missing

    def check(self, hostname: str, key: paramiko.PKey) -> HostKeyStatus:
        """Classify a presented key against the recorded entries"""
        if not self._available:
            return HostKeyStatus.UNAVAILABLE

        entries = self._host_keys.lookup(hostname)
        if not entries:
            return HostKeyStatus.UNKNOWN

        presented = key.asbytes()
        for recorded in entries.values():
            if recorded.get_name() == key.get_name() and recorded.asbytes() == presented:
                return HostKeyStatus.KNOWN
        return HostKeyStatus.CHANGED

    def is_accepted(self, status: HostKeyStatus) -> bool:
        """Apply the strictness policy to a lookup status"""
        if status == HostKeyStatus.KNOWN:
            return True
        if status == HostKeyStatus.CHANGED:
            return False
        # UNKNOWN or UNAVAILABLE
        return not self.strict

    def verify(self, hostname: str, key: paramiko.PKey) -> bool:
        """Check if the key presented by hostname is trusted"""
        status = self.check(hostname, key)
        accepted = self.is_accepted(status)
        if not accepted:
            logger.warning(
                "Rejected host key for %s (%s %s): %s",
                hostname, key.get_name(), fingerprint(key), status.value,
            )
        elif status != HostKeyStatus.KNOWN:
            logger.debug("Accepting %s host key for %s", status.value, hostname)
        return accepted

    def key_types(self, hostname: str) -> List[str]:
        """Return the key types recorded for hostname, in file order"""
        if not self._available:
            return []
        entries = self._host_keys.lookup(hostname)
        if not entries:
            return []
        return list(entries.keys())

    def records(self, hostname: str) -> List[TrustRecord]:
        """Return the recorded keys for hostname"""
        if not self._available:
            return []
        entries = self._host_keys.lookup(hostname)
        if not entries:
            return []
        return [
            TrustRecord(hostname=hostname, key_type=key_type, fingerprint=fingerprint(key))
            for key_type, key in entries.items()
        ]

    def record(self, hostname: str, key: paramiko.PKey) -> None:
        """
        Append a host key to the store file.

        Creates the directory (0700) and the file (0600) when missing.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(mode=SSH_DIR_MODE, parents=True, exist_ok=True)

        line = f"{hostname} {key.get_name()} {key.get_base64()}\n"
        fd = os.open(str(self.path), os.O_WRONLY | os.O_APPEND | os.O_CREAT, KNOWN_HOSTS_MODE)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(line)

        self._host_keys.add(hostname, key.get_name(), key)
        if self._missing:
            self._missing = False
            self._available = True
        logger.info("Added %s host key for %s to %s", key.get_name(), hostname, self.path)
