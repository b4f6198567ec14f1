"""
Credential resolution

Gathers every usable credential for one connect attempt into a single
CredentialPlan. All signers end up in ONE public key auth method: servers
cap auth attempts (MaxAuthTries), and offering keys as separate methods
can lock the client out before it reaches the key that works.
"""
import os
from typing import List, Optional, Sequence, Set

import paramiko

from ...core.exceptions import NoCredentialsError
from ...core.logging import get_logger
from ...core.utils import expand_path, get_default_key_paths
from .models import CredentialPlan

logger = get_logger(__name__)


def load_private_key(path: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """
    Load a private key of any supported type.

    Raises:
        OSError: If the file cannot be read
        paramiko.SSHException, ValueError: If the key is malformed,
            unsupported, encrypted without a passphrase, or the
            passphrase is wrong
    """
    secret = passphrase.encode("utf-8") if passphrase else None
    # Positional: the keyword name differs between paramiko releases
    try:
        return paramiko.PKey.from_path(expand_path(path), secret)
    except TypeError as e:
        # cryptography reports a missing or unexpected passphrase as TypeError
        raise paramiko.PasswordRequiredException(f"{path}: {e}") from e


def get_agent_signers() -> tuple[List[paramiko.PKey], Optional[paramiko.Agent]]:
    """
    Fetch all keys held by the local SSH agent.

    Returns:
        (signers, agent); agent is None when no agent is reachable or it
        holds no keys. The caller owns the returned agent connection.
    """
    if not os.environ.get("SSH_AUTH_SOCK"):
        return [], None

    try:
        agent = paramiko.Agent()
    except paramiko.SSHException as e:
        logger.debug("SSH agent unavailable: %s", e)
        return [], None

    try:
        keys = list(agent.get_keys())
    except paramiko.SSHException as e:
        logger.debug("Cannot list SSH agent keys: %s", e)
        agent.close()
        return [], None

    if not keys:
        agent.close()
        return [], None

    logger.debug("SSH agent offers %d key(s)", len(keys))
    return keys, agent


class CredentialResolver:
    """Builds a CredentialPlan from every credential source"""

    def __init__(
        self,
        key_path: Optional[str] = None,
        passphrase: Optional[str] = None,
        password: Optional[str] = None,
        identity_files: Sequence[str] = (),
        default_key_paths: Optional[Sequence[str]] = None,
        use_agent: bool = True,
    ):
        """
        Args:
            key_path: Explicit private key path
            passphrase: Passphrase for the explicit key
            password: Password for the password auth method
            identity_files: IdentityFile entries from the SSH config alias
            default_key_paths: Override the ~/.ssh/id_* probe list
            use_agent: Query the SSH agent
        """
        self.key_path = key_path
        self.passphrase = passphrase
        self.password = password
        self.identity_files = list(identity_files)
        self.default_key_paths = (
            list(default_key_paths) if default_key_paths is not None else get_default_key_paths()
        )
        self.use_agent = use_agent

    def resolve(self) -> CredentialPlan:
        """
        Collect credentials in priority order.

        Order: agent, SSH config identity files, explicit key, default key
        paths. Each path contributes at most one signer. Keys that fail
        to load are skipped.

        Raises:
            NoCredentialsError: If no authentication method is available
        """
        plan = CredentialPlan(password=self.password or None)
        tried: Set[str] = set()

        if self.use_agent:
            signers, agent = get_agent_signers()
            plan.signers.extend(signers)
            plan.agent = agent

        for path in self.identity_files:
            self._add_key(plan, tried, path)

        if self.key_path:
            self._add_key(plan, tried, self.key_path, self.passphrase)

        for path in self.default_key_paths:
            self._add_key(plan, tried, path)

        if not plan.auth_methods():
            plan.close()
            raise NoCredentialsError("at least one authentication method is required")

        logger.debug(
            "Credential plan: %d signer(s), password=%s",
            len(plan.signers), "yes" if plan.password else "no",
        )
        return plan

    @staticmethod
    def _add_key(
        plan: CredentialPlan,
        tried: Set[str],
        path: str,
        passphrase: Optional[str] = None,
    ) -> None:
        normalized = expand_path(path)
        if normalized in tried:
            return
        try:
            key = load_private_key(normalized, passphrase)
        except FileNotFoundError:
            return
        except (OSError, paramiko.SSHException, ValueError) as e:
            # Unreadable, corrupt, unsupported or wrong passphrase: skip it
            logger.debug("Skipping private key %s: %s", normalized, e)
            return
        tried.add(normalized)
        plan.signers.append(key)
        plan.signer_paths.append(normalized)
