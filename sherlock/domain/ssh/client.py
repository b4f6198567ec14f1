"""
SSH remote client

Owns one authenticated SSH session and runs commands through it, batch
(captured) or interactive (PTY). The working directory is tracked
client-side since every command runs in a fresh channel.
"""
from __future__ import annotations

import socket
from pathlib import Path
from typing import List, Optional

import paramiko

from ...core.exceptions import (
    AuthenticationError,
    CommandTimeoutError,
    ConfigError,
    ConnectionError,
    ConnectTimeoutError,
    HostKeyError,
    SherlockError,
)
from ...core.interfaces import Executor
from ...core.logging import get_logger
from ...core.utils import shell_escape
from .credentials import CredentialResolver
from .exec_helpers import (
    build_cd_resolve_command,
    collect_output,
    parse_cd_command,
    split_streams,
    with_cwd,
    with_term,
)
from .interactive import PtySession
from .known_hosts import HostKeyStatus, KnownHostsStore, fingerprint, known_hosts_name
from .models import ClientConfig, CredentialPlan, ExecuteResult, HostInfo, PublicKeyAuth
from .ssh_config import SSHConfig, apply_ssh_config

logger = get_logger(__name__)

# Signature algorithms negotiated for a key recorded as ssh-rsa
RSA_SIGNATURE_TYPES = ("rsa-sha2-512", "rsa-sha2-256")


def _recorded_key_type(key_type: str) -> str:
    """Map a negotiable host key algorithm to its known_hosts key type"""
    if key_type in RSA_SIGNATURE_TYPES:
        return "ssh-rsa"
    return key_type


class RemoteClient(Executor):
    """
    SSH session to a single host.

    Construction resolves the SSH config alias and the credential plan
    without touching the network. connect() dials, verifies the host key
    and authenticates. A closed client cannot be reconnected; create a
    new one instead.
    """

    def __init__(
        self,
        config: ClientConfig,
        trust_store: Optional[KnownHostsStore] = None,
        resolver: Optional[CredentialResolver] = None,
    ) -> None:
        """
        Args:
            config: Client settings
            trust_store: Override the known_hosts store from config
            resolver: Override the credential resolver built from config

        Raises:
            ConfigError: If host or user is missing, or no authentication
                method is available
        """
        if config.host_info is None or not config.host_info.host:
            raise ConfigError("host info is required")

        self.config = config
        host_info = config.host_info
        identity_files: List[str] = []

        if config.use_ssh_config:
            try:
                ssh_config = SSHConfig.from_path(config.ssh_config_path)
            except ConfigError as e:
                logger.warning("%s; continuing without SSH config", e)
            else:
                host_info, identity_files = apply_ssh_config(ssh_config, host_info)

        if not host_info.user and config.fallback_user:
            host_info = host_info.replace(user=config.fallback_user)
        if not host_info.user:
            raise ConfigError("user is required")

        self.host_info: HostInfo = host_info

        if resolver is None:
            resolver = CredentialResolver(
                key_path=config.key_path,
                passphrase=config.key_passphrase,
                password=config.password,
                identity_files=identity_files,
            )
        self._plan: CredentialPlan = resolver.resolve()

        if trust_store is None:
            trust_store = KnownHostsStore(
                config.known_hosts_path, strict=config.strict_host_key_checking
            )
        self.trust_store = trust_store

        self._transport: Optional[paramiko.Transport] = None
        self._connected = False
        self._closed = False
        self._cwd = ""
        self._previous_cwd = ""

    # --------------------
    # Connection management
    # --------------------
    def connect(self) -> None:
        """
        Establish the session; no-op when already connected.

        Raises:
            ConnectTimeoutError: If the dial or handshake times out
            ConnectionError: On dial or negotiation failure, or after close()
            HostKeyError: If the server's host key is not trusted
            AuthenticationError: If every credential is rejected
        """
        if self._closed:
            raise ConnectionError("client is closed; create a new client to reconnect")
        if self._connected:
            return

        host, port = self.host_info.host, self.host_info.port
        timeout = self.config.timeout
        logger.debug("Connecting to %s (timeout %ss)", self.host_info, timeout)

        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except socket.timeout as e:
            raise ConnectTimeoutError(f"timed out connecting to {host}:{port} after {timeout}s") from e
        except OSError as e:
            raise ConnectionError(f"failed to connect to {host}:{port}: {e}") from e

        transport = paramiko.Transport(sock)
        try:
            self._prefer_recorded_key_types(transport)
            transport.start_client(timeout=timeout)
            server_key = transport.get_remote_server_key()
            status = self._verify_host_key(server_key)
            self._authenticate(transport)
        except SherlockError:
            transport.close()
            raise
        except socket.timeout as e:
            transport.close()
            raise ConnectTimeoutError(f"timed out negotiating with {host}:{port}") from e
        except (paramiko.SSHException, EOFError, OSError) as e:
            transport.close()
            raise ConnectionError(f"SSH negotiation with {host}:{port} failed: {e}") from e

        self._transport = transport
        self._connected = True
        logger.info("Connected to %s", self.host_info)

        self._record_host_key(status, server_key)

    def _prefer_recorded_key_types(self, transport: paramiko.Transport) -> None:
        # A host with several keys must negotiate one we already hold,
        # otherwise its other key reads as CHANGED
        name = known_hosts_name(self.host_info.host, self.host_info.port)
        recorded = self.trust_store.key_types(name)
        if not recorded:
            return
        options = transport.get_security_options()
        offered = list(options.key_types)
        preferred = [t for t in offered if _recorded_key_type(t) in recorded]
        if preferred:
            options.key_types = preferred + [t for t in offered if t not in preferred]
            logger.debug("Preferring host key types %s for %s", preferred, name)

    def _verify_host_key(self, key: paramiko.PKey) -> HostKeyStatus:
        name = known_hosts_name(self.host_info.host, self.host_info.port)
        status = self.trust_store.check(name, key)
        if not self.trust_store.is_accepted(status):
            if status == HostKeyStatus.CHANGED:
                reason = "the recorded key does not match; possible man-in-the-middle attack"
            elif status == HostKeyStatus.UNKNOWN:
                reason = "host is not in known_hosts and strict checking is enabled"
            else:
                reason = f"known_hosts unavailable at {self.trust_store.path} and strict checking is enabled"
            raise HostKeyError(name, fingerprint(key), reason)
        return status

    def _record_host_key(self, status: HostKeyStatus, key: paramiko.PKey) -> None:
        # A missing file is seeded by the first accepted key
        if status != HostKeyStatus.UNKNOWN and not (
            status == HostKeyStatus.UNAVAILABLE and self.trust_store.missing
        ):
            return
        name = known_hosts_name(self.host_info.host, self.host_info.port)
        try:
            self.trust_store.record(name, key)
        except OSError as e:
            logger.warning("Could not record host key for %s: %s", name, e)

    def _authenticate(self, transport: paramiko.Transport) -> None:
        user = self.host_info.user
        allowed: Optional[List[str]] = None

        for method in self._plan.auth_methods():
            if allowed is not None and method.name not in allowed:
                logger.debug("Server does not accept %s auth", method.name)
                continue

            if isinstance(method, PublicKeyAuth):
                for signer in method.signers:
                    try:
                        transport.auth_publickey(user, signer)
                    except paramiko.BadAuthenticationType as e:
                        allowed = list(e.allowed_types)
                        break
                    except paramiko.SSHException as e:
                        self._check_auth_session(transport, e)
                        continue
                    if transport.is_authenticated():
                        logger.debug("Authenticated with %s key", signer.get_name())
                        return
            else:
                try:
                    transport.auth_password(user, method.password)
                except paramiko.BadAuthenticationType as e:
                    allowed = list(e.allowed_types)
                    continue
                except paramiko.SSHException as e:
                    self._check_auth_session(transport, e)
                    continue
                if transport.is_authenticated():
                    logger.debug("Authenticated with password")
                    return

        raise AuthenticationError(f"authentication failed for {self.host_info}")

    def _check_auth_session(self, transport: paramiko.Transport, error: paramiko.SSHException) -> None:
        """
        Decide whether a failed auth attempt ends authentication.

        Servers drop the session once too many attempts fail (MaxAuthTries);
        every later attempt then fails with a protocol error.

        Raises:
            AuthenticationError: If the server closed the session
            paramiko.SSHException: If the session is up and the error is
                not a plain rejection
        """
        if not transport.is_active():
            raise AuthenticationError(
                f"authentication failed for {self.host_info}: server closed the session"
            ) from error
        if not isinstance(error, paramiko.AuthenticationException):
            raise error

    def close(self) -> None:
        """Tear down the session and release the agent; safe to call repeatedly"""
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self._plan.close()
        if self._transport is not None:
            transport, self._transport = self._transport, None
            transport.close()
            logger.debug("Disconnected from %s", self.host_info)

    def is_connected(self) -> bool:
        """Check if the session is up; a dead transport marks the client disconnected"""
        if not self._connected:
            return False
        if self._transport is None or not self._transport.is_active():
            logger.debug("Transport to %s is no longer active", self.host_info)
            self._connected = False
            return False
        return True

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def uses_key_auth(self) -> bool:
        """Check if the credential plan includes a public key method"""
        return self._plan.has_public_key

    def host_info_string(self) -> str:
        return self.host_info.identity

    # --------------------
    # Command execution
    # --------------------
    def execute(self, command: str, timeout: Optional[float] = None) -> ExecuteResult:
        """
        Run a command and capture its output.

        A standalone cd updates the tracked directory instead of running
        in isolation. Transport failures and timeouts are reported on
        ExecuteResult.error; a nonzero exit status only sets exit_code.

        Args:
            command: Shell command line
            timeout: Seconds before the command is abandoned (no limit if None)
        """
        if not self.is_connected():
            return ExecuteResult(error=ConnectionError("not connected"))

        target = parse_cd_command(command)
        if target is not None:
            return self._change_directory(target, timeout)

        return self._run(with_cwd(command.strip(), self._cwd), timeout)

    def _change_directory(self, target: str, timeout: Optional[float]) -> ExecuteResult:
        if target == "-":
            if not self._previous_cwd:
                return ExecuteResult(stderr="cd: OLDPWD not set", exit_code=1)
            target = self._previous_cwd

        result = self._run(build_cd_resolve_command(self._cwd, target), timeout)
        if not result.success:
            return result

        new_cwd = result.stdout.strip()
        if new_cwd:
            self._previous_cwd = self._cwd
            self._cwd = new_cwd
            logger.debug("Remote working directory is now %s", new_cwd)
        return ExecuteResult(stdout=new_cwd, stderr=result.stderr, exit_code=0)

    def _run(self, command: str, timeout: Optional[float]) -> ExecuteResult:
        try:
            channel = self._transport.open_session(timeout=self.config.timeout)
        except (paramiko.SSHException, EOFError, OSError) as e:
            self.is_connected()
            return ExecuteResult(error=ConnectionError(f"failed to create session: {e}"))

        out_buf: List[bytes] = []
        err_buf: List[bytes] = []
        try:
            channel.exec_command(with_term(command))
            exit_code = collect_output(channel, out_buf, err_buf, timeout)
        except CommandTimeoutError as e:
            stdout, stderr = split_streams(out_buf, err_buf)
            return ExecuteResult(stdout=stdout, stderr=stderr, exit_code=-1, error=e)
        except ConnectionError as e:
            stdout, stderr = split_streams(out_buf, err_buf)
            self.is_connected()
            return ExecuteResult(stdout=stdout, stderr=stderr, exit_code=-1, error=e)
        except (paramiko.SSHException, EOFError, OSError) as e:
            stdout, stderr = split_streams(out_buf, err_buf)
            self.is_connected()
            return ExecuteResult(
                stdout=stdout, stderr=stderr, exit_code=-1,
                error=ConnectionError(f"command failed: {e}"),
            )
        finally:
            channel.close()

        stdout, stderr = split_streams(out_buf, err_buf)
        return ExecuteResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    def execute_interactive(self, command: str) -> Optional[int]:
        """
        Run a command on a PTY attached to the local terminal.

        Returns:
            Remote exit status (nonzero is returned, not raised)

        Raises:
            ConnectionError: If not connected or the session fails
        """
        if not self.is_connected():
            raise ConnectionError("not connected")

        try:
            channel = self._transport.open_session(timeout=self.config.timeout)
        except (paramiko.SSHException, EOFError, OSError) as e:
            self.is_connected()
            raise ConnectionError(f"failed to create session: {e}") from e

        try:
            return PtySession(channel).run(with_term(with_cwd(command.strip(), self._cwd)))
        except (paramiko.SSHException, EOFError, OSError) as e:
            self.is_connected()
            raise ConnectionError(f"interactive session failed: {e}") from e
        finally:
            channel.close()

    # --------------------
    # Key management
    # --------------------
    def add_public_key_to_authorized_keys(self, public_key_path: str) -> bool:
        """
        Append a local public key to the remote ~/.ssh/authorized_keys.

        Args:
            public_key_path: Local path to the public key file

        Returns:
            True if the key was added, False if it was already present

        Raises:
            FileNotFoundError: If the public key file does not exist
            ConnectionError: If a remote command fails
        """
        if not self.is_connected():
            raise ConnectionError("not connected")

        pub_key_path = Path(public_key_path).expanduser()
        if not pub_key_path.exists():
            raise FileNotFoundError(f"Public key not found: {pub_key_path}")

        pub_key_content = pub_key_path.read_text(encoding="utf-8").strip()
        quoted = shell_escape(pub_key_content)

        check = self._run(f"grep -qxF {quoted} ~/.ssh/authorized_keys 2>/dev/null", None)
        if check.error:
            raise check.error
        if check.exit_code == 0:
            logger.debug("Public key already authorized on %s", self.host_info)
            return False

        result = self._run(
            "mkdir -p ~/.ssh && chmod 700 ~/.ssh && "
            f"printf '%s\\n' {quoted} >> ~/.ssh/authorized_keys && "
            "chmod 600 ~/.ssh/authorized_keys",
            None,
        )
        if result.error:
            raise result.error
        if result.exit_code != 0:
            raise ConnectionError(
                f"failed to update authorized_keys (exit {result.exit_code}): {result.stderr.strip()}"
            )
        logger.info("Added public key to %s", self.host_info)
        return True

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> RemoteClient:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
