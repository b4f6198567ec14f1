"""
Unified exception definitions
"""


class SherlockError(Exception):
    """Base exception class"""
    pass


class ConfigError(SherlockError):
    """Configuration error (detected before any network I/O)"""
    pass


class NoCredentialsError(ConfigError):
    """No authentication method could be assembled for a connect attempt"""
    pass


class ConnectionError(SherlockError):
    """Connection error"""
    pass


class ConnectTimeoutError(ConnectionError):
    """Dial did not complete within the connection timeout"""
    pass


class AuthenticationError(ConnectionError):
    """All offered credentials were rejected by the remote side"""
    pass


class HostKeyError(ConnectionError):
    """Server host key rejected by the trust store"""

    def __init__(self, hostname: str, fingerprint: str, reason: str):
        self.hostname = hostname
        self.fingerprint = fingerprint
        self.reason = reason
        super().__init__(
            f"Host key verification failed for {hostname} ({fingerprint}): {reason}"
        )


class CommandTimeoutError(SherlockError):
    """Command execution exceeded the caller-supplied timeout"""
    pass


class AgentError(SherlockError):
    """Natural-language request could not be parsed"""
    pass


class ModelError(SherlockError):
    """Language model request or response error"""
    pass
