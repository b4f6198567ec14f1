"""
Application settings
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ...core.constants import (
    DEFAULT_DEEPSEEK_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_OLLAMA_BASE_URL,
    DEFAULT_OPENAI_BASE_URL,
    DEFAULT_PROVIDER,
    DEFAULT_SSH_TIMEOUT,
    DEFAULT_TEMPERATURE,
    DETECTED_KEY_NAMES,
    KNOWN_HOSTS_PATH,
    PROVIDER_DEEPSEEK,
    PROVIDER_OLLAMA,
    PROVIDER_OPENAI,
    SUPPORTED_PROVIDERS,
)
from ...core.exceptions import ConfigError
from ...core.utils import get_ssh_dir

DEFAULT_BASE_URLS = {
    PROVIDER_OLLAMA: DEFAULT_OLLAMA_BASE_URL,
    PROVIDER_OPENAI: DEFAULT_OPENAI_BASE_URL,
    PROVIDER_DEEPSEEK: DEFAULT_DEEPSEEK_BASE_URL,
}

DEFAULT_SHELL_WHITELIST = ["kubectl", "helm"]


def detect_ssh_keys(ssh_dir: Optional[Path] = None) -> Optional[Tuple[str, str]]:
    """
    Find the operator's key pair.

    Returns:
        (private_key_path, public_key_path) for the first of id_ed25519,
        id_rsa with both halves present, else None
    """
    ssh_dir = ssh_dir or get_ssh_dir()
    for name in DETECTED_KEY_NAMES:
        private_key = ssh_dir / name
        public_key = ssh_dir / f"{name}.pub"
        if private_key.is_file() and public_key.is_file():
            return str(private_key), str(public_key)
    return None


@dataclass
class LLMConfig:
    """Language model backend settings"""
    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_OLLAMA_BASE_URL
    api_key: str = field(default="", repr=False)
    temperature: float = DEFAULT_TEMPERATURE

    def effective_base_url(self) -> str:
        """Configured base URL, else the provider's default"""
        return (self.base_url or DEFAULT_BASE_URLS.get(self.provider, "")).rstrip("/")


@dataclass
class SSHKeyConfig:
    """Operator key pair used for key auth and pushed after password logins"""
    private_key_path: str = ""
    public_key_path: str = ""
    auto_add_to_remote: bool = True


@dataclass
class SSHSettings:
    """Session transport settings"""
    timeout: float = DEFAULT_SSH_TIMEOUT
    strict_host_key_checking: bool = False
    use_ssh_config: bool = True
    known_hosts_path: str = KNOWN_HOSTS_PATH


@dataclass
class ShellCommandsConfig:
    """Extra command names run without translation"""
    whitelist: List[str] = field(default_factory=lambda: list(DEFAULT_SHELL_WHITELIST))


@dataclass
class AppConfig:
    """Complete application configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    ssh_key: SSHKeyConfig = field(default_factory=SSHKeyConfig)
    ssh: SSHSettings = field(default_factory=SSHSettings)
    shell_commands: ShellCommandsConfig = field(default_factory=ShellCommandsConfig)

    @classmethod
    def default(cls) -> "AppConfig":
        """Defaults with the detected key pair filled in"""
        config = cls()
        config.fill_detected_keys()
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """
        Build from a merged configuration dictionary.

        Missing sections and keys take their defaults.

        Raises:
            ConfigError: If a section is not a table or a value has the wrong type
        """
        llm = _section(data, "llm")
        ssh_key = _section(data, "ssh_key")
        ssh = _section(data, "ssh")
        shell_commands = _section(data, "shell_commands")

        try:
            config = cls(
                llm=LLMConfig(
                    provider=str(llm.get("provider", DEFAULT_PROVIDER)).lower(),
                    model=str(llm.get("model", DEFAULT_MODEL)),
                    base_url=str(llm.get("base_url", "")),
                    api_key=str(llm.get("api_key", "")),
                    temperature=float(llm.get("temperature", DEFAULT_TEMPERATURE)),
                ),
                ssh_key=SSHKeyConfig(
                    private_key_path=str(ssh_key.get("private_key_path", "")),
                    public_key_path=str(ssh_key.get("public_key_path", "")),
                    auto_add_to_remote=bool(ssh_key.get("auto_add_to_remote", True)),
                ),
                ssh=SSHSettings(
                    timeout=float(ssh.get("timeout", DEFAULT_SSH_TIMEOUT)),
                    strict_host_key_checking=bool(ssh.get("strict_host_key_checking", False)),
                    use_ssh_config=bool(ssh.get("use_ssh_config", True)),
                    known_hosts_path=str(ssh.get("known_hosts_path", KNOWN_HOSTS_PATH)),
                ),
                shell_commands=ShellCommandsConfig(
                    whitelist=[str(c) for c in shell_commands.get("whitelist", DEFAULT_SHELL_WHITELIST)],
                ),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        if not config.llm.base_url:
            config.llm.base_url = DEFAULT_BASE_URLS.get(config.llm.provider, "")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a TOML-serializable dictionary"""
        return {
            "llm": {
                "provider": self.llm.provider,
                "model": self.llm.model,
                "base_url": self.llm.base_url,
                "api_key": self.llm.api_key,
                "temperature": self.llm.temperature,
            },
            "ssh_key": {
                "private_key_path": self.ssh_key.private_key_path,
                "public_key_path": self.ssh_key.public_key_path,
                "auto_add_to_remote": self.ssh_key.auto_add_to_remote,
            },
            "ssh": {
                "timeout": self.ssh.timeout,
                "strict_host_key_checking": self.ssh.strict_host_key_checking,
                "use_ssh_config": self.ssh.use_ssh_config,
                "known_hosts_path": self.ssh.known_hosts_path,
            },
            "shell_commands": {
                "whitelist": list(self.shell_commands.whitelist),
            },
        }

    def fill_detected_keys(self, ssh_dir: Optional[Path] = None) -> bool:
        """
        Fill empty key paths from the detected key pair.

        Returns:
            True if both key paths are set afterwards
        """
        if not self.ssh_key.private_key_path or not self.ssh_key.public_key_path:
            pair = detect_ssh_keys(ssh_dir)
            if pair:
                self.ssh_key.private_key_path, self.ssh_key.public_key_path = pair
        return bool(self.ssh_key.private_key_path and self.ssh_key.public_key_path)

    def validate(self) -> None:
        """
        Check the configuration is usable.

        Raises:
            ConfigError: On the first problem found
        """
        llm = self.llm
        if not llm.provider:
            raise ConfigError("LLM provider is required")
        if not llm.model:
            raise ConfigError("LLM model is required")
        if llm.provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"Unsupported LLM provider: {llm.provider} (valid: {', '.join(SUPPORTED_PROVIDERS)})"
            )
        if llm.provider in (PROVIDER_OPENAI, PROVIDER_DEEPSEEK) and not llm.api_key:
            raise ConfigError(f"API key is required for provider {llm.provider}")
        if llm.provider == PROVIDER_OLLAMA and not llm.base_url:
            raise ConfigError("Base URL is required for Ollama provider")
        if self.ssh.timeout <= 0:
            raise ConfigError(f"SSH timeout must be positive: {self.ssh.timeout}")


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Configuration section [{name}] must be a table")
    return value
