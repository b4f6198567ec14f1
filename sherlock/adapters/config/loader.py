"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

import tomli_w

from ...core.constants import CONFIG_DIR_MODE, CONFIG_FILE_MODE, CONFIG_PATH
from ...core.exceptions import ConfigError
from ...core.logging import get_logger
from .settings import AppConfig

logger = get_logger(__name__)


class ConfigLoader:
    """Configuration loader with priority support"""

    ENV_MAPPINGS = {
        "SHERLOCK_PROVIDER": "llm.provider",
        "SHERLOCK_MODEL": "llm.model",
        "SHERLOCK_BASE_URL": "llm.base_url",
        "SHERLOCK_API_KEY": "llm.api_key",
        "SHERLOCK_TEMPERATURE": "llm.temperature",
        "SHERLOCK_PRIVATE_KEY": "ssh_key.private_key_path",
        "SHERLOCK_PUBLIC_KEY": "ssh_key.public_key_path",
        "SHERLOCK_AUTO_ADD_KEY": "ssh_key.auto_add_to_remote",
        "SHERLOCK_SSH_TIMEOUT": "ssh.timeout",
        "SHERLOCK_STRICT_HOST_KEY_CHECKING": "ssh.strict_host_key_checking",
        "SHERLOCK_USE_SSH_CONFIG": "ssh.use_ssh_config",
        "SHERLOCK_KNOWN_HOSTS": "ssh.known_hosts_path",
    }

    # Values that stay strings even when they look like numbers or booleans
    STRING_KEYS = frozenset({
        "llm.provider", "llm.model", "llm.base_url", "llm.api_key",
        "ssh_key.private_key_path", "ssh_key.public_key_path",
        "ssh.known_hosts_path",
    })

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """
        Load TOML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigError: If the file cannot be read or parsed
        """
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            return tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration {path}: {e}") from e

    def load_env(self) -> Dict[str, Any]:
        """Load configuration from SHERLOCK_* environment variables"""
        config: Dict[str, Any] = {}

        for env_key, config_key in self.ENV_MAPPINGS.items():
            value = os.getenv(env_key)
            if not value:
                continue
            section, key = config_key.split(".")
            if config_key not in self.STRING_KEYS:
                value = self._convert_value(value)
            config.setdefault(section, {})[key] = value

        return config

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type"""
        if value.lower() in ("true", "yes", "1"):
            return True
        if value.lower() in ("false", "no", "0"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}

        for config in configs:
            result = self._deep_merge(result, config)

        return result

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
        create_missing: bool = True,
    ) -> AppConfig:
        """
        Load configuration with priority: CLI > env > TOML > defaults

        A missing TOML file is replaced by a freshly written default file.

        Args:
            toml_path: Path to TOML configuration file (default: ~/.config/sherlock/config.toml)
            cli_overrides: CLI parameter overrides, nested by section
            use_env: Whether to load from environment variables
            create_missing: Write the default file when toml_path does not exist

        Returns:
            AppConfig with detected key paths filled in (not yet validated)

        Raises:
            ConfigError: If the file cannot be parsed or holds invalid values
        """
        path = Path(toml_path or CONFIG_PATH).expanduser()
        configs = []

        try:
            configs.append(self.load_toml(path))
        except FileNotFoundError:
            logger.debug("No configuration at %s; using defaults", path)
            if create_missing:
                try:
                    save_config(AppConfig.default(), path)
                except OSError as e:
                    logger.warning("Failed to save default config to %s: %s", path, e)

        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)

        if cli_overrides:
            configs.append(cli_overrides)

        config = AppConfig.from_dict(self.merge_configs(*configs))
        config.fill_detected_keys()
        return config


def save_config(config: AppConfig, path: Path) -> Path:
    """
    Write configuration as TOML.

    The directory is created 0755 and the file 0600 (it may hold an API key).

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path).expanduser()
    path.parent.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)

    content = tomli_w.dumps(config.to_dict())
    fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info("Wrote configuration to %s", path)
    return path
