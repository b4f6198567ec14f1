"""Tests for configuration loading, validation and persistence."""

import stat
import tomllib
from pathlib import Path

import pytest

from sherlock.adapters.config.loader import ConfigLoader, save_config
from sherlock.adapters.config.settings import AppConfig, detect_ssh_keys
from sherlock.core.constants import DEFAULT_DEEPSEEK_BASE_URL, DEFAULT_OLLAMA_BASE_URL
from sherlock.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, fake_home: Path) -> None:
    for key in ConfigLoader.ENV_MAPPINGS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_are_valid() -> None:
    """The default configuration validates."""
    config = AppConfig()
    config.validate()
    assert config.llm.provider == "ollama"
    assert config.ssh.strict_host_key_checking is False
    assert config.shell_commands.whitelist == ["kubectl", "helm"]


def test_from_dict_normalizes() -> None:
    """Provider is lowercased and an empty base URL takes the provider default."""
    config = AppConfig.from_dict({"llm": {"provider": "DeepSeek", "api_key": "k", "base_url": ""}})
    assert config.llm.provider == "deepseek"
    assert config.llm.base_url == DEFAULT_DEEPSEEK_BASE_URL


def test_from_dict_rejects_bad_values() -> None:
    """Wrong types and non-table sections are configuration errors."""
    with pytest.raises(ConfigError):
        AppConfig.from_dict({"ssh": {"timeout": "soon"}})
    with pytest.raises(ConfigError):
        AppConfig.from_dict({"llm": "ollama"})


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"llm": {"provider": "mystery"}}, "Unsupported LLM provider"),
        ({"llm": {"provider": "openai"}}, "API key is required"),
        ({"llm": {"model": ""}}, "model is required"),
        ({"ssh": {"timeout": 0}}, "timeout must be positive"),
    ],
)
def test_validate_errors(data: dict, message: str) -> None:
    """validate() reports the first problem."""
    with pytest.raises(ConfigError, match=message):
        AppConfig.from_dict(data).validate()


def test_to_dict_round_trips() -> None:
    """to_dict() feeds back into from_dict()."""
    config = AppConfig.from_dict({"llm": {"model": "llama3"}, "ssh": {"timeout": 12}})
    assert AppConfig.from_dict(config.to_dict()) == config


def test_detect_ssh_keys(tmp_path: Path) -> None:
    """ed25519 is preferred and both halves must exist."""
    assert detect_ssh_keys(tmp_path) is None

    (tmp_path / "id_rsa").write_text("k")
    (tmp_path / "id_rsa.pub").write_text("k")
    (tmp_path / "id_ed25519").write_text("k")
    assert detect_ssh_keys(tmp_path) == (str(tmp_path / "id_rsa"), str(tmp_path / "id_rsa.pub"))

    (tmp_path / "id_ed25519.pub").write_text("k")
    assert detect_ssh_keys(tmp_path) == (str(tmp_path / "id_ed25519"), str(tmp_path / "id_ed25519.pub"))


def test_fill_detected_keys_keeps_explicit_paths(tmp_path: Path) -> None:
    """Explicit key paths are never replaced."""
    (tmp_path / "id_rsa").write_text("k")
    (tmp_path / "id_rsa.pub").write_text("k")
    config = AppConfig.from_dict({"ssh_key": {"private_key_path": "/a", "public_key_path": "/a.pub"}})

    assert config.fill_detected_keys(tmp_path)
    assert config.ssh_key.private_key_path == "/a"


def test_load_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables are typed except for string keys."""
    monkeypatch.setenv("SHERLOCK_MODEL", "123")
    monkeypatch.setenv("SHERLOCK_SSH_TIMEOUT", "15")
    monkeypatch.setenv("SHERLOCK_STRICT_HOST_KEY_CHECKING", "yes")
    monkeypatch.setenv("SHERLOCK_TEMPERATURE", "0.2")

    env = ConfigLoader().load_env()

    assert env["llm"] == {"model": "123", "temperature": 0.2}
    assert env["ssh"] == {"timeout": 15, "strict_host_key_checking": True}


def test_load_priority(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """CLI beats env beats file beats defaults."""
    path = tmp_path / "config.toml"
    path.write_text(
        '[llm]\nmodel = "from-file"\nbase_url = "http://file:11434"\ntemperature = 0.1\n'
        "[ssh]\ntimeout = 10\n"
    )
    monkeypatch.setenv("SHERLOCK_MODEL", "from-env")
    monkeypatch.setenv("SHERLOCK_BASE_URL", "http://env:11434")

    config = ConfigLoader().load(path, cli_overrides={"llm": {"model": "from-cli"}})

    assert config.llm.model == "from-cli"
    assert config.llm.base_url == "http://env:11434"
    assert config.llm.temperature == 0.1
    assert config.ssh.timeout == 10
    assert config.ssh.use_ssh_config is True


def test_load_writes_default_file(tmp_path: Path) -> None:
    """A missing file is created with defaults and private permissions."""
    path = tmp_path / "conf" / "config.toml"

    config = ConfigLoader().load(path)

    assert path.exists()
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert config.llm.base_url == DEFAULT_OLLAMA_BASE_URL
    written = tomllib.loads(path.read_text())
    assert written["llm"]["provider"] == "ollama"


def test_load_without_create(tmp_path: Path) -> None:
    """create_missing=False leaves the filesystem alone."""
    path = tmp_path / "config.toml"
    ConfigLoader().load(path, create_missing=False)
    assert not path.exists()


def test_load_invalid_toml(tmp_path: Path) -> None:
    """Unparseable files are configuration errors."""
    path = tmp_path / "config.toml"
    path.write_text("[llm\nmodel = ")
    with pytest.raises(ConfigError, match="Failed to parse"):
        ConfigLoader().load(path)


def test_save_config_round_trip(tmp_path: Path) -> None:
    """Saved files load back to the same configuration."""
    config = AppConfig.from_dict({"llm": {"provider": "openai", "api_key": "sk-test", "model": "gpt-4o"}})
    path = save_config(config, tmp_path / "out.toml")

    loaded = ConfigLoader().load(path, use_env=False)

    assert loaded.llm == config.llm
