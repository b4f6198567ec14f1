"""
SSH config file parser and host alias resolution.

Reads ~/.ssh/config style files into a pattern table and resolves
connection targets against it: exact pattern first, then the most
specific matching wildcard.
"""
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ...core.constants import DEFAULT_SSH_PORT, SSH_CONFIG_PATH
from ...core.exceptions import ConfigError
from ...core.logging import get_logger
from .models import AliasRule, HostInfo

logger = get_logger(__name__)

# "Key value" or "Key=value"
_DIRECTIVE_RE = re.compile(r"^(\S+?)(?:\s*=\s*|\s+)(.*)$")


def pattern_specificity(pattern: str) -> int:
    """
    Score how specific a host pattern is; higher is more specific.

    "*" scores 0, anything else counts its non-wildcard characters.
    """
    if pattern == "*":
        return 0
    return len(pattern) - pattern.count("*")


def match_host_pattern(pattern: str, host: str) -> bool:
    """
    Check if host matches pattern.

    Supports "*" (everything), "*suffix", "prefix*" and literal patterns.
    """
    if pattern == "*":
        return True
    if pattern.startswith("*"):
        return host.endswith(pattern[1:])
    if pattern.endswith("*"):
        return host.startswith(pattern[:-1])
    return pattern == host


class SSHConfig:
    """Parsed SSH config: host pattern -> AliasRule"""

    def __init__(self, rules: Optional[Dict[str, AliasRule]] = None):
        # Insertion order is file order; ties between equally specific
        # wildcards go to the pattern declared first.
        self.rules: Dict[str, AliasRule] = dict(rules or {})

    @classmethod
    def load(cls) -> "SSHConfig":
        """Parse the user's ~/.ssh/config"""
        return cls.from_path(SSH_CONFIG_PATH)

    @classmethod
    def from_path(cls, path: str) -> "SSHConfig":
        """
        Parse an SSH config file.

        A missing file yields an empty table.

        Raises:
            ConfigError: If the file exists but cannot be read
        """
        config_path = Path(path).expanduser()
        try:
            content = config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("SSH config not found: %s", config_path)
            return cls()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read SSH config {config_path}: {e}") from e

        config = cls.from_string(content)
        logger.debug("Parsed %d host patterns from %s", len(config.rules), config_path)
        return config

    @classmethod
    def from_string(cls, content: str) -> "SSHConfig":
        """Parse SSH config text"""
        rules: Dict[str, AliasRule] = {}
        current: List[AliasRule] = []

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            match = _DIRECTIVE_RE.match(line)
            if not match:
                continue
            key = match.group(1).lower()
            value = match.group(2).strip()
            if not value:
                continue

            if key == "host":
                current = []
                for pattern in value.split():
                    rule = AliasRule(alias=pattern)
                    rules[pattern] = rule
                    current.append(rule)
                continue

            # Directives before the first Host line are ignored
            for rule in current:
                _apply_directive(rule, key, value)

        return cls(rules)

    def get_host(self, host: str) -> Optional[AliasRule]:
        """
        Find the rule for host.

        Exact pattern match wins; otherwise the matching wildcard with
        the highest specificity.
        """
        if host in self.rules:
            return self.rules[host]

        best: Optional[AliasRule] = None
        best_score = -1
        for pattern, rule in self.rules.items():
            if not match_host_pattern(pattern, host):
                continue
            score = pattern_specificity(pattern)
            if score > best_score:
                best = rule
                best_score = score
        return best

    def __len__(self) -> int:
        return len(self.rules)


def _apply_directive(rule: AliasRule, key: str, value: str) -> None:
    if key == "hostname":
        rule.hostname = value
    elif key == "port":
        try:
            rule.port = int(value)
        except ValueError:
            logger.warning("Ignoring invalid port %r for host %s", value, rule.alias)
    elif key == "user":
        rule.user = value
    elif key == "identityfile":
        rule.identity_files.append(os.path.expanduser(value.strip('"')))


def apply_ssh_config(config: SSHConfig, host_info: HostInfo) -> Tuple[HostInfo, List[str]]:
    """
    Resolve host_info against the alias table.

    Hostname is always taken from the alias when it defines one. Port and
    user are taken only when the caller left them at their defaults
    (port 22, empty user): explicit values win over the file.

    Returns:
        (effective HostInfo, identity files contributed by the alias)
    """
    rule = config.get_host(host_info.host)
    if rule is None:
        return host_info, []

    changes = {}
    if rule.hostname:
        changes["host"] = rule.hostname
    if host_info.port == DEFAULT_SSH_PORT and rule.port != DEFAULT_SSH_PORT:
        changes["port"] = rule.port
    if not host_info.user and rule.user:
        changes["user"] = rule.user

    if changes:
        logger.debug("SSH config %r rewrites %s: %s", rule.alias, host_info.host, changes)
    return host_info.replace(**changes), list(rule.identity_files)
