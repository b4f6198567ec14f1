"""
Rule-based input classification

Static lookup tables and pattern matchers that short-circuit the
language model for input that can be handled directly.
"""
import ipaddress
import json
import re
from typing import Any, Dict, FrozenSet, Iterable, Optional

from ...core.constants import DEFAULT_SSH_PORT
from ...core.exceptions import AgentError
from .models import ConnectionInfo

# Built once at import; never mutated
COMMON_SHELL_COMMANDS: FrozenSet[str] = frozenset({
    # File and directory operations
    "ls", "cd", "pwd", "mkdir", "rmdir", "rm", "cp", "mv",
    "touch", "cat", "head", "tail", "less", "more", "find", "locate", "tree",
    "ln", "file", "stat", "du", "df", "mount", "umount",
    # Text processing
    "grep", "awk", "sed", "cut", "sort", "uniq", "wc", "tr", "diff", "comm",
    "xargs", "tee",
    # System information
    "uname", "hostname", "uptime", "date", "cal", "who", "w", "id", "whoami",
    "last", "lastlog", "free", "top", "htop", "vmstat", "iostat", "sar",
    "lscpu", "lsmem", "lsblk", "lspci", "lsusb", "dmesg", "journalctl",
    # Process management
    "ps", "kill", "killall", "pkill", "pgrep", "nice", "renice", "nohup",
    "jobs", "bg", "fg", "disown",
    # Network
    "ping", "traceroute", "tracepath", "netstat", "ss", "ip", "ifconfig",
    "route", "arp", "dig", "nslookup", "host", "wget", "curl", "nc", "telnet",
    "ssh", "scp", "rsync", "ftp", "sftp", "iptables", "nft", "firewall-cmd",
    # Package management
    "apt", "apt-get", "dpkg", "yum", "dnf", "rpm", "pacman", "zypper", "brew",
    "pip", "pip3", "npm", "yarn", "gem", "cargo", "go",
    # Service management
    "systemctl", "service", "chkconfig", "update-rc.d",
    # Users and permissions
    "useradd", "userdel", "usermod", "groupadd", "groupdel", "groupmod",
    "passwd", "chown", "chmod", "chgrp", "sudo", "su",
    # Archives
    "tar", "gzip", "gunzip", "zip", "unzip", "bzip2", "xz", "7z",
    # Disks and filesystems
    "fdisk", "parted", "mkfs", "fsck", "dd", "sync",
    # Environment
    "env", "export", "set", "unset", "source", "alias", "unalias", "echo",
    "printf", "read", "test",
    # Editors
    "vi", "vim", "nano", "emacs", "ed",
    # Other utilities
    "man", "info", "which", "whereis", "type", "clear",
    "reset", "shutdown", "reboot", "halt", "poweroff",
    "sleep", "watch", "timeout", "time", "seq", "yes", "true", "false",
    # Containers
    "docker", "docker-compose", "podman", "kubectl", "crictl",
    # Version control
    "git", "svn", "hg",
})

DANGEROUS_COMMANDS: FrozenSet[str] = frozenset({
    "rm", "rmdir", "mv", "dd",
    "chmod", "chown", "chgrp",
    "shutdown", "reboot", "halt", "poweroff",
    "systemctl", "service",
    "sudo", "su",
    "fdisk", "parted", "mkfs", "fsck",
    "apt", "apt-get", "dpkg", "yum", "dnf", "rpm", "pacman", "zypper",
    "iptables", "nft", "firewall-cmd",
    "useradd", "userdel", "usermod", "groupadd", "groupdel", "groupmod", "passwd",
})

# Programs that need a terminal: editors, pagers, monitors, REPLs
INTERACTIVE_COMMANDS: FrozenSet[str] = frozenset({
    "vi", "vim", "nvim", "nano", "emacs",
    "less", "more", "man",
    "top", "htop", "btop", "watch",
    "tmux", "screen",
    "ssh", "telnet", "ftp", "sftp",
    "mysql", "psql", "redis-cli", "mongo", "sqlite3",
    "python", "python3", "ipython", "node", "irb",
    "bash", "sh", "zsh", "su", "passwd",
})

CONNECTION_KEYWORDS = ("connect", "ssh", "login", "log in", "连接", "登录", "登陆")
HISTORY_KEYWORDS = (
    "history", "历史", "登录记录", "login history", "connection history",
    "show history", "list history", "查看历史", "显示历史",
)
HOSTS_KEYWORDS = (
    "hosts", "主机", "服务器", "saved hosts", "show hosts", "list hosts",
    "查看主机", "显示主机", "all hosts",
)
HISTORY_SEARCH_PREFIXES = ("search for ", "find ", "query ", "look for ", "搜索", "查找")

_USER_HOST_PORT_RE = re.compile(r"([a-zA-Z0-9_-]+)@([a-zA-Z0-9.-]+):(\d+)")
_USER_HOST_RE = re.compile(r"([a-zA-Z0-9_-]+)@([a-zA-Z0-9.-]+)")
# No \b: CJK characters count as word characters in Python regexes
_IPV4_RE = re.compile(r"(?<![\d.])(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})(?![\d.])")
_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


# ============================================================
# Command Classification
# ============================================================

def command_name(text: str) -> str:
    """First word of a command line, lowercased ("" if empty)"""
    parts = text.split()
    return parts[0].lower() if parts else ""


def is_shell_command(text: str, custom_commands: Iterable[str] = ()) -> bool:
    """
    Check if input looks like a shell command to run verbatim.

    True for known command names, names in custom_commands, and paths
    ("/usr/bin/ls", "./script.sh", "../run").
    """
    text = text.strip()
    name = command_name(text)
    if not name:
        return False
    if name in custom_commands or name in COMMON_SHELL_COMMANDS:
        return True
    return text.startswith(("/", "./", "../"))


def is_dangerous_command(text: str) -> bool:
    """Check if a command should require confirmation"""
    return command_name(text) in DANGEROUS_COMMANDS


def is_interactive_command(text: str) -> bool:
    """Check if a command needs to be attached to a terminal"""
    return command_name(text) in INTERACTIVE_COMMANDS


# ============================================================
# Request Classification
# ============================================================

def _valid_ipv4(candidate: str) -> bool:
    try:
        ipaddress.IPv4Address(candidate)
    except ValueError:
        return False
    return True


def contains_valid_ip(text: str) -> bool:
    """Check if text contains a valid IPv4 address"""
    return any(_valid_ipv4(m) for m in _IPV4_RE.findall(text))


def _contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    lower = text.lower()
    return any(kw in lower for kw in keywords)


def is_connection_request(text: str) -> bool:
    """Check if input asks to connect to a host"""
    if _contains_keyword(text, CONNECTION_KEYWORDS):
        return True
    return "@" in text or contains_valid_ip(text)


def is_history_request(text: str) -> bool:
    """Check if input asks for the login history"""
    return _contains_keyword(text, HISTORY_KEYWORDS)


def is_hosts_request(text: str) -> bool:
    """Check if input asks for the saved hosts"""
    return _contains_keyword(text, HOSTS_KEYWORDS)


def extract_history_query(text: str) -> str:
    """
    Pull a search term out of a natural-language history request.

    Examples:
        extract_history_query("search for web01 in history") -> "web01 in history"
        extract_history_query("show my history") -> ""
    """
    lower = text.lower()
    for prefix in HISTORY_SEARCH_PREFIXES:
        idx = lower.find(prefix)
        if idx != -1:
            return text[idx + len(prefix):].strip()
    return ""


# ============================================================
# Parsing
# ============================================================

def parse_connection_direct(text: str) -> Optional[ConnectionInfo]:
    """
    Parse common connection patterns without the language model.

    Patterns, in order: user@host:port, user@host, bare IPv4 address
    (user "root").
    """
    match = _USER_HOST_PORT_RE.search(text)
    if match:
        return ConnectionInfo(host=match.group(2), port=int(match.group(3)), user=match.group(1))

    match = _USER_HOST_RE.search(text)
    if match:
        return ConnectionInfo(host=match.group(2), port=DEFAULT_SSH_PORT, user=match.group(1))

    for candidate in _IPV4_RE.findall(text):
        if _valid_ipv4(candidate):
            return ConnectionInfo(host=candidate, port=DEFAULT_SSH_PORT, user="root")

    return None


def extract_json(content: str) -> str:
    """Pull a JSON object out of a reply wrapped in a code fence or prose"""
    content = content.strip()
    match = _JSON_BLOCK_RE.search(content)
    if match:
        return match.group(1).strip()

    start = content.find("{")
    end = content.rfind("}")
    if start >= 0 and end > start:
        return content[start:end + 1]
    return content


def parse_json_reply(content: str) -> Dict[str, Any]:
    """
    Decode the JSON object in a model reply.

    Raises:
        AgentError: If no JSON object can be decoded
    """
    try:
        data = json.loads(extract_json(content))
    except json.JSONDecodeError as e:
        raise AgentError(f"failed to parse model response: {e}") from e
    if not isinstance(data, dict):
        raise AgentError("failed to parse model response: expected a JSON object")
    return data
