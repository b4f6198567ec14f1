"""
Natural-language request agent

Turns operator input into connection targets and shell commands. Input
that the rule-based classifiers understand never reaches the model.
"""
from typing import Iterable, Optional, Set

from ...core.exceptions import AgentError
from ...core.interfaces import ModelClient
from ...core.logging import get_logger
from .classifier import (
    is_dangerous_command,
    is_shell_command,
    parse_connection_direct,
    parse_json_reply,
)
from .models import CommandInfo, ConnectionInfo

logger = get_logger(__name__)


CONNECTION_SYSTEM_PROMPT = """You are Sherlock, an AI assistant for SSH remote operations.
Your task is to parse natural language requests to connect to remote hosts.
You must support both English and Chinese inputs.

When the user provides connection information, extract:
1. Host: The hostname or IP address
2. Port: The SSH port (default 22 if not specified)
3. User: The username (default "root" if not specified)

Respond in JSON format only:
{
  "host": "hostname or IP",
  "port": 22,
  "user": "username"
}

If you cannot determine the required information, respond with an error:
{
  "error": "description of what's missing"
}

Examples:
- "connect to 192.168.1.100 as root" -> {"host": "192.168.1.100", "port": 22, "user": "root"}
- "ssh user@example.com:2222" -> {"host": "example.com", "port": 2222, "user": "user"}
- "login to server 10.0.0.1 port 2222 as admin" -> {"host": "10.0.0.1", "port": 2222, "user": "admin"}
- "连接192.168.1.100" -> {"host": "192.168.1.100", "port": 22, "user": "root"}
- "连接到192.168.1.100用户admin" -> {"host": "192.168.1.100", "port": 22, "user": "admin"}
- "登录服务器10.0.0.1端口2222用户admin" -> {"host": "10.0.0.1", "port": 2222, "user": "admin"}"""

COMMAND_SYSTEM_PROMPT = """You are Sherlock, an AI assistant for SSH remote operations.
Your task is to translate natural language requests into shell commands.

When the user describes what they want to do, generate the appropriate shell command(s).

Respond in JSON format only:
{
  "commands": ["command1", "command2"],
  "description": "brief description of what these commands do",
  "needs_confirm": false
}

Set "needs_confirm" to true for potentially dangerous operations like:
- Deleting files or directories
- Modifying system configuration
- Stopping/restarting services
- Any command that could cause data loss

Examples:
- "show me disk usage" -> {"commands": ["df -h"], "description": "Display disk space usage in human-readable format", "needs_confirm": false}
- "list files in current directory" -> {"commands": ["ls -la"], "description": "List all files including hidden ones with details", "needs_confirm": false}
- "remove the tmp folder" -> {"commands": ["rm -rf tmp"], "description": "Recursively remove the tmp directory and its contents", "needs_confirm": true}
- "restart nginx service" -> {"commands": ["sudo systemctl restart nginx"], "description": "Restart the nginx service", "needs_confirm": true}"""


class Agent:
    """Parses operator requests, consulting the model only when needed"""

    def __init__(self, model: Optional[ModelClient] = None):
        """
        Args:
            model: Language model backend; without one only directly
                parseable input is understood
        """
        self.model = model
        self._custom_commands: Set[str] = set()

    def set_custom_shell_commands(self, commands: Iterable[str]) -> None:
        """Replace the whitelist of extra command names run without translation"""
        self._custom_commands = {c.strip().lower() for c in commands if c.strip()}

    @property
    def custom_shell_commands(self) -> Set[str]:
        return set(self._custom_commands)

    def is_shell_command(self, text: str) -> bool:
        return is_shell_command(text, self._custom_commands)

    # --------------------
    # Requests
    # --------------------
    def parse_connection_request(self, request: str) -> ConnectionInfo:
        """
        Extract a connection target.

        Raises:
            AgentError: If the request cannot be understood
            ModelError: If the model backend fails
        """
        info = parse_connection_direct(request)
        if info is not None:
            return info

        data = parse_json_reply(self._generate(CONNECTION_SYSTEM_PROMPT, request))
        return ConnectionInfo.from_dict(data)

    def parse_command_request(self, request: str) -> CommandInfo:
        """
        Turn a request into shell commands.

        "$cmd" and recognised shell commands pass through unchanged;
        anything else is translated by the model. A dangerous command
        always requires confirmation, whatever the model says.

        Raises:
            AgentError: If the request cannot be understood
            ModelError: If the model backend fails
        """
        text = request.strip()
        if text.startswith("$"):
            command = text[1:].strip()
            return CommandInfo(commands=[command], description="Direct command execution")

        if self.is_shell_command(text):
            return CommandInfo(
                commands=[text],
                description=f"Execute: {text.split()[0]}",
                needs_confirm=is_dangerous_command(text),
            )

        info = CommandInfo.from_dict(parse_json_reply(self._generate(COMMAND_SYSTEM_PROMPT, text)))
        if not info.commands:
            raise AgentError("model returned no commands")
        if any(is_dangerous_command(c) for c in info.commands):
            info.needs_confirm = True
        return info

    def _generate(self, system_prompt: str, user_text: str) -> str:
        if self.model is None:
            raise AgentError("no language model configured")
        logger.debug("Asking model to parse: %s", user_text)
        return self.model.generate(system_prompt, user_text)

    def close(self) -> None:
        if self.model is not None:
            self.model.close()

