"""
Ollama chat client (/api/chat)
"""
from typing import Any, Dict

from ...core.constants import PROVIDER_OLLAMA
from ...core.exceptions import ModelError
from .base import HTTPModelClient


class OllamaClient(HTTPModelClient):
    """Non-streaming client for a local or remote Ollama server"""

    provider = PROVIDER_OLLAMA

    def generate(self, system_prompt: str, user_text: str) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._messages(system_prompt, user_text),
            "stream": False,
        }
        if self.temperature > 0:
            payload["options"] = {"temperature": self.temperature}

        data = self._post("/api/chat", payload)
        try:
            return data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ModelError(f"ollama response missing message content: {e}") from e
