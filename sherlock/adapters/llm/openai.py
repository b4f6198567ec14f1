"""
OpenAI-compatible chat completions clients
"""
from typing import Any, Dict, Optional

import requests

from ...core.constants import DEFAULT_LLM_TIMEOUT, PROVIDER_DEEPSEEK, PROVIDER_OPENAI
from ...core.exceptions import ModelError
from .base import HTTPModelClient


class OpenAIClient(HTTPModelClient):
    """Client for /chat/completions endpoints"""

    provider = PROVIDER_OPENAI

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str,
        temperature: float = 0.0,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ModelError(f"API key is required for {self.provider}")
        super().__init__(base_url, model, temperature=temperature, timeout=timeout, session=session)
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def generate(self, system_prompt: str, user_text: str) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._messages(system_prompt, user_text),
            "stream": False,
        }
        if self.temperature > 0:
            payload["temperature"] = self.temperature

        data = self._post("/chat/completions", payload)
        try:
            choices = data["choices"]
            if not choices:
                raise ModelError(f"{self.provider} returned no choices")
            return choices[0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ModelError(f"{self.provider} response missing message content: {e}") from e


class DeepSeekClient(OpenAIClient):
    """DeepSeek speaks the OpenAI wire format"""

    provider = PROVIDER_DEEPSEEK
