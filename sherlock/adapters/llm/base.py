"""
Shared HTTP plumbing for model clients
"""
from typing import Any, Dict, Optional

import requests

from ...core.constants import DEFAULT_LLM_TIMEOUT
from ...core.exceptions import ModelError
from ...core.interfaces import ModelClient
from ...core.logging import get_logger

logger = get_logger(__name__)


class HTTPModelClient(ModelClient):
    """Model client speaking JSON over HTTP"""

    provider = ""

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.0,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload and decode the JSON reply.

        Raises:
            ModelError: On transport failure, non-200 status or invalid JSON
        """
        url = f"{self.base_url}{path}"
        logger.debug("POST %s (model %s)", url, self.model)
        try:
            response = self.session.post(url, headers=self._headers(), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise ModelError(f"{self.provider} request failed: {e}") from e

        if response.status_code != 200:
            raise ModelError(
                f"{self.provider} returned unexpected status code {response.status_code}: "
                f"{response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ModelError(f"{self.provider} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ModelError(f"{self.provider} returned an unexpected response")
        return data

    @staticmethod
    def _messages(system_prompt: str, user_text: str) -> list:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ]

    def close(self) -> None:
        self.session.close()
