"""
Gemini provider (generateContent).

The classification instructions travel inside the prompt itself, so the
request carries a single user turn and no system instruction.
"""

from typing import Any, Dict, Optional

import requests

from .base import LLMProvider, raise_for_provider_status
from ..utils.logger import logger
from ..utils.secrets import get_api_key

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(LLMProvider):
    """
    Single-prompt provider for Google's generative language API.

    The API key is sent as the `key` query parameter.
    """

    DEFAULT_MODEL = "gemini-2.0-flash"

    def __init__(self, config: Optional[Dict] = None):
        """
        Args:
            config: Provider options:
                - model: default gemini-2.0-flash
                - api_key: falls back to GEMINI_API_KEY, then the keyring
                - base_url, timeout, max_tokens, temperature
        """
        options = config or {}
        self._model = options.get("model") or self.DEFAULT_MODEL
        self.api_key = options.get("api_key") or get_api_key("gemini")
        self.base_url = options.get("base_url", GEMINI_BASE_URL).rstrip("/")
        self.timeout = options.get("timeout", 60)
        self.max_tokens = options.get("max_tokens", 8192)
        self.temperature = options.get("temperature", 0.7)

        if not self.api_key:
            raise ValueError(
                "GEMINI_API_KEY is not set. Export it or store it with "
                "callsight.utils.secrets.set_api_key('gemini', ...)"
            )

    def get_name(self) -> str:
        return "gemini"

    @property
    def model(self) -> str:
        return self._model

    def health_check(self) -> bool:
        """Listing models is the cheapest authenticated call."""
        try:
            response = requests.get(
                f"{self.base_url}/models", params={"key": self.api_key}, timeout=10
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Gemini unreachable: {e}")
            return False

        if response.status_code in (400, 403):
            logger.error("Gemini rejected the API key")
            return False
        # 429 still proves the endpoint and key work
        return response.status_code in (200, 429)

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }

    @staticmethod
    def _candidate_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            logger.error("Gemini returned no candidates")
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        response = requests.post(
            f"{self.base_url}/models/{self._model}:generateContent",
            params={"key": self.api_key},
            json=self._payload(prompt),
            timeout=self.timeout,
        )
        raise_for_provider_status(response)

        data = response.json()
        text = self._candidate_text(data)
        usage = data.get("usageMetadata") or {}
        logger.debug(
            f"Gemini answered {len(text)} chars "
            f"({usage.get('totalTokenCount', 0)} tokens)"
        )
        return text
