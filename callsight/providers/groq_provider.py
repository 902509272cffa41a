"""
Groq provider (OpenAI-compatible chat completions).

Sends a system + user message pair and reads the first choice's content.
"""

from typing import Dict, Optional

import requests

from .base import LLMProvider, raise_for_provider_status
from ..utils.logger import logger
from ..utils.secrets import get_api_key


class GroqProvider(LLMProvider):
    """
    Chat-completion provider.

    Works with any OpenAI-compatible endpoint; base_url defaults to Groq.
    """

    DEFAULT_MODEL = "llama-3.3-70b-versatile"

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize chat-completion provider.

        Args:
            config: Provider configuration with:
                - model: Model name (default: llama-3.3-70b-versatile)
                - api_key: API key (or GROQ_API_KEY / keyring)
                - base_url: API base URL
                - timeout: Request timeout in seconds
                - max_tokens: Maximum response tokens
                - temperature: Sampling temperature
        """
        config = config or {}
        self._model = config.get("model") or self.DEFAULT_MODEL
        self.api_key = config.get("api_key") or get_api_key("groq")
        self.base_url = config.get("base_url", "https://api.groq.com/openai/v1")
        self.timeout = config.get("timeout", 60)
        self.max_tokens = config.get("max_tokens", 8192)
        self.temperature = config.get("temperature", 0.7)

        if not self.api_key:
            raise ValueError(
                "GROQ_API_KEY is not set. Please set it in your environment "
                "variables or store it with callsight.utils.secrets.set_api_key('groq', ...)"
            )

    def get_name(self) -> str:
        return "groq"

    @property
    def model(self) -> str:
        return self._model

    def health_check(self) -> bool:
        """
        Check if the API is accessible.
        Uses the models endpoint for a lightweight check.
        """
        try:
            response = requests.get(
                f"{self.base_url}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=10,
            )

            if response.status_code == 401:
                logger.error("Groq API key is invalid")
                return False

            if response.status_code == 429:
                logger.warning("Groq rate limit hit during health check")
                return True  # reachable, just rate limited

            return response.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.warning(f"Groq health check failed: {e}")
            return False

    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        messages = []
        if system_message:
            messages.append({"role": "system", "content": system_message})
        messages.append({"role": "user", "content": prompt})

        response = requests.post(
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self._model,
                "messages": messages,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            },
            timeout=self.timeout,
        )

        if response.status_code == 429:
            logger.warning("Groq rate limit exceeded")
        raise_for_provider_status(response)

        data = response.json()
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""

        tokens_used = (data.get("usage") or {}).get("total_tokens", 0)
        logger.debug(f"Groq response: {len(content)} chars, {tokens_used} tokens")
        return content
