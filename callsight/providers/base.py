"""
Base provider interface for call classification.

Concrete providers only implement the transport (`generate`); prompt
construction and response parsing are shared here so both variants turn
a WorkItem into an EnrichmentResult the same way.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..core.models import EnrichmentResult, WorkItem
from ..core.parsing import parse_enrichment
from ..core.prompts import CLASSIFY_SYSTEM_MESSAGE, build_classification_prompt
from ..exceptions import ProviderError


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses translate (prompt, system message) into one provider request
    and return the generated text, raising ProviderError on any
    non-successful HTTP status.
    """

    @abstractmethod
    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        """
        Send one prompt to the provider.

        Args:
            prompt: User prompt text
            system_message: Optional system instruction

        Returns:
            Generated text

        Raises:
            ProviderError: provider answered with an error status
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check if the provider service is available.
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Return provider identifier for logging.
        """
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        pass

    def describe(self) -> str:
        return f"{self.get_name()}/{self.model}"

    def classify(
        self,
        transcript: str,
        call_reason: Optional[str] = None,
        issues_discussed: Optional[str] = None,
    ) -> EnrichmentResult:
        """
        Categorize one call transcript.

        Raises:
            ProviderError: transport-level failure (retryable by class)
            MalformedResponseError: answer contained no usable JSON
        """
        item = WorkItem(transcript, call_reason, issues_discussed)
        text = self.generate(build_classification_prompt(item), CLASSIFY_SYSTEM_MESSAGE)
        return parse_enrichment(text, self.get_name())

    def classify_item(self, item: WorkItem) -> EnrichmentResult:
        return self.classify(item.transcript, item.call_reason, item.issues_discussed)


def raise_for_provider_status(response: requests.Response) -> None:
    """Convert an error response into a ProviderError carrying status and body."""
    if response.ok:
        return

    error_data: Dict[str, Any] = {}
    try:
        body = response.json()
        if isinstance(body, dict):
            error_data = body
    except ValueError:
        pass

    message = None
    error = error_data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
    elif isinstance(error, str):
        message = error
    if not message:
        message = f"HTTP {response.status_code}: {response.reason}"

    raise ProviderError(message, status=response.status_code, error_data=error_data)
