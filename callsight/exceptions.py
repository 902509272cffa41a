"""
Exception hierarchy for CallSight.

Transient provider failures surface as ProviderError and are retried by
the backoff controller. Everything else is terminal for the current call.
"""

from typing import Any, Dict, List, Optional


INPUT_TOO_LARGE_MESSAGE = (
    "The data is too large to process. "
    "Please try with fewer calls or contact support."
)


class CallSightError(Exception):
    """Base class for all CallSight errors."""


class ProviderError(CallSightError):
    """
    Non-successful response from an LLM provider.

    Attributes:
        status: HTTP status code returned by the provider
        error_data: Parsed error body, if any
        retries_exhausted: Set once the backoff controller gave up retrying
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.error_data = error_data or {}
        self.retries_exhausted = False

    @property
    def error_code(self) -> Optional[str]:
        error = self.error_data.get("error")
        if isinstance(error, dict):
            return error.get("code")
        return None


class InputTooLargeError(CallSightError):
    """The prompt exceeded the model context window."""

    def __init__(self, message: str = INPUT_TOO_LARGE_MESSAGE):
        super().__init__(message)


class MalformedResponseError(CallSightError):
    """The provider answered but no usable JSON object could be read."""

    def __init__(self, message: str, raw_excerpt: str = ""):
        super().__init__(message)
        self.raw_excerpt = raw_excerpt


class RateLimitExhaustedError(CallSightError):
    """
    Rate limiting persisted after every retry; the batch is aborted.

    Attributes:
        processed: Calls finished before the abort, fallbacks included
        failed: How many of those ended as uncategorized fallbacks
        results: The finished results, in input order
    """

    def __init__(
        self,
        processed: int,
        total: int,
        reason: str = "",
        results: Optional[List] = None,
        failed: int = 0,
    ):
        self.processed = processed
        self.total = total
        self.failed = failed
        self.results = list(results or [])
        message = f"Rate limit exceeded after retries. Processed {processed}/{total} calls"
        if failed:
            message = f"{message} ({failed} uncategorized)"
        message = f"{message}."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class OperationCancelled(CallSightError):
    """Raised inside the pipeline to unwind after a cancellation request."""
