"""
Retry with exponential backoff for provider calls.

Each failure is classified by HTTP status. Rate limiting, overload and
server errors are retried with their own delay schedule:

    delay(n) = min(base * 2**n, cap)        n = 0, 1, 2, ...

Context-length failures are rewritten into a user-facing error and
everything else propagates immediately.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, TypeVar

from .cancellation import CancellationToken
from .events import EventSink, NullSink
from .models import Severity
from ..exceptions import InputTooLargeError, OperationCancelled, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5


class ErrorClass(Enum):
    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    SERVER_ERROR = "server_error"
    INPUT_TOO_LARGE = "input_too_large"
    OTHER = "other"


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay schedule for one retryable error class (seconds)."""
    base_delay: float
    max_delay: float
    label: str

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)


POLICIES: Dict[ErrorClass, BackoffPolicy] = {
    ErrorClass.RATE_LIMITED: BackoffPolicy(5.0, 90.0, "Rate limit hit"),
    ErrorClass.OVERLOADED: BackoffPolicy(10.0, 180.0, "Service overloaded (503)"),
    ErrorClass.SERVER_ERROR: BackoffPolicy(15.0, 120.0, "Server error"),
}


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status", None)
    if status is None:
        # requests.HTTPError keeps the status on the response
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def classify_error(error: BaseException) -> ErrorClass:
    """Map an exception from a provider call to its backoff class."""
    status = _status_of(error)
    if status is None:
        return ErrorClass.OTHER
    if status == 429:
        return ErrorClass.RATE_LIMITED
    if status == 503:
        return ErrorClass.OVERLOADED
    if 500 <= status < 600:
        return ErrorClass.SERVER_ERROR
    if status == 400:
        code = getattr(error, "error_code", None)
        message = str(error).lower()
        if code == "context_length_exceeded" or "length" in message or "context" in message:
            return ErrorClass.INPUT_TOO_LARGE
    return ErrorClass.OTHER


class BackoffController:
    """
    Runs an operation, retrying transient provider failures.

    Usage:
        backoff = BackoffController(sink=sink, token=token)
        result = backoff.call(lambda: provider.classify(item))

    Attempts are counted from 0; with max_retries=5 the operation is tried
    at most 6 times. Once retries are exhausted the last error propagates
    with `retries_exhausted` set when it is a ProviderError.
    """

    def __init__(
        self,
        sink: Optional[EventSink] = None,
        token: Optional[CancellationToken] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        policies: Optional[Dict[ErrorClass, BackoffPolicy]] = None,
    ):
        self.sink = sink or NullSink()
        self.token = token or CancellationToken()
        self.max_retries = max_retries
        self.policies = policies or POLICIES

    def call(self, operation: Callable[[], T]) -> T:
        attempt = 0
        while True:
            self.token.raise_if_cancelled()
            try:
                result = operation()
            except OperationCancelled:
                raise
            except Exception as e:
                # a failure that lands after cancel is dropped, not retried or reported
                self.token.raise_if_cancelled()
                delay = self._handle_failure(e, attempt)
            else:
                self.token.raise_if_cancelled()
                return result

            if not self.token.sleep(delay):
                raise OperationCancelled("Cancelled during backoff")
            attempt += 1

    def _handle_failure(self, error: Exception, attempt: int) -> float:
        """Return the delay before the next attempt, or raise."""
        error_class = classify_error(error)

        if error_class is ErrorClass.INPUT_TOO_LARGE:
            message = "Context length exceeded. Prompt is too long for the model."
            logger.error(message)
            self.sink.emit(message, Severity.ERROR)
            raise InputTooLargeError() from error

        policy = self.policies.get(error_class)
        if policy is None:
            raise error

        if attempt >= self.max_retries:
            logger.error(
                f"Giving up after {attempt + 1} attempts ({error_class.value}): {error}"
            )
            if isinstance(error, ProviderError):
                error.retries_exhausted = True
            raise error

        delay = policy.delay_for(attempt)
        label = policy.label
        if error_class is ErrorClass.SERVER_ERROR:
            label = f"Server error ({_status_of(error)})"
        message = (
            f"{label}. Retrying after {delay:g} seconds... "
            f"(Attempt {attempt + 1}/{self.max_retries})"
        )
        logger.warning(message)
        self.sink.emit(message, Severity.WARNING)
        return delay
