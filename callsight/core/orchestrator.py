"""
Sequential batch classification of call transcripts.

Calls are sent to the provider one at a time, with a fixed pause between
calls to stay under provider throughput limits. A failed call is replaced
by a fallback result so the output stays aligned with the input; only a
rate limit that survives every retry aborts the whole batch.
"""

import logging
import time
from typing import List, Optional, Sequence

from .backoff import BackoffController, ErrorClass, classify_error
from .cancellation import CancellationToken
from .events import EventSink, NullSink
from .models import EnrichmentResult, Severity, WorkItem
from ..exceptions import (
    MalformedResponseError,
    OperationCancelled,
    ProviderError,
    RateLimitExhaustedError,
)
from ..providers.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_PACING_DELAY = 2.5
DEFAULT_ERROR_DELAY = 10.0


def is_fatal(error: Exception) -> bool:
    """A rate limit error that outlived all retries stops the batch."""
    return (
        isinstance(error, ProviderError)
        and error.retries_exhausted
        and classify_error(error) is ErrorClass.RATE_LIMITED
    )


class BatchOrchestrator:
    """
    Drives one provider across an ordered list of work items.

    Features:
    - Strictly sequential dispatch, output[i] belongs to input[i]
    - Per-item fallback result on any non-fatal failure
    - Fixed pacing between calls (longer after a failure)
    - Cooperative cancellation at every wait and around each call

    Usage:
        orchestrator = BatchOrchestrator(provider, sink=sink, token=token)
        results = orchestrator.run(items)
        if token.is_cancelled:
            ...  # results holds only the calls finished before the stop
    """

    def __init__(
        self,
        provider: LLMProvider,
        sink: Optional[EventSink] = None,
        token: Optional[CancellationToken] = None,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        error_delay: float = DEFAULT_ERROR_DELAY,
        max_retries: int = 5,
    ):
        self.provider = provider
        self.sink = sink or NullSink()
        self.token = token or CancellationToken()
        self.pacing_delay = pacing_delay
        self.error_delay = error_delay
        self.backoff = BackoffController(
            sink=self.sink, token=self.token, max_retries=max_retries
        )

    @classmethod
    def from_config(
        cls,
        provider: LLMProvider,
        config,
        sink: Optional[EventSink] = None,
        token: Optional[CancellationToken] = None,
    ) -> "BatchOrchestrator":
        """Build from a utils.config.PipelineConfig."""
        return cls(
            provider,
            sink=sink,
            token=token,
            pacing_delay=config.pacing_delay,
            error_delay=config.error_delay,
            max_retries=config.max_retries,
        )

    def _emit(self, message: str, severity: Severity = Severity.INFO) -> None:
        self.sink.emit(message, severity)

    def _stop(self, done: int, total: int) -> None:
        message = f"Batch cancelled after {done}/{total} calls"
        logger.info(message)
        self._emit(message, Severity.WARNING)

    def run(self, items: Sequence[WorkItem]) -> List[EnrichmentResult]:
        """
        Classify every item in order.

        Returns:
            One EnrichmentResult per item, or fewer if cancelled

        Raises:
            RateLimitExhaustedError: rate limiting persisted after all retries
        """
        total = len(items)
        results: List[EnrichmentResult] = []
        start_time = time.time()

        self._emit("Starting batch categorization process...")
        self._emit(f"Total calls to process: {total}")
        self._emit(
            f"Estimated time: {total * self.pacing_delay / 60:.1f} minutes (with rate limiting)"
        )

        for i, item in enumerate(items):
            if self.token.is_cancelled:
                self._stop(len(results), total)
                return results

            call_start = time.time()
            self._emit(
                f"Processing call {i + 1}/{total} ({i / total * 100:.1f}%)",
                Severity.PROGRESS,
            )
            self._emit(
                f"Analyzing call transcript ({len(item.transcript)} characters) "
                f"with {self.provider.describe()}..."
            )

            try:
                result = self.backoff.call(lambda: self.provider.classify_item(item))
            except OperationCancelled:
                self._stop(len(results), total)
                return results
            except Exception as e:
                delay = self._handle_item_failure(e, i, total, results)
            else:
                results.append(result)
                delay = self.pacing_delay
                self._report_success(result, i, total, call_start, start_time)

            if i < total - 1:
                if not self.token.sleep(delay):
                    self._stop(len(results), total)
                    return results

        self._report_completion(results, total, start_time)
        return results

    def _report_success(
        self,
        result: EnrichmentResult,
        index: int,
        total: int,
        call_start: float,
        batch_start: float,
    ) -> None:
        self._emit(
            f"Call {index + 1} processed in {time.time() - call_start:.2f}s",
            Severity.SUCCESS,
        )
        self._emit(f"Categories: {', '.join(result.categories)}")
        self._emit(f"Sentiment: {result.sentiment}")

        if index < total - 1:
            done = index + 1
            per_call = (time.time() - batch_start) / done
            remaining = per_call * (total - done) / 60
            self._emit(f"Waiting {self.pacing_delay:g}s before next call...")
            self._emit(f"Progress: {done}/{total} completed")
            self._emit(f"Estimated time remaining: {remaining:.1f} minutes")

    def _handle_item_failure(
        self,
        error: Exception,
        index: int,
        total: int,
        results: List[EnrichmentResult],
    ) -> float:
        """Record a fallback for the failed call; return the pause before the next one."""
        reason = str(error) or type(error).__name__
        logger.warning(f"Failed to process call {index + 1}: {reason}")
        self._emit(f"Error processing call {index + 1}: {reason}", Severity.ERROR)
        if isinstance(error, MalformedResponseError) and error.raw_excerpt:
            self._emit(f"Response: {error.raw_excerpt}", Severity.ERROR)

        if is_fatal(error):
            self._emit("Critical rate limit error. Stopping batch processing.", Severity.ERROR)
            failed = sum(1 for r in results if r.is_fallback)
            self._emit(f"Successfully processed {index - failed} calls before error.")
            raise RateLimitExhaustedError(
                processed=index, total=total, reason=reason, results=results, failed=failed
            ) from error

        self._emit("Using fallback categorization for this call...", Severity.WARNING)
        results.append(EnrichmentResult.fallback(reason))
        self._emit(
            f"Call {index + 1} marked as uncategorized due to error", Severity.WARNING
        )

        if index < total - 1:
            self._emit(f"Waiting {self.error_delay:g}s before continuing to next call...")
        return self.error_delay

    def _report_completion(
        self, results: List[EnrichmentResult], total: int, start_time: float
    ) -> None:
        success_count = sum(1 for r in results if not r.is_fallback)
        failure_count = len(results) - success_count
        elapsed_minutes = (time.time() - start_time) / 60

        self._emit("Batch processing complete!", Severity.SUCCESS)
        self._emit(f"Successfully processed {success_count}/{total} calls", Severity.SUCCESS)
        if failure_count:
            self._emit(
                f"{failure_count} call(s) failed and were marked as uncategorized",
                Severity.WARNING,
            )
        self._emit(f"Total time: {elapsed_minutes:.2f} minutes")

        logger.info(
            f"Batch completed: {success_count} success, {failure_count} failed "
            f"in {elapsed_minutes * 60:.1f}s"
        )
