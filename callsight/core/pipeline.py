"""
End-to-end analysis: enrich call records, then aggregate statistics.
"""

import logging
from typing import Optional, Sequence

from .cancellation import CancellationToken
from .events import EventSink, NullSink
from .models import AnalysisSnapshot, CallRecord, Severity
from .orchestrator import BatchOrchestrator
from .statistics import calculate_statistics
from ..providers.base import LLMProvider
from ..providers.factory import ProviderFactory

logger = logging.getLogger(__name__)


def create_provider(config) -> LLMProvider:
    """Instantiate the provider selected in a PipelineConfig."""
    return ProviderFactory.create(config.model.provider, config.provider_options)


def run_analysis(
    calls: Sequence[CallRecord],
    config,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
    provider: Optional[LLMProvider] = None,
) -> Optional[AnalysisSnapshot]:
    """
    Classify every call and build the statistics snapshot.

    Args:
        calls: Validated call records, in upload order
        config: utils.config.PipelineConfig for this batch
        sink: Receives progress events
        token: Cancels the batch when triggered
        provider: Overrides the provider named in `config`

    Returns:
        The snapshot, or None if the batch was cancelled

    Raises:
        RateLimitExhaustedError: provider kept rate limiting after all retries
    """
    sink = sink or NullSink()
    token = token or CancellationToken()
    provider = provider or create_provider(config)

    sink.emit(f"Using model: {config.model.describe()}")
    sink.emit(f"Starting AI categorization for {len(calls)} calls...")

    orchestrator = BatchOrchestrator.from_config(provider, config, sink=sink, token=token)
    results = orchestrator.run([call.to_work_item() for call in calls])
    if token.is_cancelled:
        logger.info("Analysis cancelled; no statistics produced")
        return None

    enriched = [call.enrich(result) for call, result in zip(calls, results)]

    sink.emit("Calculating statistics...")
    snapshot = calculate_statistics(enriched)
    sink.emit("Analysis complete!", Severity.SUCCESS)
    return snapshot
