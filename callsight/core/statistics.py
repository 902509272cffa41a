"""
Category and sentiment statistics over enriched call records.

Calls can carry several categories, so each category's percentage is its
count over the number of calls and percentages across categories do not
sum to 100.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Set

from .models import (
    AnalysisSnapshot,
    CallRecord,
    CategoryStat,
    SentimentTally,
    SnapshotSummary,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

TOP_CATEGORY_COUNT = 10


def normalize_sentiment(sentiment: Optional[str]) -> str:
    """Case-insensitive; anything but positive/negative counts as neutral."""
    value = (sentiment or "").lower()
    if value in ("positive", "negative"):
        return value
    return "neutral"


@dataclass
class _CategoryAccumulator:
    count: int = 0
    customers: Set[str] = field(default_factory=set)
    sentiment: Dict[str, int] = field(
        default_factory=lambda: {"positive": 0, "neutral": 0, "negative": 0}
    )

    def add(self, call: CallRecord, sentiment: str) -> None:
        self.count += 1
        self.customers.add(call.phone)
        self.sentiment[sentiment] += 1


def calculate_statistics(
    calls: Sequence[CallRecord], generated_at: Optional[str] = None
) -> AnalysisSnapshot:
    """
    Aggregate enriched calls into an AnalysisSnapshot.

    Deterministic for a given input except for the timestamp, which can be
    pinned with `generated_at`.
    """
    started = time.time()
    total_calls = len(calls)
    logger.info(f"Calculating statistics for {total_calls} categorized calls")

    # dicts keep insertion order, so first-seen order survives the stable sort
    accumulators: Dict[str, _CategoryAccumulator] = {}
    global_sentiment = {"positive": 0, "neutral": 0, "negative": 0}
    total_duration = 0.0

    for call in calls:
        sentiment = normalize_sentiment(call.sentiment)
        global_sentiment[sentiment] += 1
        total_duration += call.duration or 0
        for category in call.categories:
            accumulators.setdefault(category, _CategoryAccumulator()).add(call, sentiment)

    logger.info(f"Found {len(accumulators)} unique categories")

    ordered = sorted(accumulators.items(), key=lambda kv: kv[1].count, reverse=True)
    categories = tuple(
        CategoryStat(
            category=name,
            count=acc.count,
            percentage=acc.count / total_calls * 100,
            sentiment=SentimentTally(**acc.sentiment),
            customers=len(acc.customers),
        )
        for name, acc in ordered
    )

    avg_duration = total_duration / total_calls if total_calls else 0.0
    summary = SnapshotSummary(
        avg_duration=avg_duration,
        total_duration=total_duration,
        sentiment_distribution=SentimentTally(**global_sentiment),
        top_categories=tuple(c.category for c in categories[:TOP_CATEGORY_COUNT]),
    )

    logger.info(
        f"Statistics calculated in {time.time() - started:.2f}s; "
        f"top categories: {', '.join(summary.top_categories[:5]) or '(none)'}"
    )

    return AnalysisSnapshot(
        total_calls=total_calls,
        categorized_calls=total_calls,
        categories=categories,
        calls=tuple(calls),
        summary=summary,
        generated_at=generated_at or utc_timestamp(),
    )
