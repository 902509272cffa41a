"""
Data structures shared by the enrichment pipeline.

WorkItem and EnrichmentResult travel through the batch orchestrator,
CallRecord is the full tabular row, and AnalysisSnapshot is the frozen
output of the statistics aggregator.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


VALID_SENTIMENTS = ("positive", "neutral", "negative")
DEFAULT_CATEGORY = "Unknown"
DEFAULT_SENTIMENT = "neutral"
DEFAULT_SUMMARY = "No summary available"
FALLBACK_CATEGORY = "UNCATEGORIZED - API ERROR"


class Severity(Enum):
    """Severity of a LogEvent (the wire calls it `type`)."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    PROGRESS = "progress"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LogEvent:
    message: str
    severity: Severity = Severity.INFO
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, str]:
        return {
            "message": self.message,
            "type": self.severity.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ModelConfig:
    """Provider and model selected for one batch."""
    provider: str
    model: str

    def describe(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass(frozen=True)
class WorkItem:
    """One call awaiting classification."""
    transcript: str
    call_reason: Optional[str] = None
    issues_discussed: Optional[str] = None


@dataclass(frozen=True)
class EnrichmentResult:
    """
    Categorization produced for one WorkItem.

    Attributes:
        categories: Non-empty list of category labels
        sentiment: positive, neutral or negative
        summary: Short description of the call
    """
    categories: Tuple[str, ...] = (DEFAULT_CATEGORY,)
    sentiment: str = DEFAULT_SENTIMENT
    summary: str = DEFAULT_SUMMARY

    @classmethod
    def fallback(cls, reason: str) -> "EnrichmentResult":
        """Result used when a call could not be analyzed."""
        return cls(
            categories=(FALLBACK_CATEGORY,),
            sentiment=DEFAULT_SENTIMENT,
            summary=f"Failed to analyze: {reason or 'Unknown error'}",
        )

    @property
    def is_fallback(self) -> bool:
        return FALLBACK_CATEGORY in self.categories

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": list(self.categories),
            "sentiment": self.sentiment,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class CallRecord:
    """A call row from the uploaded sheet, optionally enriched."""
    id: str
    phone: str = "Unknown"
    customer: str = "Unknown"
    date: str = ""
    duration: float = 0.0
    transcript: str = "No transcript available"
    call_reason: Optional[str] = None
    issues_discussed: Optional[str] = None
    sentiment: Optional[str] = None
    outcome: Optional[str] = None
    categories: Tuple[str, ...] = ()
    ai_analysis: Optional[str] = None

    def to_work_item(self) -> WorkItem:
        return WorkItem(
            transcript=self.transcript,
            call_reason=self.call_reason,
            issues_discussed=self.issues_discussed,
        )

    def enrich(self, result: EnrichmentResult) -> "CallRecord":
        """Return a copy carrying the classification result."""
        return replace(
            self,
            categories=tuple(result.categories),
            sentiment=result.sentiment,
            ai_analysis=result.summary,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "phone": self.phone,
            "customer": self.customer,
            "date": self.date,
            "duration": self.duration,
            "transcript": self.transcript,
            "categories": list(self.categories),
        }
        optional = {
            "callReason": self.call_reason,
            "issuesDiscussed": self.issues_discussed,
            "sentiment": self.sentiment,
            "outcome": self.outcome,
            "aiAnalysis": self.ai_analysis,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallRecord":
        return cls(
            id=str(data.get("id", "")),
            phone=str(data.get("phone", "Unknown")),
            customer=str(data.get("customer", "Unknown")),
            date=str(data.get("date", "")),
            duration=float(data.get("duration") or 0),
            transcript=str(data.get("transcript", "")),
            call_reason=data.get("callReason"),
            issues_discussed=data.get("issuesDiscussed"),
            sentiment=data.get("sentiment"),
            outcome=data.get("outcome"),
            categories=tuple(data.get("categories") or ()),
            ai_analysis=data.get("aiAnalysis"),
        )


@dataclass(frozen=True)
class SentimentTally:
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative

    def percentage(self, sentiment: str) -> float:
        if self.total == 0:
            return 0.0
        return getattr(self, sentiment) / self.total * 100

    def to_dict(self) -> Dict[str, int]:
        return {
            "positive": self.positive,
            "neutral": self.neutral,
            "negative": self.negative,
        }


@dataclass(frozen=True)
class CategoryStat:
    """Aggregated counters for one category label."""
    category: str
    count: int
    percentage: float
    sentiment: SentimentTally
    customers: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "count": self.count,
            "percentage": self.percentage,
            "sentiment": self.sentiment.to_dict(),
            "customers": self.customers,
        }


@dataclass(frozen=True)
class SnapshotSummary:
    avg_duration: float
    total_duration: float
    sentiment_distribution: SentimentTally
    top_categories: Tuple[str, ...]
    answer_rate: float = 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answerRate": self.answer_rate,
            "avgDuration": self.avg_duration,
            "totalDuration": self.total_duration,
            "sentimentDistribution": self.sentiment_distribution.to_dict(),
            "topCategories": list(self.top_categories),
        }


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Immutable statistics produced once per batch."""
    total_calls: int
    categorized_calls: int
    categories: Tuple[CategoryStat, ...]
    calls: Tuple[CallRecord, ...]
    summary: SnapshotSummary
    generated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCalls": self.total_calls,
            "categorizedCalls": self.categorized_calls,
            "categories": [c.to_dict() for c in self.categories],
            "calls": [c.to_dict() for c in self.calls],
            "summary": self.summary.to_dict(),
            "timestamp": self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisSnapshot":
        """Rebuild a snapshot received over the wire (no recomputation)."""
        summary = data.get("summary") or {}
        distribution = summary.get("sentimentDistribution") or {}
        categories: List[CategoryStat] = []
        for item in data.get("categories") or []:
            sentiment = item.get("sentiment") or {}
            categories.append(
                CategoryStat(
                    category=str(item.get("category", "")),
                    count=int(item.get("count", 0)),
                    percentage=float(item.get("percentage", 0.0)),
                    sentiment=SentimentTally(**{
                        k: int(sentiment.get(k, 0)) for k in VALID_SENTIMENTS
                    }),
                    customers=int(item.get("customers", 0)),
                )
            )
        return cls(
            total_calls=int(data.get("totalCalls", 0)),
            categorized_calls=int(data.get("categorizedCalls", 0)),
            categories=tuple(categories),
            calls=tuple(CallRecord.from_dict(c) for c in data.get("calls") or []),
            summary=SnapshotSummary(
                avg_duration=float(summary.get("avgDuration", 0.0)),
                total_duration=float(summary.get("totalDuration", 0.0)),
                sentiment_distribution=SentimentTally(**{
                    k: int(distribution.get(k, 0)) for k in VALID_SENTIMENTS
                }),
                top_categories=tuple(summary.get("topCategories") or ()),
                answer_rate=float(summary.get("answerRate", 100.0)),
            ),
            generated_at=str(data.get("timestamp", "")),
        )
