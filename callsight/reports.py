"""
Report formatters.

The text and CSV formats only present an AnalysisSnapshot; nothing is
recomputed here. The executive report is written by the selected provider,
through the same backoff controller as classification.
"""

import csv
import io
import logging
import time
from typing import Optional

from .core.backoff import BackoffController
from .core.cancellation import CancellationToken
from .core.events import EventSink, NullSink
from .core.models import AnalysisSnapshot, Severity
from .core.prompts import REPORT_SYSTEM_MESSAGE, build_executive_report_prompt
from .exceptions import CallSightError
from .providers.base import LLMProvider

logger = logging.getLogger(__name__)

RULE_WIDTH = 100

CSV_HEADERS = [
    "Call ID",
    "Phone Number",
    "Customer Name",
    "Date",
    "Duration (sec)",
    "Categories",
    "Sentiment",
    "Outcome",
    "Call Reason",
    "AI Summary",
]


def generate_text_report(snapshot: AnalysisSnapshot) -> str:
    summary = snapshot.summary
    distribution = summary.sentiment_distribution
    lines = [
        "=" * RULE_WIDTH,
        "COMPREHENSIVE CALL CATEGORIZATION & STATISTICAL ANALYSIS REPORT",
        "=" * RULE_WIDTH,
        "",
        f"Generated: {snapshot.generated_at}",
        f"Total Calls Analyzed: {snapshot.total_calls}",
        f"Total Duration: {round(summary.total_duration)} seconds "
        f"({summary.total_duration / 3600:.1f} hours)",
        f"Average Call Duration: {round(summary.avg_duration)} seconds",
        "",
        "SENTIMENT DISTRIBUTION",
        "-" * RULE_WIDTH,
    ]
    for label in ("positive", "neutral", "negative"):
        title = f"{label.capitalize()}:"
        lines.append(
            f"{title:<11}{getattr(distribution, label)} "
            f"({distribution.percentage(label):.1f}%)"
        )

    lines += [
        "",
        "CATEGORY BREAKDOWN",
        "-" * RULE_WIDTH,
        f"{'#':<5}{'Category':<50}{'Count':>10}{'%':>10}{'Customers':>12}",
        "-" * RULE_WIDTH,
    ]
    for idx, cat in enumerate(snapshot.categories, start=1):
        lines.append(
            f"{idx:<5}{cat.category:<50}{cat.count:>10}"
            f"{cat.percentage:>10.1f}{cat.customers:>12}"
        )

    lines += ["", "=" * RULE_WIDTH, "END OF REPORT", "=" * RULE_WIDTH]
    logger.info(f"Text report generated ({len(lines)} lines)")
    return "\n".join(lines)


def generate_csv(snapshot: AnalysisSnapshot) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for call in snapshot.calls:
        writer.writerow([
            call.id,
            call.phone,
            call.customer,
            call.date,
            call.duration,
            "; ".join(call.categories),
            call.sentiment or "Unknown",
            call.outcome or "Unknown",
            call.call_reason or "N/A",
            call.ai_analysis or "N/A",
        ])
    content = buffer.getvalue()
    logger.info(f"CSV generated ({len(content) / 1024:.2f} KB, {len(snapshot.calls)} rows)")
    return content


def generate_executive_report(
    snapshot: AnalysisSnapshot,
    provider: LLMProvider,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
    max_retries: int = 5,
) -> str:
    """
    Ask the provider for a narrative executive summary of the snapshot.

    Raises:
        CallSightError: the provider returned an empty report
        ProviderError / InputTooLargeError: as raised by the backoff controller
    """
    sink = sink or NullSink()
    sink.emit(f"Generating summarized executive report with {provider.describe()}...")
    sink.emit(
        f"Report data: {snapshot.total_calls} calls, {len(snapshot.categories)} categories"
    )

    prompt = build_executive_report_prompt(snapshot)
    backoff = BackoffController(sink=sink, token=token, max_retries=max_retries)

    started = time.time()
    report = backoff.call(lambda: provider.generate(prompt, REPORT_SYSTEM_MESSAGE))

    if not report or not report.strip():
        message = f"Empty report generated by {provider.get_name()}"
        sink.emit(message, Severity.ERROR)
        raise CallSightError(message)

    sink.emit(f"Summarized report generated in {time.time() - started:.2f}s", Severity.SUCCESS)
    sink.emit(f"Report length: {len(report)} characters")
    return report
