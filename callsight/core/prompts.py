"""
Prompt templates for call classification and report generation.

Templates are rendered with Jinja2 from embedded strings so the module has
no file dependencies.
"""

import json
import logging
from typing import Any, Dict, Optional

from jinja2 import BaseLoader, Environment, StrictUndefined

from .models import AnalysisSnapshot, WorkItem

logger = logging.getLogger(__name__)

TRANSCRIPT_LIMIT = 2000

CLASSIFY_SYSTEM_MESSAGE = (
    "You are a helpful AI assistant that analyzes customer service calls. "
    "Always respond with valid JSON only."
)

REPORT_SYSTEM_MESSAGE = (
    "You are a professional business analyst that generates executive summary "
    "reports. Always provide detailed, actionable reports with clear structure."
)

TEMPLATES: Dict[str, str] = {
    "classify": """You are an AI assistant analyzing customer service call transcripts for an automotive service center.

Analyze the following call transcript and provide:
1. Relevant categories that best describe the call content. Create specific, meaningful category names based on what the customer is asking about or discussing. Do NOT assume categories based on business names. Analyze the actual conversation content.
2. Customer sentiment (positive, neutral, or negative)
3. A brief summary of the call

Call Information:
{% if call_reason %}Call Reason: {{ call_reason }}
{% endif %}{% if issues_discussed %}Issues Discussed: {{ issues_discussed }}
{% endif %}Transcript: {{ transcript }}

Respond ONLY with valid JSON format (no markdown, no code blocks, just the JSON object):
{
  "categories": ["CATEGORY 1", "CATEGORY 2"],
  "sentiment": "neutral",
  "summary": "Brief summary of the call"
}

Important:
- Create categories based on the actual conversation content, not business names or assumptions
- Categories should be specific and descriptive (e.g., "PRICING INQUIRY", "SCHEDULING REQUEST", "SERVICE COMPLAINT")
- Only include categories that clearly apply to the conversation
- Return ONLY the JSON object, no other text""",

    "executive_report": """You are an AI assistant generating an executive summary report for customer service call data from an automotive service center. Generate a professional, actionable report in plain text.

REPORT STRUCTURE:
1. Title: "Call Analysis: Executive Summary & Key Findings"
2. Executive Summary
3. Key Observations & Opportunities for Improvement
4. High-Value Missed Revenue Opportunities
5. Actionable Recommendations
6. Proposed AI Enhancements

Use bullet points (•) for sub-items and keep the tone analytical and supportive.

DATA TO ANALYZE:
Total Calls: {{ total_calls }}
Total Duration: {{ total_duration|round|int }} seconds ({{ '%.1f'|format(total_duration / 3600) }} hours)
Average Call Duration: {{ avg_duration|round|int }} seconds

Sentiment Distribution:
- Positive: {{ sentiment.positive }} ({{ '%.1f'|format(sentiment_pct.positive) }}%)
- Neutral: {{ sentiment.neutral }} ({{ '%.1f'|format(sentiment_pct.neutral) }}%)
- Negative: {{ sentiment.negative }} ({{ '%.1f'|format(sentiment_pct.negative) }}%)

Top Categories:
{{ top_categories_json }}

Sample Calls with Transcripts:
{{ sample_calls_json }}

Identify key patterns, operational gaps and missed revenue opportunities, and provide actionable recommendations.""",
}

_env = Environment(loader=BaseLoader(), undefined=StrictUndefined, autoescape=False)


def render(name: str, **context: Any) -> str:
    if name not in TEMPLATES:
        raise KeyError(f"Unknown prompt template: {name}")
    return _env.from_string(TEMPLATES[name]).render(**context)


def truncate(text: Optional[str], limit: int) -> str:
    text = text or ""
    return text[:limit] + ("..." if len(text) > limit else "")


def build_classification_prompt(item: WorkItem) -> str:
    return render(
        "classify",
        transcript=truncate(item.transcript, TRANSCRIPT_LIMIT),
        call_reason=item.call_reason,
        issues_discussed=item.issues_discussed,
    )


def build_executive_report_prompt(snapshot: AnalysisSnapshot) -> str:
    summary = snapshot.summary
    distribution = summary.sentiment_distribution

    top_categories = [
        {
            "category": c.category,
            "count": c.count,
            "percentage": f"{c.percentage:.1f}",
            "sentiment": c.sentiment.to_dict(),
        }
        for c in snapshot.categories[:10]
    ]

    # The last row of an uploaded sheet is usually a totals row
    calls = snapshot.calls[:-1] if len(snapshot.calls) > 1 else snapshot.calls
    sample_calls = [
        {
            "customer": call.customer or "Unknown",
            "categories": list(call.categories),
            "sentiment": call.sentiment,
            "callReason": (call.call_reason or "N/A")[:100],
            "issuesDiscussed": (call.issues_discussed or "N/A")[:100],
            "summary": (call.ai_analysis or "No summary available")[:150],
            "transcript": truncate(call.transcript, 250),
        }
        for call in calls[:5]
    ]

    return render(
        "executive_report",
        total_calls=snapshot.total_calls,
        total_duration=summary.total_duration,
        avg_duration=summary.avg_duration,
        sentiment=distribution.to_dict(),
        sentiment_pct={s: distribution.percentage(s) for s in ("positive", "neutral", "negative")},
        top_categories_json=json.dumps(top_categories, indent=2),
        sample_calls_json=json.dumps(sample_calls, indent=2),
    )
