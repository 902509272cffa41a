"""
Turns raw LLM text into an EnrichmentResult.

Models often wrap their answer in Markdown fences or add chatter around
it, so the first {...} block is extracted before json.loads.
"""

import json
import logging
import re
from typing import Any, Dict

from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_SENTIMENT,
    DEFAULT_SUMMARY,
    VALID_SENTIMENTS,
    EnrichmentResult,
)
from ..exceptions import MalformedResponseError

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200

_FENCE_JSON = re.compile(r"```json\n?")
_FENCE = re.compile(r"```\n?")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(text: str) -> str:
    cleaned = _FENCE_JSON.sub("", text.strip())
    return _FENCE.sub("", cleaned).strip()


def extract_json_object(text: str, source: str = "provider") -> Dict[str, Any]:
    """
    Find and decode the JSON object embedded in `text`.

    Raises:
        MalformedResponseError: no object found, or it does not decode
    """
    match = _JSON_OBJECT.search(strip_code_fences(text or ""))
    if not match:
        excerpt = (text or "")[:EXCERPT_LENGTH]
        logger.error(f"No JSON found in {source} response: {excerpt}")
        raise MalformedResponseError(f"No JSON found in {source} response", excerpt)

    try:
        data = json.loads(match.group())
    except json.JSONDecodeError as e:
        excerpt = match.group()[:EXCERPT_LENGTH]
        logger.error(f"Failed to parse JSON from {source} response ({e}): {excerpt}")
        raise MalformedResponseError(f"Invalid JSON in {source} response", excerpt) from e

    if not isinstance(data, dict):
        excerpt = match.group()[:EXCERPT_LENGTH]
        raise MalformedResponseError(f"Invalid JSON in {source} response", excerpt)
    return data


def normalize_enrichment(data: Dict[str, Any]) -> EnrichmentResult:
    """Apply defaults so downstream aggregation never sees bad values."""
    categories = data.get("categories")
    if not isinstance(categories, list) or not categories:
        categories = [DEFAULT_CATEGORY]

    sentiment = data.get("sentiment")
    if sentiment not in VALID_SENTIMENTS:
        sentiment = DEFAULT_SENTIMENT

    summary = data.get("summary")
    if not summary or not isinstance(summary, str):
        summary = DEFAULT_SUMMARY

    return EnrichmentResult(
        categories=tuple(str(c) for c in categories),
        sentiment=sentiment,
        summary=summary,
    )


def parse_enrichment(text: str, source: str = "provider") -> EnrichmentResult:
    return normalize_enrichment(extract_json_object(text, source))
