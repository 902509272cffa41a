"""
Reads uploaded call sheets into CallRecords.

Expected columns (first sheet of an Excel workbook, or a CSV file):
'Originating Number', 'Start Timestamp', 'Call duration', 'Transcript'
(or 'summary_points'), 'customer_name', 'call_reason',
'customer_sentiment', 'issues_discussed', 'outcome_status'.
"""

import io
import logging
import os
from typing import Any, Dict, List, Tuple, Union

import pandas as pd

from .core.models import CallRecord, utc_timestamp

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xls")
SUPPORTED_EXTENSIONS = EXCEL_EXTENSIONS + (".csv",)

Source = Union[str, bytes, io.IOBase]


def read_rows(source: Source, filename: str = "") -> List[Dict[str, Any]]:
    """
    Parse a sheet into row dicts with blank cells removed.

    Args:
        source: Path, raw bytes or file object
        filename: Original file name, used to pick the parser for bytes/streams
    """
    name = filename or (source if isinstance(source, str) else "")
    ext = os.path.splitext(name)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValueError("Only Excel files (.xlsx, .xls) or CSV files are supported")

    if isinstance(source, bytes):
        logger.info(f"File size: {len(source) / 1024:.2f} KB")
        source = io.BytesIO(source)

    try:
        if ext == ".csv":
            df = pd.read_csv(source)
        else:
            df = pd.read_excel(source, sheet_name=0)
    except Exception as e:
        logger.error(f"Error parsing {name or 'upload'}: {e}")
        raise ValueError(f"Failed to parse file: {e}") from e

    rows = [
        {k: v for k, v in row.items() if not pd.isna(v)}
        for row in df.to_dict(orient="records")
    ]
    logger.info(f"Successfully parsed {len(rows)} records")
    return rows


def validate_rows(rows: List[Dict[str, Any]]) -> Tuple[bool, List[str]]:
    errors: List[str] = []
    if not rows:
        errors.append("Excel file is empty")
        return False, errors

    columns = set()
    for row in rows:
        columns.update(row.keys())

    if "Transcript" not in columns and "summary_points" not in columns:
        errors.append("Missing required column: Transcript or summary_points")
    if "Originating Number" not in columns:
        errors.append("Missing required column: Originating Number")

    if errors:
        logger.warning(f"Validation failed: {', '.join(errors)}")
    return not errors, errors


def _optional(row: Dict[str, Any], key: str):
    value = row.get(key)
    return str(value) if value not in (None, "") else None


def _phone(value: Any) -> str:
    # pandas reads phone numbers as floats
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def transform_rows(rows: List[Dict[str, Any]]) -> List[CallRecord]:
    records = []
    for index, row in enumerate(rows):
        try:
            duration = float(row.get("Call duration") or 0)
        except (TypeError, ValueError):
            duration = 0.0
        records.append(
            CallRecord(
                id=f"call-{index + 1}",
                phone=_phone(row.get("Originating Number") or "Unknown"),
                customer=str(row.get("customer_name") or "Unknown"),
                date=str(row.get("Start Timestamp") or utc_timestamp()),
                duration=duration,
                transcript=str(
                    row.get("Transcript") or row.get("summary_points") or "No transcript available"
                ),
                call_reason=_optional(row, "call_reason"),
                issues_discussed=_optional(row, "issues_discussed"),
                sentiment=_optional(row, "customer_sentiment"),
                outcome=_optional(row, "outcome_status"),
            )
        )
    logger.info(f"Successfully transformed {len(records)} records")
    return records


def load_calls(source: Source, filename: str = "") -> List[CallRecord]:
    """
    Read, validate and transform a sheet in one step.

    Raises:
        ValueError: unsupported file, unreadable file or missing columns
    """
    rows = read_rows(source, filename)
    valid, errors = validate_rows(rows)
    if not valid:
        raise ValueError(f"Invalid Excel structure: {', '.join(errors)}")
    return transform_rows(rows)
