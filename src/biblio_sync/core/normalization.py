"""Text and wire-value normalization utilities."""

from datetime import datetime, timezone
from typing import Any, List, Optional


# Variants the API is known to emit, most specific first
TIMESTAMP_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601-like timestamp into an aware UTC datetime.

    Accepts fractional seconds or not, a literal ``Z`` suffix, a numeric
    offset (``+0000`` or ``+00:00``), or no zone at all (read as UTC).
    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    text = str(value).strip()
    if not text:
        return None

    for fmt in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    return None


def format_timestamp(value: datetime) -> str:
    """Render a datetime the way the search endpoint expects (UTC, ``Z``)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_code(value: Any) -> Optional[str]:
    """Normalize an ISBN/ISSN that may arrive as a string or a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    text = str(value).strip()
    return text or None


def clean_text(value: Any) -> Optional[str]:
    """Strip a free-text value; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_year(value: Any) -> Optional[int]:
    """Parse a year typed into a form; anything non-numeric is dropped."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def split_keywords(keywords: Optional[str]) -> List[str]:
    """Split the comma-joined keyword string into trimmed, non-empty parts."""
    if not keywords:
        return []
    return [part.strip() for part in keywords.split(",") if part.strip()]
