"""Shared date/time helpers for the checklist engine and its callers.

parse_date:          lenient date parser (returns None on bad input)
parse_date_input:    strict variant for request validation (raises ValueError)
parse_timestamp:     ISO-8601 timestamp → aware datetime (None on bad input)
to_iso_timestamp:    aware/naive datetime → canonical ``...Z`` string
utc_now_iso:         current UTC instant as a canonical timestamp string
format_date_only:    date → ``yyyy-MM-dd``
"""
import logging
from datetime import date, datetime, timezone

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS[.fff][Z|±HH:MM] (timestamp → calendar date as written)
    - DD.MM.YYYY (European format)
    - date / datetime objects
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except (ValueError, TypeError):
        pass
    ts = parse_timestamp(text)
    if ts is not None:
        return ts.date()
    try:
        return datetime.strptime(text, "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Same as parse_date() but raises ValueError instead of returning None.
    Used by blueprints where callers catch ValueError for 400 responses.
    """
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError("Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY.")
    return parsed


def parse_timestamp(value):
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except (ValueError, TypeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso_timestamp(value):
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_now_iso():
    return to_iso_timestamp(datetime.now(timezone.utc))


def format_date_only(value):
    return value.strftime("%Y-%m-%d") if value else None
