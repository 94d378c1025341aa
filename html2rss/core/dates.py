"""Publication dates in the form RSS readers expect (RFC 2822)."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime

from ..errors import InvalidDateTime

_NAIVE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_rfc2822(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value)


def parse_feed_date(value: str) -> datetime:
    """Parse a user-supplied date into an aware datetime.

    Accepts "now", RFC 2822, ISO 8601 and the plain forms
    ``YYYY-MM-DD HH:MM[:SS]`` and ``YYYY-MM-DD``. Values without a
    timezone are taken as UTC.

    Raises:
        InvalidDateTime: if no accepted form matches
    """
    text = (value or "").strip()
    if not text:
        raise InvalidDateTime("Empty date", value=value)
    if text.lower() == "now":
        return now_utc()

    parsed = _parse_rfc2822(text) or _parse_iso(text) or _parse_naive(text)
    if parsed is None:
        raise InvalidDateTime("Unrecognised date format", value=value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_rfc2822(text: str) -> datetime | None:
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def _parse_iso(text: str) -> datetime | None:
    # fromisoformat only accepts a trailing "Z" from Python 3.11 on
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _parse_naive(text: str) -> datetime | None:
    for fmt in _NAIVE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
