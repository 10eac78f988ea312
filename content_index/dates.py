"""Timestamp formatting and date normalization.

The canonical form is UTC with millisecond precision and a ``Z`` suffix,
e.g. ``2024-01-05T00:00:00.000Z``. Naive inputs are read as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

# Non-ISO layouts accepted for hand-written dates, tried in order.
EXTRA_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y.%m.%d",
    "%Y-%m-%d %H:%M",
    "%Y年%m月%d日",
    "%Y年%m月%d日 %H:%M",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime in canonical ISO-8601 UTC form."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def timestamp_from_epoch(seconds: float) -> str:
    return format_timestamp(datetime.fromtimestamp(seconds, tz=timezone.utc))


def _parse_string(text: str) -> datetime:
    s = text.strip()
    if not s:
        raise ValueError("empty date")
    iso = s[:-1] + "+00:00" if s[-1] in "Zz" else s
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in EXTRA_DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized date format: {text!r}")


def normalize_date(value) -> str:
    """Return the canonical ISO-8601 form of a date value.

    Accepts strings and the date/datetime objects YAML produces for bare
    timestamps. Raises ValueError when the value cannot be read as a date;
    callers decide what to do with the original value.
    """
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return format_timestamp(datetime(value.year, value.month, value.day))
    if isinstance(value, str):
        return format_timestamp(_parse_string(value))
    raise ValueError(f"unsupported date value: {value!r}")
