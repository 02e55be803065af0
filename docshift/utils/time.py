"""
UTC and RFC 3339 timestamp utilities for docshift.

Log records always carry UTC timestamps with an explicit 'Z' suffix. Document
timestamps travel through the diff machinery as RFC 3339 text, so this module
also owns the exact textual format used inside serialization sentinels.

This module provides:
- utc_now(): Current time as timezone-aware datetime
- utc_timestamp(): ISO 8601 timestamp string with 'Z' suffix (seconds)
- format_rfc3339(): Lossless RFC 3339 rendering of any datetime
- parse_rfc3339(): Inverse of format_rfc3339()

Examples:
    >>> from docshift.utils.time import format_rfc3339, parse_rfc3339
    >>> from datetime import UTC, datetime
    >>> text = format_rfc3339(datetime(2024, 5, 1, 12, 0, tzinfo=UTC))
    >>> text
    '2024-05-01T12:00:00Z'
    >>> parse_rfc3339(text) == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    True
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """
    Return current time in UTC with timezone info.

    Returns:
        datetime: Current UTC time with tzinfo=UTC

    Note:
        NEVER use datetime.utcnow() (deprecated, returns naive datetime).
    """
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """
    Return ISO 8601 timestamp string with 'Z' suffix.

    Format: YYYY-MM-DDTHH:MM:SSZ
    Example: 2025-11-02T08:30:45Z

    Used for log records.
    """
    return utc_now().strftime("%Y-%m-%dT%H:%M:%SZ")


def format_rfc3339(dt: datetime) -> str:
    """
    Render a datetime as RFC 3339 text without losing precision.

    Microseconds are kept when present. A UTC offset is written as 'Z', any
    other offset is written as +HH:MM. Naive datetimes carry no offset at all,
    which lets parse_rfc3339() hand back a naive datetime again.

    Args:
        dt: Datetime to render (aware or naive)

    Returns:
        str: RFC 3339 text

    Examples:
        >>> format_rfc3339(datetime(2025, 1, 2, 3, 4, 5, 600, tzinfo=UTC))
        '2025-01-02T03:04:05.000600Z'
        >>> format_rfc3339(datetime(2025, 1, 2, 3, 4, 5))
        '2025-01-02T03:04:05'
    """
    text = dt.isoformat()
    if dt.tzinfo is not None and dt.utcoffset() == timedelta(0):
        # isoformat() always renders a zero offset as +00:00
        text = text[: -len("+00:00")] + "Z"
    return text


def parse_rfc3339(text: str) -> datetime:
    """
    Parse RFC 3339 text produced by format_rfc3339().

    Args:
        text: Timestamp text, e.g. '2025-01-02T03:04:05Z'

    Returns:
        datetime: Parsed datetime (aware when the text carries an offset)

    Raises:
        ValueError: If the text is not a valid timestamp

    Examples:
        >>> parse_rfc3339("2025-01-02T03:04:05Z").tzinfo == UTC
        True
        >>> parse_rfc3339("yesterday")
        Traceback (most recent call last):
        ...
        ValueError: Invalid RFC 3339 timestamp: yesterday
    """
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    # fromisoformat() accepts bare dates and time-only strings; require both parts
    if "T" not in candidate and " " not in candidate:
        raise ValueError(f"Invalid RFC 3339 timestamp: {text}")

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as e:
        raise ValueError(f"Invalid RFC 3339 timestamp: {text}") from e

    if parsed.tzinfo is not None and parsed.utcoffset() == timedelta(0):
        # normalize "+00:00" offsets to the UTC singleton so equality checks are exact
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
