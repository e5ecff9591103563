"""Timestamp types for vendor payloads.

The REST API sends RFC 2822 dates (``Mon, 11 Jan 2021 09:30:00 -0400``) while
the stream sends RFC 3339 with milliseconds. Both decode to aware datetimes.
"""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer


def parse_vendor_time(value: Any) -> Any:
    """Parse an RFC 2822 or ISO 8601 timestamp.

    Non-string values are passed through for pydantic to validate.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return value
    if text[0].isalpha():
        try:
            return parsedate_to_datetime(text)
        except (TypeError, ValueError) as e:
            msg = f"invalid RFC 2822 timestamp: {value!r}"
            raise ValueError(msg) from e
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def format_rfc3339_milli(value: datetime) -> str:
    """Format a datetime as RFC 3339 with millisecond precision.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    text = value.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


NewsTime = Annotated[
    datetime,
    BeforeValidator(parse_vendor_time),
    PlainSerializer(format_rfc3339_milli, return_type=str, when_used="json"),
]
