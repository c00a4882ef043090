from __future__ import annotations

import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Annotated, Any

from pydantic import BeforeValidator

RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})$"
)


def parse_api_time(value: Any) -> datetime | None:
    """
    Parse a timestamp as the API sends it.

    Two encodings show up on the wire:
      - RFC 2822 with zone offset: "Sat, 04 Aug 2018 03:35:27 +0000"
      - RFC 3339: "2016-09-20T22:59:57Z"

    Anything else (date-only, no offset, ISO week dates) is rejected.
    null / "" mean "not set" and stay None (never the epoch).
    The result is always timezone-aware UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if not isinstance(value, str):
        raise ValueError(f"expected a timestamp string, got {type(value).__name__}")

    text = value.strip()
    if RFC3339_RE.match(text):
        return datetime.fromisoformat(text).astimezone(UTC)

    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        raise ValueError(f"unrecognised timestamp format: {value!r}") from None
    if parsed.tzinfo is None:
        # RFC 2822 "-0000" means "UTC, origin unknown"; no zone at all is an error
        if not text.endswith("-0000"):
            raise ValueError(f"timestamp has no zone offset: {value!r}")
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_numeric_string(value: Any) -> int:
    """Counts arrive as quoted strings ("1"); accept plain numbers too."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError("expected a numeric string, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValueError(f"not an integer: {value!r}") from None
    raise ValueError(f"expected a numeric string, got {type(value).__name__}")


ApiTime = Annotated[datetime | None, BeforeValidator(parse_api_time)]
NumericString = Annotated[int, BeforeValidator(parse_numeric_string)]
