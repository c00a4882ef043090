"""
Error taxonomy for the REST client.

Every failure surfaced by this package is an ``ApiError`` carrying an
explicit ``kind`` so callers can branch on the discriminant:

    try:
        page = iterator.next(deadline)
    except ApiError as err:
        if err.kind is ErrorKind.CANCELLED:
            ...

End of a paginated listing is *not* an error: ``PageIterator.next`` returns
the ``NoMoreResults`` sentinel instead.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Final, Literal


class ErrorKind(Enum):
    DECODE = "decode"
    TRANSPORT = "transport"
    CANCELLED = "cancelled"
    SERVICE = "service"


class ApiError(Exception):
    kind: ErrorKind

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class DecodeError(ApiError):
    """A JSON payload did not match the expected resource shape."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(ErrorKind.DECODE, f"cannot decode field {field!r}: {reason}")
        self.field = field
        self.reason = reason


class TransportError(ApiError):
    """The HTTP exchange failed before a response could be read."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.TRANSPORT, message)


class RequestCancelled(ApiError):
    """The caller's deadline expired or was cancelled."""

    def __init__(self, message: str = "request cancelled by caller deadline") -> None:
        super().__init__(ErrorKind.CANCELLED, message)


class ServiceError(ApiError):
    """
    A non-2xx response, decoded from the service's error body.

    The service answers errors with JSON like:

      {"code": 21421, "message": "+1foobar is not a valid number",
       "more_info": "https://www.twilio.com/docs/errors/21421", "status": 400}
    """

    def __init__(
        self,
        title: str,
        status: int,
        code: int | None = None,
        more_info: str | None = None,
    ) -> None:
        super().__init__(ErrorKind.SERVICE, f"{status}: {title}")
        self.title = title
        self.status = status
        self.code = code
        self.more_info = more_info

    @classmethod
    def from_response(cls, status: int, body: bytes, reason: str = "") -> ServiceError:
        try:
            data: Any = json.loads(body) if body else None
        except ValueError:
            data = None

        if not isinstance(data, dict) or not data.get("message"):
            return cls(title=reason or f"HTTP {status}", status=status)

        code = data.get("code")
        try:
            status = int(data.get("status") or status)
        except (TypeError, ValueError):
            # body status unusable, keep the HTTP one
            pass
        return cls(
            title=str(data["message"]),
            status=status,
            code=code if isinstance(code, int) else None,
            more_info=data.get("more_info"),
        )


class _Sentinel(Enum):
    NO_MORE_RESULTS = "no more results"

    def __repr__(self) -> str:
        return "NoMoreResults"


# Returned (never raised) when a paginated listing has no further pages.
NoMoreResults: Final = _Sentinel.NO_MORE_RESULTS
NoMoreResultsType = Literal[_Sentinel.NO_MORE_RESULTS]
