from __future__ import annotations

import threading
import time

from .errors import RequestCancelled


class Deadline:
    """
    Caller-owned deadline and cancellation token for one or more requests.

    Cancellation is cooperative: the client turns the remaining time into
    the HTTP timeout and checks the token between response chunks.
    Calling cancel() from another thread is safe, but it does not interrupt
    a blocking socket read: it takes effect when the next chunk arrives or
    when the HTTP timeout (the time left on the deadline) fires.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left, or None when there is no time limit."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def check(self) -> None:
        if self.cancelled:
            raise RequestCancelled("request cancelled")
        if self.expired:
            raise RequestCancelled("deadline exceeded")
