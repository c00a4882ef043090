from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from .deadline import Deadline
from .decode import decode
from .errors import NoMoreResults, NoMoreResultsType

if TYPE_CHECKING:
    from .client import Client

logger = logging.getLogger(__name__)


class Page(BaseModel):
    """Pagination metadata shared by every list response."""

    model_config = ConfigDict(frozen=True)

    page: int = 0
    page_size: int = 0
    start: int = 0
    end: int = 0
    uri: str = ""
    first_page_uri: str | None = None
    # null on the last page
    next_page_uri: str | None = None
    previous_page_uri: str | None = None

    @property
    def has_next(self) -> bool:
        return bool(self.next_page_uri)


P = TypeVar("P", bound=Page)


class IterState(Enum):
    READY = "ready"
    FETCHING = "fetching"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class PageCursor:
    # Path (or server-supplied URI) of the next request
    path: str
    # Query parameters; only sent with the first request
    params: dict[str, str] | None = None
    state: IterState = IterState.READY
    pages_fetched: int = 0
    error: BaseException | None = None


class PageIterator(Generic[P]):
    """
    Forward-only walk over a paginated list endpoint.

    Each call to next() performs at most one GET: the initial path with its
    query parameters first, then the server's next_page_uri verbatim.
    When the server stops sending a next_page_uri the iterator is exhausted
    and next() returns NoMoreResults without touching the network.

    Errors are not retried. Once a fetch fails, every later call raises the
    same error. Not thread-safe: a call made while another is in flight
    raises RuntimeError.
    """

    def __init__(
        self,
        client: Client,
        path: str,
        page_model: type[P],
        params: Mapping[str, str] | None = None,
    ) -> None:
        self._client = client
        self._page_model = page_model
        self._cursor = PageCursor(path=path, params=dict(params) if params else None)

    @property
    def cursor(self) -> PageCursor:
        """Snapshot of the current cursor."""
        return dataclasses.replace(self._cursor)

    @property
    def state(self) -> IterState:
        return self._cursor.state

    def next(self, deadline: Deadline | None = None) -> P | NoMoreResultsType:
        cursor = self._cursor
        if cursor.state is IterState.EXHAUSTED:
            return NoMoreResults
        if cursor.state is IterState.FAILED:
            assert cursor.error is not None
            raise cursor.error
        if cursor.state is IterState.FETCHING:
            raise RuntimeError("PageIterator.next() called while a fetch is in flight")

        cursor.state = IterState.FETCHING
        try:
            body = self._client.get(cursor.path, params=cursor.params, deadline=deadline)
            page = decode(self._page_model, body)
        except BaseException as exc:
            # interrupts included: FETCHING never outlives this call
            cursor.state = IterState.FAILED
            cursor.error = exc
            raise

        cursor.pages_fetched += 1
        logger.debug(
            "fetched page %d (start=%d, page_size=%d, more=%s)",
            page.page,
            page.start,
            page.page_size,
            page.has_next,
        )

        if page.next_page_uri:
            cursor.path = page.next_page_uri
            cursor.params = None
            cursor.state = IterState.READY
        else:
            cursor.state = IterState.EXHAUSTED
        return page

    def __iter__(self) -> Iterator[P]:
        while True:
            page = self.next()
            if page is NoMoreResults:
                return
            yield page
