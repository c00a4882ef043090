from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from decimal import Decimal
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .deadline import Deadline
from .decode import decode
from .errors import NoMoreResults
from .fields import ApiTime, NumericString
from .paging import Page, PageIterator
from .phonenumbers import PhoneNumber

if TYPE_CHECKING:
    from .client import Client

CURRENCY_SYMBOLS: Final[dict[str, str]] = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def _friendly(value: str) -> str:
    return " ".join(part[:1].upper() + part[1:] for part in value.split("-") if part)


class Direction(StrEnum):
    INBOUND = "inbound"
    OUTBOUND_API = "outbound-api"
    OUTBOUND_REPLY = "outbound-reply"
    OUTBOUND_CALL = "outbound-call"

    def friendly(self) -> str:
        return _friendly(self.value)


class Status(StrEnum):
    QUEUED = "queued"
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    UNDELIVERED = "undelivered"
    IN_PROGRESS = "in-progress"
    ACCEPTED = "accepted"
    SCHEDULED = "scheduled"
    RECEIVING = "receiving"
    RECEIVED = "received"
    READ = "read"
    CANCELED = "canceled"

    def friendly(self) -> str:
        """'in-progress' -> 'In Progress'"""
        return _friendly(self.value)


class ErrorCode(IntEnum):
    """Delivery error codes reported in Message.error_code."""

    HTTP_RETRIEVAL_FAILURE = 11200
    QUEUE_OVERFLOW = 30001
    ACCOUNT_SUSPENDED = 30002
    UNREACHABLE = 30003
    MESSAGE_BLOCKED = 30004
    UNKNOWN_DESTINATION = 30005
    LANDLINE = 30006
    CARRIER_VIOLATION = 30007
    UNKNOWN_ERROR = 30008
    MISSING_SEGMENT = 30009
    PRICE_EXCEEDS_MAX_PRICE = 30010


class Message(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sid: str
    account_sid: str = ""
    api_version: str = ""
    messaging_service_sid: str | None = None

    direction: Direction
    status: Status
    from_: PhoneNumber = Field(alias="from")
    to: PhoneNumber
    body: str = ""

    date_created: ApiTime = None
    date_updated: ApiTime = None
    date_sent: ApiTime = None

    num_segments: NumericString = 0
    num_media: NumericString = 0

    price: Decimal | None = None
    price_unit: str | None = None

    error_code: int | None = None
    error_message: str | None = Field(default=None, validate_default=True)

    subresource_uris: dict[str, str] = Field(default_factory=dict)
    uri: str = ""

    @field_validator("error_message")
    @classmethod
    def _error_pair(cls, value: str | None, info: ValidationInfo) -> str | None:
        if "error_code" not in info.data:
            # error_code itself failed; that error is reported instead
            return value
        if (info.data["error_code"] is None) != (value is None):
            raise ValueError("error_code and error_message must be both set or both null")
        return value

    @property
    def has_error(self) -> bool:
        # An empty message means the service has not filled in the details yet
        return self.error_code is not None and bool(self.error_message)

    def friendly_price(self) -> str | None:
        """
        Price as a display string, e.g. "$0.0075".

        The service reports charges as negative amounts; the sign is dropped.
        Returns None while the price is not yet known.
        """
        if self.price is None:
            return None
        amount = abs(self.price).normalize()
        if amount.as_tuple().exponent > -2:  # type: ignore[operator]
            amount = amount.quantize(Decimal("0.01"))
        text = f"{amount:f}"

        unit = (self.price_unit or "").upper()
        symbol = CURRENCY_SYMBOLS.get(unit)
        if symbol:
            return f"{symbol}{text}"
        if unit:
            return f"{text} {unit}"
        return text


class MessagePage(Page):
    messages: tuple[Message, ...] = ()


class Media(BaseModel):
    model_config = ConfigDict(frozen=True)

    sid: str
    content_type: str = ""
    parent_sid: str = ""
    uri: str
    date_created: ApiTime = None


class MediaPage(Page):
    media_list: tuple[Media, ...] = ()


class MessageService:
    def __init__(self, client: Client) -> None:
        self._client = client

    @property
    def path(self) -> str:
        return self._client.account_path("Messages.json")

    def get(self, sid: str, deadline: Deadline | None = None) -> Message:
        path = self._client.account_path(f"Messages/{sid}.json")
        return decode(Message, self._client.get(path, deadline=deadline))

    def get_page(
        self,
        params: Mapping[str, str] | None = None,
        deadline: Deadline | None = None,
    ) -> MessagePage:
        body = self._client.get(self.path, params=params, deadline=deadline)
        return decode(MessagePage, body)

    def get_page_iterator(self, params: Mapping[str, str] | None = None) -> PageIterator[MessagePage]:
        return PageIterator(self._client, self.path, MessagePage, params)

    def iterate(
        self,
        params: Mapping[str, str] | None = None,
        deadline: Deadline | None = None,
    ) -> Iterator[Message]:
        """Yield every message across all pages, in server order."""
        pages = self.get_page_iterator(params)
        while True:
            page = pages.next(deadline)
            if page is NoMoreResults:
                return
            yield from page.messages

    def send_message(
        self,
        from_: str,
        to: str,
        body: str,
        media_urls: Sequence[str] | None = None,
        deadline: Deadline | None = None,
    ) -> Message:
        data: dict[str, str | list[str]] = {"From": from_, "To": to}
        if body:
            data["Body"] = body
        if media_urls:
            data["MediaUrl"] = list(media_urls)
        return decode(Message, self._client.post(self.path, data=data, deadline=deadline))

    def get_media_urls(
        self,
        sid: str,
        params: Mapping[str, str] | None = None,
        deadline: Deadline | None = None,
    ) -> list[str]:
        """
        Download URLs of the media attached to a message (first page only).

        Each media resource redirects to the stored file; the redirect target
        is returned, not the API resource URL.
        """
        path = self._client.account_path(f"Messages/{sid}/Media.json")
        page = decode(MediaPage, self._client.get(path, params=params, deadline=deadline))
        return [
            self._client.resolve_redirect(m.uri.removesuffix(".json"), deadline=deadline)
            for m in page.media_list
        ]
