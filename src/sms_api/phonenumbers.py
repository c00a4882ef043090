from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import phonenumbers
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

from .deadline import Deadline
from .decode import decode
from .fields import ApiTime
from .paging import Page, PageIterator

if TYPE_CHECKING:
    from .client import Client

NON_DIGIT_RE = re.compile(r"\D")
CHANNEL_RE = re.compile(r"^([a-z][a-z0-9_-]*):", re.IGNORECASE)


class PhoneNumber(str):
    """
    A phone number exactly as the API sends it.

    The raw form is kept untouched, including channel prefixes such as
    "whatsapp:+14155238886", and equality is plain string equality.

    The display helpers only understand North American (+1) numbers;
    anything else is returned without its channel prefix.
    """

    __slots__ = ()

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(cls, core_schema.str_schema())

    @classmethod
    def parse(cls, text: str, region: str = "US") -> PhoneNumber:
        """
        Normalise caller input to E.164, keeping any channel prefix.

          "925-324-5555"            -> "+19253245555"
          "whatsapp:(925) 324 5555" -> "whatsapp:+19253245555"
          "+44 20 7946 0958"        -> "+442079460958"

        Numbers without a leading "+" are read as national numbers of
        `region`. Raises ValueError when the input is not a valid number.
        """
        raw = text.strip()
        match = CHANNEL_RE.match(raw)
        prefix = ""
        if match:
            prefix = match.group(0).lower()
            raw = raw[match.end() :].strip()

        try:
            parsed = phonenumbers.parse(raw, region)
        except phonenumbers.NumberParseException:
            raise ValueError(f"invalid phone number: {text!r}") from None
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError(f"invalid phone number: {text!r}")

        e164 = phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
        return cls(f"{prefix}{e164}")

    @property
    def channel(self) -> str | None:
        """Messaging channel ("whatsapp", ...) or None for plain SMS numbers."""
        match = CHANNEL_RE.match(self)
        return match.group(1).lower() if match else None

    @property
    def e164(self) -> str:
        """The number with any channel prefix stripped."""
        match = CHANNEL_RE.match(self)
        return self[match.end() :] if match else str(self)

    def _nanp_digits(self) -> str | None:
        number = self.e164
        digits = NON_DIGIT_RE.sub("", number)
        if len(digits) == 11 and digits.startswith("1"):
            return digits[1:]
        if len(digits) == 10 and not number.startswith("+"):
            return digits
        return None

    def local(self) -> str:
        """'+19253245555' -> '(925) 324-5555'"""
        digits = self._nanp_digits()
        if digits is None:
            return self.e164
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"

    def friendly(self) -> str:
        """'+19253245555' -> '+1 925 324 5555'"""
        digits = self._nanp_digits()
        if digits is None:
            return self.e164
        return f"+1 {digits[:3]} {digits[3:6]} {digits[6:]}"


class NumberCapabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    voice: bool = False
    sms: bool = False
    mms: bool = False
    fax: bool = False


class IncomingPhoneNumber(BaseModel):
    model_config = ConfigDict(frozen=True)

    sid: str
    account_sid: str = ""
    friendly_name: str = ""
    phone_number: PhoneNumber
    voice_url: str | None = None
    voice_method: str | None = None
    sms_url: str | None = None
    sms_method: str | None = None
    capabilities: NumberCapabilities = Field(default_factory=NumberCapabilities)
    status: str | None = None
    date_created: ApiTime = None
    date_updated: ApiTime = None
    api_version: str = ""
    uri: str = ""


class IncomingNumberPage(Page):
    incoming_phone_numbers: tuple[IncomingPhoneNumber, ...] = ()


class IncomingNumberService:
    """Phone numbers owned by the account (IncomingPhoneNumbers resource)."""

    def __init__(self, client: Client) -> None:
        self._client = client

    @property
    def path(self) -> str:
        return self._client.account_path("IncomingPhoneNumbers.json")

    def get(self, sid: str, deadline: Deadline | None = None) -> IncomingPhoneNumber:
        path = self._client.account_path(f"IncomingPhoneNumbers/{sid}.json")
        return decode(IncomingPhoneNumber, self._client.get(path, deadline=deadline))

    def get_page(
        self,
        params: Mapping[str, str] | None = None,
        deadline: Deadline | None = None,
    ) -> IncomingNumberPage:
        body = self._client.get(self.path, params=params, deadline=deadline)
        return decode(IncomingNumberPage, body)

    def get_page_iterator(
        self, params: Mapping[str, str] | None = None
    ) -> PageIterator[IncomingNumberPage]:
        return PageIterator(self._client, self.path, IncomingNumberPage, params)

    def buy_number(
        self, phone_number: str, deadline: Deadline | None = None
    ) -> IncomingPhoneNumber:
        """
        Purchase a number for the account.

        The number is sent as given; the service rejects invalid input with a
        400 that surfaces as ServiceError (title "<number> is not a valid number").
        """
        body = self._client.post(self.path, data={"PhoneNumber": phone_number}, deadline=deadline)
        return decode(IncomingPhoneNumber, body)
