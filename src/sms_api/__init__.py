from __future__ import annotations

from dotenv import load_dotenv

from .client import Client, get_client
from .deadline import Deadline
from .decode import decode
from .errors import (
    ApiError,
    DecodeError,
    ErrorKind,
    NoMoreResults,
    RequestCancelled,
    ServiceError,
    TransportError,
)
from .messages import Direction, ErrorCode, Message, MessagePage, Status
from .paging import IterState, Page, PageCursor, PageIterator
from .phonenumbers import IncomingNumberPage, IncomingPhoneNumber, PhoneNumber

load_dotenv()

__all__ = [
    "ApiError",
    "Client",
    "Deadline",
    "DecodeError",
    "Direction",
    "ErrorCode",
    "ErrorKind",
    "IncomingNumberPage",
    "IncomingPhoneNumber",
    "IterState",
    "Message",
    "MessagePage",
    "NoMoreResults",
    "Page",
    "PageCursor",
    "PageIterator",
    "PhoneNumber",
    "RequestCancelled",
    "ServiceError",
    "Status",
    "TransportError",
    "decode",
    "get_client",
]

__version__ = "0.1.0"
