from __future__ import annotations

import json
import re
from collections.abc import Iterator
from typing import Any

import pytest
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from fastapi.testclient import TestClient

from sms_api import Client

ACCOUNT_SID = "AC58f1e8f2b1c6b88ca90a012a4be0c279"
AUTH_TOKEN = "test-auth-token"
PREFIX = f"/2010-04-01/Accounts/{ACCOUNT_SID}"
MEDIA_CDN = "https://s3-external-1.amazonaws.com/media.twiliocdn.com"

E164_RE = re.compile(r"^\+\d{10,15}$")

WHATSAPP_MESSAGE = b"""
{
    "account_sid": "AC58f1e8f2b1c6b88ca90a012a4be0c279",
    "api_version": "2010-04-01",
    "body": "Testing whatsapp integration! \\ud83d\\ude0e",
    "date_created": "Sat, 04 Aug 2018 03:35:27 +0000",
    "date_sent": null,
    "date_updated": "Sat, 04 Aug 2018 03:35:27 +0000",
    "direction": "outbound-api",
    "error_code": null,
    "error_message": null,
    "from": "whatsapp:+14155238886",
    "messaging_service_sid": null,
    "num_media": "0",
    "num_segments": "1",
    "price": null,
    "price_unit": null,
    "sid": "SM75347b88e19f41fc8a83db8aa32e37ea",
    "status": "queued",
    "subresource_uris": {
        "media": "/2010-04-01/Accounts/AC58f1e8f2b1c6b88ca90a012a4be0c279/Messages/SM75347b88e19f41fc8a83db8aa32e37ea/Media.json"
    },
    "to": "whatsapp:+19253245555",
    "uri": "/2010-04-01/Accounts/AC58f1e8f2b1c6b88ca90a012a4be0c279/Messages/SM75347b88e19f41fc8a83db8aa32e37ea.json"
}
"""

DELIVERED_MESSAGE: dict[str, Any] = {
    "account_sid": ACCOUNT_SID,
    "api_version": "2010-04-01",
    "body": "Welcome to ZomboCom.",
    "date_created": "Tue, 20 Sep 2016 22:59:57 +0000",
    "date_sent": "Tue, 20 Sep 2016 22:59:57 +0000",
    "date_updated": "2016-09-20T22:59:58Z",
    "direction": "outbound-reply",
    "error_code": None,
    "error_message": None,
    "from": "+19253920364",
    "messaging_service_sid": None,
    "num_media": "0",
    "num_segments": "1",
    "price": "-0.00750",
    "price_unit": "USD",
    "sid": "SM26b3b00f8def53be77c5697183bfe95e",
    "status": "delivered",
    "subresource_uris": {"media": f"{PREFIX}/Messages/SM26b3b00f8def53be77c5697183bfe95e/Media.json"},
    "to": "+19253245555",
    "uri": f"{PREFIX}/Messages/SM26b3b00f8def53be77c5697183bfe95e.json",
}


def _message_at(index: int) -> dict[str, Any]:
    sid = f"SM{index:032x}"
    return {
        **DELIVERED_MESSAGE,
        "sid": sid,
        "body": f"message #{index}",
        "uri": f"{PREFIX}/Messages/{sid}.json",
    }


def _service_error(status: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={
            "code": code,
            "message": message,
            "more_info": f"https://www.twilio.com/docs/errors/{code}",
            "status": status,
        },
    )


def build_fake_api(total_messages: int = 1234) -> FastAPI:
    """
    Minimal stand-in for the REST API: Messages, Media and IncomingPhoneNumbers.

    Listings are paged with PageSize/Page and hand back next_page_uri until
    the last page, where it is null.
    """
    security = HTTPBasic()

    def check_auth(credentials: HTTPBasicCredentials = Depends(security)) -> None:
        if credentials.username != ACCOUNT_SID or credentials.password != AUTH_TOKEN:
            raise PermissionError("bad credentials")

    app = FastAPI(dependencies=[Depends(check_auth)])
    app.state.request_count = 0
    messages = [_message_at(i) for i in range(total_messages)]
    numbers = [
        {
            "sid": f"PN{i:032x}",
            "account_sid": ACCOUNT_SID,
            "friendly_name": f"Line {i}",
            "phone_number": f"+1925555{i:04d}",
            "capabilities": {"voice": True, "sms": True, "mms": i % 2 == 0, "fax": False},
            "date_created": "Mon, 01 Jan 2018 00:00:00 +0000",
            "date_updated": "Mon, 01 Jan 2018 00:00:00 +0000",
            "api_version": "2010-04-01",
            "uri": f"{PREFIX}/IncomingPhoneNumbers/PN{i:032x}.json",
        }
        for i in range(3)
    ]

    @app.middleware("http")
    async def count_requests(request: Request, call_next: Any) -> Any:
        app.state.request_count += 1
        return await call_next(request)

    @app.exception_handler(PermissionError)
    async def auth_failed(request: Request, exc: PermissionError) -> JSONResponse:
        return _service_error(401, 20003, "Authenticate")

    def _page(key: str, items: list[dict[str, Any]], path: str, page: int, page_size: int) -> dict:
        start = page * page_size
        chunk = items[start : start + page_size]
        has_next = start + page_size < len(items)
        return {
            key: chunk,
            "page": page,
            "page_size": page_size,
            "start": start,
            "end": start + max(len(chunk) - 1, 0),
            "uri": f"{path}?PageSize={page_size}&Page={page}",
            "first_page_uri": f"{path}?PageSize={page_size}&Page=0",
            "next_page_uri": (
                f"{path}?PageSize={page_size}&Page={page + 1}&PageToken=PA{chunk[-1]['sid']}"
                if has_next
                else None
            ),
            "previous_page_uri": (
                f"{path}?PageSize={page_size}&Page={page - 1}" if page > 0 else None
            ),
        }

    @app.get(f"{PREFIX}/Messages.json")
    def list_messages(
        page_size: int = Query(50, alias="PageSize"),
        page: int = Query(0, alias="Page"),
    ) -> dict:
        return _page("messages", messages, f"{PREFIX}/Messages.json", page, page_size)

    @app.post(f"{PREFIX}/Messages.json", status_code=201)
    async def create_message(request: Request) -> Any:
        form = await request.form()
        to = str(form.get("To", ""))
        if not E164_RE.match(to.removeprefix("whatsapp:")):
            return _service_error(400, 21211, f"The 'To' number {to} is not a valid phone number.")
        sid = f"SM{len(messages):032x}"
        media = form.getlist("MediaUrl")
        created = {
            **DELIVERED_MESSAGE,
            "sid": sid,
            "from": str(form.get("From", "")),
            "to": to,
            "body": str(form.get("Body", "")),
            "status": "queued",
            "direction": "outbound-api",
            "date_sent": None,
            "price": None,
            "price_unit": None,
            "num_media": str(len(media)),
            "uri": f"{PREFIX}/Messages/{sid}.json",
        }
        messages.append(created)
        return created

    @app.get(f"{PREFIX}/Messages/{{sid}}.json")
    def get_message(sid: str) -> Any:
        for msg in messages:
            if msg["sid"] == sid:
                return msg
        return _service_error(404, 20404, f"The requested resource {PREFIX}/Messages/{sid}.json was not found")

    @app.get(f"{PREFIX}/Messages/{{sid}}/Media.json")
    def list_media(sid: str) -> dict:
        media = [
            {
                "sid": "ME85ebf7e12cb821f84b319340424dcb02",
                "content_type": "image/png",
                "parent_sid": sid,
                "uri": f"{PREFIX}/Messages/{sid}/Media/ME85ebf7e12cb821f84b319340424dcb02.json",
                "date_created": "Wed, 21 Sep 2016 00:00:00 +0000",
            }
        ]
        return _page("media_list", media, f"{PREFIX}/Messages/{sid}/Media.json", 0, 50)

    @app.get(f"{PREFIX}/Messages/{{sid}}/Media/{{media_sid}}")
    def get_media(sid: str, media_sid: str) -> RedirectResponse:
        return RedirectResponse(f"{MEDIA_CDN}/{ACCOUNT_SID}/{media_sid}", status_code=302)

    @app.get(f"{PREFIX}/IncomingPhoneNumbers.json")
    def list_numbers(
        page_size: int = Query(50, alias="PageSize"),
        page: int = Query(0, alias="Page"),
    ) -> dict:
        return _page(
            "incoming_phone_numbers", numbers, f"{PREFIX}/IncomingPhoneNumbers.json", page, page_size
        )

    @app.get(f"{PREFIX}/IncomingPhoneNumbers/{{sid}}.json")
    def get_number(sid: str) -> Any:
        for number in numbers:
            if number["sid"] == sid:
                return number
        return _service_error(404, 20404, "The requested resource was not found")

    @app.post(f"{PREFIX}/IncomingPhoneNumbers.json", status_code=201)
    async def buy_number(request: Request) -> Any:
        form = await request.form()
        number = str(form.get("PhoneNumber", ""))
        if not E164_RE.match(number):
            return _service_error(400, 21421, f"{number} is not a valid number")
        bought = {**numbers[0], "sid": f"PN{len(numbers):032x}", "phone_number": number}
        numbers.append(bought)
        return bought

    return app


@pytest.fixture
def whatsapp_payload() -> bytes:
    return WHATSAPP_MESSAGE


@pytest.fixture
def delivered_payload() -> bytes:
    return json.dumps(DELIVERED_MESSAGE).encode("utf-8")


@pytest.fixture
def message_data() -> dict[str, Any]:
    """A fresh, mutable copy of a delivered message payload."""
    return json.loads(json.dumps(DELIVERED_MESSAGE))


@pytest.fixture
def fake_api() -> FastAPI:
    return build_fake_api()


@pytest.fixture
def client(fake_api: FastAPI) -> Iterator[Client]:
    with TestClient(fake_api) as http:
        yield Client(ACCOUNT_SID, AUTH_TOKEN, base_url="http://testserver", http_client=http)
