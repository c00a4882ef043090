from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx

from .config import get_settings
from .deadline import Deadline
from .errors import RequestCancelled, ServiceError, TransportError
from .messages import MessageService
from .phonenumbers import IncomingNumberService

logger = logging.getLogger(__name__)

USER_AGENT = "sms-api/0.1.0 (python-httpx)"


class Client:
    """
    REST client bound to one account.

    Construct it explicitly and pass it around; there is no shared instance.
    An existing httpx.Client can be injected (tests pass a FastAPI
    TestClient); otherwise one is created and closed with this client.
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        *,
        base_url: str = "https://api.twilio.com",
        api_version: str = "2010-04-01",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.account_sid = account_sid
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout

        self._auth = httpx.BasicAuth(account_sid, auth_token)
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"}
        )

        self.messages = MessageService(self)
        self.incoming_numbers = IncomingNumberService(self)

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def account_path(self, resource: str) -> str:
        """'Messages.json' -> '/2010-04-01/Accounts/AC.../Messages.json'"""
        return f"/{self.api_version}/Accounts/{self.account_sid}/{resource}"

    def absolute_url(self, path_or_uri: str) -> str:
        if path_or_uri.startswith(("http://", "https://")):
            return path_or_uri
        return f"{self.base_url}/{path_or_uri.lstrip('/')}"

    def get(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
        deadline: Deadline | None = None,
    ) -> bytes:
        _, body = self._request("GET", path, params=params, deadline=deadline)
        return body

    def post(
        self,
        path: str,
        data: Mapping[str, Any],
        deadline: Deadline | None = None,
    ) -> bytes:
        _, body = self._request("POST", path, data=data, deadline=deadline)
        return body

    def resolve_redirect(self, path: str, deadline: Deadline | None = None) -> str:
        """
        GET a resource without following redirects and return where it points.

        Media resources answer with a 302 to the downloadable file; a 2xx
        answer means the resource is served directly, so its own URL is returned.
        """
        resp, _ = self._request("GET", path, deadline=deadline, follow_redirects=False)
        location = resp.headers.get("Location")
        if resp.is_redirect and location:
            return str(resp.url.join(location))
        return str(resp.url)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, Any] | None = None,
        deadline: Deadline | None = None,
        follow_redirects: bool = True,
    ) -> tuple[httpx.Response, bytes]:
        """
        Perform one HTTP exchange and return the response with its raw body.

        - Caller deadline expired/cancelled (before or during the exchange) -> RequestCancelled
        - Connection failures and our own timeouts -> TransportError
        - Non-2xx (other than a redirect we were asked not to follow) -> ServiceError
        """
        remaining = None
        if deadline is not None:
            deadline.check()
            remaining = deadline.remaining()

        url = self.absolute_url(path)
        timeout = self.timeout if remaining is None else remaining
        logger.debug("%s %s params=%s", method, url, dict(params) if params else {})

        try:
            with self._http.stream(
                method,
                url,
                params=params,
                data=data,
                auth=self._auth,
                timeout=timeout,
                follow_redirects=follow_redirects,
            ) as resp:
                if deadline is not None:
                    deadline.check()
                chunks: list[bytes] = []
                for chunk in resp.iter_bytes():
                    if deadline is not None:
                        deadline.check()
                    chunks.append(chunk)
                body = b"".join(chunks)
        except httpx.TimeoutException as exc:
            if deadline is not None and deadline.done:
                raise RequestCancelled(f"{method} {url}: deadline exceeded") from exc
            raise TransportError(f"{method} {url}: timed out ({exc})") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url}: {exc}") from exc

        if not resp.is_success and not (resp.is_redirect and not follow_redirects):
            logger.error(
                "%s %s failed: %s %s - %s",
                method,
                url,
                resp.status_code,
                resp.reason_phrase,
                body[:500].decode("utf-8", "replace"),
            )
            raise ServiceError.from_response(resp.status_code, body, resp.reason_phrase)
        return resp, body


def get_client(http_client: httpx.Client | None = None) -> Client:
    settings = get_settings()

    if not settings.account_sid or not settings.auth_token:
        raise RuntimeError(
            "Twilio credentials are not configured (TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN)"
        )

    return Client(
        settings.account_sid,
        settings.auth_token,
        base_url=settings.base_url,
        api_version=settings.api_version,
        timeout=settings.timeout,
        http_client=http_client,
    )
