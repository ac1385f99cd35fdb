"""HTTP transport used to talk to a Skynet portal."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Protocol
from urllib.parse import urlencode

from skynet_utils.errors import PortalRequestError, PortalResponseError, PortalUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_PORTAL_URL = "https://siasky.net"
PORTAL_URL_ENV_VAR = "SKYNET_PORTAL_URL"
API_KEY_ENV_VAR = "SKYNET_API_KEY"
API_KEY_HEADER = "Skynet-Api-Key"


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    headers: Mapping[str, str]
    body: bytes

    def json(self) -> object:
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    def execute(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        accept_status: tuple[int, ...] = (),
        max_body_size: int | None = None,
    ) -> TransportResponse:
        """Send one request.

        Statuses >= 400 raise :class:`PortalRequestError` unless listed in
        ``accept_status``. Connection failures and timeouts raise
        :class:`PortalUnavailableError`. A body larger than
        ``max_body_size`` raises :class:`PortalResponseError` without being
        read in full.
        """


def normalize_portal_url(portal_url: str | None) -> str:
    url = (portal_url or "").strip() or DEFAULT_PORTAL_URL
    if url.startswith("http://"):
        url = url[len("http://") :]
    if not url.startswith("https://"):
        url = "https://" + url
    return url.rstrip("/")


def make_url(portal_url: str, path: str, query: Mapping[str, str] | None = None) -> str:
    url = f"{portal_url.rstrip('/')}/{path.lstrip('/')}"
    if query:
        params = urlencode(sorted(query.items()))
        if params:
            url = f"{url}?{params}"
    return url


def make_response_error(method: str, status_code: int, body: bytes) -> PortalRequestError:
    message = body.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(message)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("message"), str):
        message = parsed["message"]
    return PortalRequestError(
        f"{status_code} response from {method}: {message}",
        status_code=status_code,
        detail=message,
        body=body,
    )


@dataclass
class RequestsTransport:
    portal_url: str = ""
    api_key: str | None = None
    user_agent: str | None = None
    timeout: float = 30.0
    retries: int = 2
    _session: object = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        try:
            import requests
            from requests.adapters import HTTPAdapter
            from urllib3.util.retry import Retry
        except Exception as exc:  # pragma: no cover
            raise PortalUnavailableError(f"requests stack unavailable: {exc}") from exc

        self._session = requests.Session()
        # Connection-level retries only; a repeated POST could double-write.
        retry = Retry(
            total=max(0, int(self.retries)),
            connect=max(0, int(self.retries)),
            read=0,
            status=0,
            backoff_factor=0.2,
            allowed_methods=("GET", "HEAD"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

        if not self.portal_url:
            self.portal_url = os.getenv(PORTAL_URL_ENV_VAR, "")
        self.portal_url = normalize_portal_url(self.portal_url)
        if self.api_key is None:
            env_api_key = os.getenv(API_KEY_ENV_VAR)
            self.api_key = env_api_key.strip() or None if env_api_key else None

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        if extra:
            headers.update(extra)
        return headers

    def execute(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        accept_status: tuple[int, ...] = (),
        max_body_size: int | None = None,
    ) -> TransportResponse:
        url = make_url(self.portal_url, path, query)
        logger.debug("portal request: %s %s", method, url)
        kwargs: dict[str, object] = {}
        if max_body_size is not None:
            kwargs["stream"] = True
        try:
            response = self._session.request(
                method,
                url,
                data=body,
                headers=self._headers(headers),
                timeout=self.timeout,
                **kwargs,
            )
        except Exception as exc:
            raise PortalUnavailableError(f"could not execute {method} request: {exc}") from exc

        if max_body_size is None:
            content = response.content or b""
        else:
            content = _read_limited(response, max_body_size)
        if response.status_code >= 400 and response.status_code not in accept_status:
            raise make_response_error(method, response.status_code, content)
        return TransportResponse(
            status_code=response.status_code,
            headers={key.lower(): value for key, value in response.headers.items()},
            body=content,
        )


def _read_limited(response, max_body_size: int) -> bytes:
    """Read a streamed body, refusing anything larger than ``max_body_size``."""
    try:
        declared = {key.lower(): value for key, value in response.headers.items()}.get(
            "content-length", ""
        )
        if declared.isdigit() and int(declared) > max_body_size:
            raise PortalResponseError(
                f"response body of {declared} bytes exceeds the {max_body_size} byte limit"
            )
        chunks: list[bytes] = []
        received = 0
        for chunk in _iter_body(response):
            received += len(chunk)
            if received > max_body_size:
                raise PortalResponseError(f"response body exceeds the {max_body_size} byte limit")
            chunks.append(chunk)
        return b"".join(chunks)
    finally:
        response.close()


def _iter_body(response):
    chunks = response.iter_content(chunk_size=65536)
    while True:
        try:
            chunk = next(chunks)
        except StopIteration:
            return
        except Exception as exc:
            raise PortalUnavailableError(f"could not read response body: {exc}") from exc
        yield chunk


__all__ = [
    "RequestsTransport",
    "Transport",
    "TransportResponse",
    "make_url",
    "normalize_portal_url",
]
