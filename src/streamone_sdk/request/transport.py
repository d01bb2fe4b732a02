"""HTTP transport used to reach the API.

The request layer only needs one operation: POST a form body to a URL and
hand back the decoded JSON.  ``HttpExecutor`` names that capability so tests
and callers can substitute their own; ``HttpxExecutor`` is the default and
is built on an ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from streamone_sdk.errors import NetworkError
from streamone_sdk.request.signing import url_encode

logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HttpExecutor(Protocol):
    """Sends one POST request and returns the decoded JSON payload.

    Implementations raise ``NetworkError`` when the server cannot be reached
    or the payload is not JSON.
    """

    async def send(self, url: str, arguments: Mapping[str, str]) -> Any: ...


class HttpxExecutor:
    """POSTs form-encoded arguments with httpx.

    HTTP error statuses are not raised: the API reports failures inside the
    JSON envelope, so the body is decoded whatever the status code.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def send(self, url: str, arguments: Mapping[str, str]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    content=url_encode(arguments),
                    headers={"Content-Type": _FORM_CONTENT_TYPE},
                )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request to {_strip_query(url)} failed: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise NetworkError(
                f"Response from {_strip_query(url)} is not JSON (HTTP {resp.status_code})"
            ) from exc


def _strip_query(url: str) -> str:
    # The query string carries the signature; keep it out of messages.
    return url.split("?", 1)[0]
