"""A single signed call to the StreamOne API.

Pattern: Request Builder with Response Cache
---------------------------------------------
A ``Request`` is built for one command/action pair, configured through its
parameter and argument maps, and executed once.

  - *Parameters* travel in the query string and hold request metadata:
    API version, output format, authentication type, account, customer and
    timezone.  ``timestamp``, the identity parameters and ``signature`` are
    added when the request is sent.
  - *Arguments* travel in the POST body and are specific to the command.

How the request authenticates is delegated to an ``Authentication``
strategy (see ``streamone_sdk.request.signing``).

Before going to the network, ``execute()`` looks the request up in the
configured request cache.  A response whose header says ``cacheable`` is
stored there afterwards, so an identical request can be answered without a
second round-trip.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from typing import Any

from streamone_sdk.config import Config
from streamone_sdk.errors import NetworkError
from streamone_sdk.request.response import Response
from streamone_sdk.request.signing import (
    Authentication,
    DirectAuthentication,
    api_path,
    sign,
    url_encode,
)

logger = logging.getLogger(__name__)

_API_URL_PATTERN = re.compile(r"^(?:([a-zA-Z0-9+.-]+):/?/?)?([^/]*)(.*)$", re.IGNORECASE)

DEFAULT_PROTOCOL = "https"


def argument_value(value: Any) -> str:
    """Render a single argument the way the API expects it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class Request:
    """One API call, signed by the given authentication strategy."""

    def __init__(
        self,
        command: str,
        action: str,
        config: Config,
        authentication: Authentication | None = None,
    ) -> None:
        self.command = command
        self.action = action
        self.config = config
        self.authentication: Authentication = authentication or DirectAuthentication(config)

        self.parameters: dict[str, str] = {
            "api": "3",
            "format": "json",
            "authentication_type": config.authentication_type.value,
        }
        if config.default_account_id is not None:
            self.parameters["account"] = config.default_account_id
        self.arguments: dict[str, str] = {}

        # Protocol without trailing "://"; overrides the one in the API URL.
        self.request_protocol: str | None = None

    # -- scope parameters ----------------------------------------------------

    @property
    def account(self) -> str | None:
        """The account of this request; the first one if several are set."""
        accounts = self.accounts
        return accounts[0] if accounts else None

    @account.setter
    def account(self, account: str | None) -> None:
        if account is None:
            self.parameters.pop("account", None)
        else:
            self.parameters["account"] = account
        self.parameters.pop("customer", None)

    @property
    def accounts(self) -> list[str]:
        value = self.parameters.get("account")
        return value.split(",") if value is not None else []

    @accounts.setter
    def accounts(self, accounts: Iterable[str]) -> None:
        accounts = list(accounts)
        if accounts:
            self.parameters["account"] = ",".join(accounts)
        else:
            self.parameters.pop("account", None)
        self.parameters.pop("customer", None)

    @property
    def customer(self) -> str | None:
        return self.parameters.get("customer")

    @customer.setter
    def customer(self, customer: str | None) -> None:
        if customer is None:
            self.parameters.pop("customer", None)
        else:
            self.parameters["customer"] = customer
        self.parameters.pop("account", None)

    @property
    def timezone(self) -> str | None:
        """IANA name of the timezone dates in the response should use."""
        return self.parameters.get("timezone")

    @timezone.setter
    def timezone(self, timezone: str | None) -> None:
        if timezone is None:
            self.parameters.pop("timezone", None)
        else:
            self.parameters["timezone"] = timezone

    # -- arguments -----------------------------------------------------------

    def set_argument(self, name: str, value: Any) -> Request:
        """Set one POST argument.  ``None`` is sent as an empty string."""
        self.arguments[name] = argument_value(value)
        return self

    def set_argument_list(self, name: str, values: Iterable[Any]) -> Request:
        """Set one POST argument to a comma-separated list of *values*."""
        self.arguments[name] = ",".join(argument_value(v) for v in values)
        return self

    # -- URL assembly --------------------------------------------------------

    @property
    def path(self) -> str:
        return api_path(self.command, self.action)

    def api_protocol_host(self) -> tuple[str | None, str, str]:
        """Split the configured API URL into ``(protocol, host, prefix)``.

        Accepted forms are ``protocol://host/prefix``, ``protocol://host``,
        ``host/prefix`` and ``host``.  The protocol is ``None`` when the URL
        has none, and the prefix may be empty.
        """
        match = _API_URL_PATTERN.match(self.config.api_url)
        if match is None:
            return None, self.config.api_url, ""
        protocol, host, prefix = match.groups()
        return protocol or None, host, prefix

    def used_protocol(self) -> str:
        """The protocol to send with, including the trailing ``://``."""
        if self.request_protocol:
            return self.request_protocol + "://"
        protocol, _, _ = self.api_protocol_host()
        if protocol:
            return protocol + "://"
        return DEFAULT_PROTOCOL + "://"

    def timestamp(self) -> int:
        return int(time.time())

    def signed_parameters(self, timestamp: int) -> dict[str, str]:
        """Return the query parameters for *timestamp*, including ``signature``."""
        parameters = self.authentication.signing_parameters(self.parameters, timestamp)
        parameters["signature"] = sign(
            self.path, parameters, self.arguments, self.authentication.signing_key()
        )
        return parameters

    def url(self, timestamp: int) -> str:
        _, host, prefix = self.api_protocol_host()
        query = url_encode(self.signed_parameters(timestamp))
        return self.used_protocol() + host + prefix + self.path + "?" + query

    # -- execution -----------------------------------------------------------

    def cache_key(self) -> str:
        return f"s1:request:{self.path}?{url_encode(self.parameters)}#{url_encode(self.arguments)}"

    async def execute(self) -> Response:
        """Send the request, or answer it from the request cache.

        Never raises for transport problems; check ``Response.error``.
        """
        cached = self._retrieve_from_cache()
        if cached is not None:
            return cached

        url = self.url(self.timestamp())
        logger.debug("Calling %s", self.path)
        try:
            raw = await self.config.http_executor.send(url, self.arguments)
        except NetworkError as exc:
            logger.warning("API call %s failed: %s", self.path, exc)
            response = Response.from_error(exc)
        else:
            response = Response(raw)

        self.authentication.on_response(response)
        self._save_cache(response)
        return response

    def __repr__(self) -> str:
        return f"Request({self.command}/{self.action})"

    # -- private helpers -----------------------------------------------------

    def _retrieve_from_cache(self) -> Response | None:
        cache = self.config.request_cache
        key = self.cache_key()
        raw = cache.get(key)
        if raw is None:
            return None
        logger.debug("Cache hit for %s", self.path)
        return Response(raw, from_cache=True, cache_age=cache.age(key))

    def _save_cache(self, response: Response) -> None:
        if response.cacheable and not response.from_cache:
            self.config.request_cache.set(self.cache_key(), response.raw)
