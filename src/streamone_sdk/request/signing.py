"""Request signing for the StreamOne API.

Pattern: Shared-Secret Request Signing
---------------------------------------
Every request carries an HMAC-SHA1 signature so the server can verify it
without the pre-shared key ever being transmitted.  The signed message is
the canonical string::

    /api/{command}/{action}?{urlencode(signing parameters)}&{urlencode(arguments)}

where the signing parameters are the request parameters plus ``timestamp``
and the identity parameters contributed by the authentication strategy.
The final query string is the signing parameters plus ``signature``.

How a request authenticates is a pluggable strategy rather than a subclass:

  - ``DirectAuthentication`` signs as the configured user or application
    with the pre-shared key.
  - ``SessionAuthentication`` wraps a direct strategy, adds the session ID
    to the signed parameters, appends the session key to the signing key,
    and refreshes the session deadline from every response.

The encoding here must match the server byte for byte; it is deliberately
not ``urllib.parse.urlencode``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import urllib.parse
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from streamone_sdk.config import AuthenticationType, Config
from streamone_sdk.errors import NoSessionError, UnsupportedAuthenticationError

if TYPE_CHECKING:
    from streamone_sdk.auth.session_store import SessionStore
    from streamone_sdk.request.response import Response

logger = logging.getLogger(__name__)

# The URL-query-safe set minus "=&?/+:,", plus space.  Alphanumerics and
# "_.-~" are always safe for ``urllib.parse.quote``.
_SAFE_CHARACTERS = "!$'()*;@ "


def _quote(value: str) -> str:
    return urllib.parse.quote(value, safe=_SAFE_CHARACTERS)


def url_encode(values: Mapping[str, str]) -> str:
    """Encode *values* as ``key=value`` pairs joined by ``&``.

    Keys are sorted case-sensitively.  Spaces in values become ``+``.
    """
    pairs = []
    for key in sorted(values):
        pairs.append(_quote(key) + "=" + _quote(values[key]).replace(" ", "+"))
    return "&".join(pairs)


def hmac_sha1(message: str, key: str) -> str:
    """Return the lowercase hex HMAC-SHA1 of *message* under *key*."""
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha1).hexdigest()


def api_path(command: str, action: str) -> str:
    return f"/api/{command}/{action}"


def signing_string(path: str, parameters: Mapping[str, str], arguments: Mapping[str, str]) -> str:
    """Build the canonical message that gets signed."""
    return path + "?" + url_encode(parameters) + "&" + url_encode(arguments)


def sign(path: str, parameters: Mapping[str, str], arguments: Mapping[str, str], key: str) -> str:
    """Compute the signature of a request.

    *parameters* must be the full signing parameter set, never including
    ``signature`` itself.
    """
    return hmac_sha1(signing_string(path, parameters, arguments), key)


# ---------------------------------------------------------------------------
# Authentication strategies
# ---------------------------------------------------------------------------


class Authentication(Protocol):
    """Hooks a request uses to authenticate itself."""

    def signing_key(self) -> str: ...

    def signing_parameters(self, parameters: Mapping[str, str], timestamp: int) -> dict[str, str]: ...

    def on_response(self, response: Response) -> None: ...


class DirectAuthentication:
    """Sign as the configured user or application."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def signing_key(self) -> str:
        return self.config.authenticator_psk

    def signing_parameters(self, parameters: Mapping[str, str], timestamp: int) -> dict[str, str]:
        signing = dict(parameters)
        signing["timestamp"] = str(timestamp)
        signing[self.config.authentication_type.value] = self.config.authenticator_id
        return signing

    def on_response(self, response: Response) -> None:
        pass


class SessionAuthentication:
    """Sign within an active session.

    Only application authentication can carry a session; the API rejects
    session requests from user authenticators.
    """

    def __init__(self, config: Config, session_store: SessionStore) -> None:
        if config.authentication_type is AuthenticationType.USER:
            raise UnsupportedAuthenticationError(
                "Sessions require application authentication"
            )
        self.config = config
        self.session_store = session_store
        self._direct = DirectAuthentication(config)

    def signing_key(self) -> str:
        return self._direct.signing_key() + self.session_store.key

    def signing_parameters(self, parameters: Mapping[str, str], timestamp: int) -> dict[str, str]:
        signing = self._direct.signing_parameters(parameters, timestamp)
        signing["session"] = self.session_store.session_id
        return signing

    def on_response(self, response: Response) -> None:
        header = response.header
        if header is None:
            return
        timeout = header.all_fields.get("sessiontimeout")
        # bool is an int subclass but never a valid timeout.
        if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
            try:
                self.session_store.set_timeout(timeout)
            except NoSessionError:
                logger.debug("Session ended before its timeout could be refreshed")
