"""Construction of requests.

``Config.request_factory`` decides which ``Request`` objects the rest of the
SDK works with.  Replacing it lets a caller hand out instrumented or
pre-configured requests without touching sessions or actors.
"""

from __future__ import annotations

from typing import Protocol

from streamone_sdk.auth.session_store import SessionStore
from streamone_sdk.config import AuthenticationType, Config
from streamone_sdk.request.request import Request
from streamone_sdk.request.signing import SessionAuthentication


class RequestFactory(Protocol):
    def new_request(self, command: str, action: str, config: Config) -> Request: ...

    def new_session_request(
        self, command: str, action: str, config: Config, session_store: SessionStore
    ) -> Request | None: ...


class StandardRequestFactory:
    """Builds plain ``Request`` objects."""

    def new_request(self, command: str, action: str, config: Config) -> Request:
        return Request(command, action, config)

    def new_session_request(
        self, command: str, action: str, config: Config, session_store: SessionStore
    ) -> Request | None:
        """Build a request signed within the session held by *session_store*.

        Returns ``None`` under user authentication, which cannot carry a
        session.
        """
        if config.authentication_type is AuthenticationType.USER:
            return None
        return Request(command, action, config, SessionAuthentication(config, session_store))
