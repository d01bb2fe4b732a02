"""Entry point for working with one configured StreamOne platform."""

from __future__ import annotations

from streamone_sdk.auth.session import Session
from streamone_sdk.auth.session_store import SessionStore
from streamone_sdk.config import Config
from streamone_sdk.policy.actor import Actor
from streamone_sdk.request.request import Request


class Platform:
    """Creates requests, sessions and actors that share one ``Config``."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def new_request(self, command: str, action: str) -> Request:
        return self.config.request_factory.new_request(command, action, self.config)

    def new_session(self, session_store: SessionStore | None = None) -> Session:
        """Create a ``Session``; it uses the configured store unless *session_store* is given."""
        return Session(self.config, session_store)

    def new_actor(self, session: Session | None = None) -> Actor:
        """Create an ``Actor``, acting as the session's user when *session* is given."""
        return Actor(self.config, session)
