"""Session lifecycle against the StreamOne API.

Pattern: Challenge-Response Login into a Session Store
-------------------------------------------------------
An application can log a *user* in and then act on that user's behalf.  The
login takes two round-trips:

  1. ``session/initialize`` with the username and the user's IP address
     returns a bcrypt salt and a one-time challenge.
  2. ``session/create`` with the challenge and the password response (see
     ``streamone_sdk.auth.password``) returns the session ID, the session
     key, the user ID and a timeout.

The resulting identity is persisted in a ``SessionStore`` and is the only
session state: a ``Session`` object holds no credentials of its own, so any
number of ``Session`` objects over the same store see the same session.

A session is either active or inactive.  It becomes inactive when ``end()``
is called, when its deadline passes, or when the store is cleared.  The
deadline moves forward with every session request whose response carries a
``sessiontimeout`` header.
"""

from __future__ import annotations

import dataclasses
import logging

from pydantic import BaseModel, ConfigDict, Field

from streamone_sdk.auth.password import password_response, v2_password_hash
from streamone_sdk.auth.session_store import SessionStore
from streamone_sdk.config import Config
from streamone_sdk.errors import NoSessionError
from streamone_sdk.request.request import Request
from streamone_sdk.request.response import Response

logger = logging.getLogger(__name__)


class SessionInitialize(BaseModel):
    """Body of a successful ``session/initialize`` response."""

    model_config = ConfigDict(populate_by_name=True)

    challenge: str
    salt: str
    needs_v2_hash: bool = Field(alias="needsv2hash")


class SessionCreate(BaseModel):
    """Body of a successful ``session/create`` response."""

    id: str
    key: str
    timeout: int
    user: str


@dataclasses.dataclass(frozen=True)
class SessionStartResult:
    """Outcome of ``Session.start``.

    Attributes:
        success:       Whether a session is now active.
        last_response: The last response received; the failing one when
                       ``success`` is false.
    """

    success: bool
    last_response: Response

    def __bool__(self) -> bool:
        return self.success


class Session:
    """Starts, ends and signs requests within an API session."""

    def __init__(self, config: Config, session_store: SessionStore | None = None) -> None:
        self.config = config
        self.session_store = session_store if session_store is not None else config.session_store

    @property
    def is_active(self) -> bool:
        return self.session_store.has_session

    async def start(self, username: str, password: str, ip: str) -> SessionStartResult:
        """Log *username* in and store the new session.

        *ip* is the address of the user, used by the API for rate limiting;
        any string that identifies the device works as well.
        """
        factory = self.config.request_factory

        initialize_request = factory.new_request("session", "initialize", self.config)
        initialize_request.set_argument("user", username).set_argument("userip", ip)
        initialize_response = await initialize_request.execute()
        if not initialize_response.success:
            logger.info("Session initialize for %s failed: %s", username, initialize_response.status_message)
            return SessionStartResult(False, initialize_response)

        initialize = initialize_response.typed_body(SessionInitialize)
        if initialize is None:
            return SessionStartResult(False, initialize_response)

        response = password_response(password, initialize.salt, initialize.challenge)
        if response is None:
            return SessionStartResult(False, initialize_response)

        create_request = factory.new_request("session", "create", self.config)
        create_request.set_argument("challenge", initialize.challenge).set_argument("response", response)
        if initialize.needs_v2_hash:
            create_request.set_argument("v2hash", v2_password_hash(password))

        create_response = await create_request.execute()
        if not create_response.success:
            logger.info("Session create for %s failed: %s", username, create_response.status_message)
            return SessionStartResult(False, create_response)

        created = create_response.typed_body(SessionCreate)
        if created is None:
            return SessionStartResult(False, create_response)

        self.session_store.set_session(created.id, created.key, created.user, created.timeout)
        logger.info("Session started for %s (user %s, timeout %ds)", username, created.user, created.timeout)
        return SessionStartResult(True, create_response)

    async def end(self) -> bool:
        """End the active session.

        The store is cleared whatever the API answers, so the session is
        inactive afterwards.  Returns whether the API confirmed the delete.
        """
        if not self.is_active:
            return False

        request = self.new_request("session", "delete")
        if request is None:
            self.session_store.clear_session()
            return False

        try:
            response = await request.execute()
        except NoSessionError:
            logger.info("Session expired before it could be ended")
            return False
        finally:
            self.session_store.clear_session()
        logger.info("Session ended (confirmed=%s)", response.success)
        return response.success

    def new_request(self, command: str, action: str) -> Request | None:
        """Build a request signed within this session, or ``None`` when inactive."""
        if not self.is_active:
            return None
        return self.config.request_factory.new_session_request(
            command, action, self.config, self.session_store
        )
