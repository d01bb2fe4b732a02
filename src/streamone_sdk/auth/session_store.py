"""Storage for the identity of an API session.

Pattern: Session Store
-----------------------
A session is created by the API and identified by four values: its ID, the
key used to sign requests, the ID of the logged-in user and a timeout.  The
``SessionStore`` keeps those values, stores the timeout as an absolute
deadline, and also offers a small key/value cache whose lifetime is exactly
the lifetime of the session.

A store "has a session" only while all four values are present and the
deadline lies in the future.  Once the deadline passes the store clears
itself on the next check.  Every read on an inactive store raises
``NoSessionError``, so callers cannot sign with stale credentials by
accident.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

from streamone_sdk.errors import NoSessionError, NoSuchKeyError


class SessionStore(Protocol):
    """Operations a session store provides."""

    @property
    def has_session(self) -> bool: ...

    def clear_session(self) -> None: ...

    def set_session(self, session_id: str, key: str, user_id: str, timeout: float) -> None: ...

    def set_timeout(self, timeout: float) -> None: ...

    @property
    def session_id(self) -> str: ...

    @property
    def key(self) -> str: ...

    @property
    def user_id(self) -> str: ...

    @property
    def timeout(self) -> float: ...

    def has_cache_key(self, key: str) -> bool: ...

    def get_cache_key(self, key: str) -> Any: ...

    def set_cache_key(self, key: str, value: Any) -> None: ...

    def unset_cache_key(self, key: str) -> None: ...


class MemorySessionStore:
    """Keeps session information in memory for the lifetime of this object."""

    def __init__(self) -> None:
        self._session_id: str | None = None
        self._key: str | None = None
        self._user_id: str | None = None
        self._deadline: float | None = None
        self._cache: dict[str, Any] = {}

    @property
    def has_session(self) -> bool:
        if (
            self._session_id is None
            or self._key is None
            or self._user_id is None
            or self._deadline is None
        ):
            return False
        if self._deadline < time.time():
            self.clear_session()
            return False
        return True

    def clear_session(self) -> None:
        self._session_id = None
        self._key = None
        self._user_id = None
        self._deadline = None
        self._cache = {}

    def set_session(self, session_id: str, key: str, user_id: str, timeout: float) -> None:
        """Store a new session; *timeout* is in seconds from now."""
        self._session_id = session_id
        self._key = key
        self._user_id = user_id
        self._deadline = time.time() + timeout

    def set_timeout(self, timeout: float) -> None:
        """Move the deadline of the active session to *timeout* seconds from now."""
        self._require_session()
        self._deadline = time.time() + timeout

    @property
    def session_id(self) -> str:
        self._require_session()
        return self._session_id  # type: ignore[return-value]

    @property
    def key(self) -> str:
        self._require_session()
        return self._key  # type: ignore[return-value]

    @property
    def user_id(self) -> str:
        self._require_session()
        return self._user_id  # type: ignore[return-value]

    @property
    def timeout(self) -> float:
        """Seconds left before the session expires."""
        self._require_session()
        return self._deadline - time.time()  # type: ignore[operator]

    def has_cache_key(self, key: str) -> bool:
        self._require_session()
        return key in self._cache

    def get_cache_key(self, key: str) -> Any:
        if not self.has_cache_key(key):
            raise NoSuchKeyError(key)
        return self._cache[key]

    def set_cache_key(self, key: str, value: Any) -> None:
        self._require_session()
        self._cache[key] = value

    def unset_cache_key(self, key: str) -> None:
        if not self.has_cache_key(key):
            raise NoSuchKeyError(key)
        del self._cache[key]

    # -- private helpers -----------------------------------------------------

    def _require_session(self) -> None:
        if not self.has_session:
            raise NoSessionError("No active session")
