"""Cache backend that keeps its values inside a session store.

The session store has no notion of age, so every value is wrapped as
``{"time": <stored at>, "value": <value>}``.  Values live exactly as long as
the session: ending or expiring the session drops them.  Without an active
session every lookup is a miss and every store is silently skipped.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from streamone_sdk.auth.session_store import SessionStore
from streamone_sdk.errors import NoSessionError, NoSuchKeyError

logger = logging.getLogger(__name__)


class SessionCache:
    """A ``Cache`` backed by the auxiliary cache of a ``SessionStore``."""

    def __init__(self, session_store: SessionStore) -> None:
        self.session_store = session_store

    def get(self, key: str) -> Any | None:
        data = self._get_data(key)
        return data.get("value") if data is not None else None

    def age(self, key: str) -> float:
        data = self._get_data(key)
        if data is None or not isinstance(data.get("time"), (int, float)):
            return -1
        return time.time() - data["time"]

    def set(self, key: str, value: Any) -> None:
        try:
            self.session_store.set_cache_key(key, {"time": time.time(), "value": value})
        except NoSessionError:
            logger.debug("Not caching %s: no active session", key)

    # -- private helpers -----------------------------------------------------

    def _get_data(self, key: str) -> dict[str, Any] | None:
        try:
            data = self.session_store.get_cache_key(key)
        except (NoSessionError, NoSuchKeyError):
            return None
        if not isinstance(data, dict):
            return None
        return data
