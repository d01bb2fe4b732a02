"""Exception taxonomy for the StreamOne SDK.

Every failure a caller can observe is one of these types.  Transport and
envelope problems are first recorded on a ``Response`` (``Request.execute``
never raises for them) and only become exceptions when a higher layer such as
the ``Actor`` needs a decoded body to continue.
"""

from __future__ import annotations


class StreamOneError(Exception):
    """Base class for all SDK errors."""


class NetworkError(StreamOneError):
    """Raised when the API could not be reached or did not return JSON."""


class ApiError(StreamOneError):
    """Raised when the API returned a well-formed envelope with a non-OK status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"API error {status}: {message}")
        self.status = status
        self.message = message


class DecodeError(StreamOneError):
    """Raised when a response body does not match the expected shape."""


class NoSessionError(StreamOneError):
    """Raised when an operation requires an active session but none exists."""


class NoSuchKeyError(StreamOneError):
    """Raised when a session cache lookup misses."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No such cache key: {key}")
        self.key = key


class UnsupportedAuthenticationError(StreamOneError):
    """Raised when a session request is attempted under user authentication."""


class ConfigError(StreamOneError):
    """Raised when the settings file is malformed."""
