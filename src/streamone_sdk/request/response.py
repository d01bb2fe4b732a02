"""API response envelope.

Every API call returns ``{"header": {...}, "body": ...}``.  The header always
carries ``status`` and ``statusmessage`` and may carry extra fields such as
``cacheable`` or ``sessiontimeout``.  The body is opaque until a caller asks
for it as a particular type.

A ``Response`` never raises on a malformed payload.  It reports ``valid`` and
``success`` instead, and ``typed_body`` returns ``None`` when the body does
not fit the requested shape.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from streamone_sdk.errors import ApiError, DecodeError, NetworkError, StreamOneError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Status(enum.IntEnum):
    """Status codes the API reports in the response header."""

    UNKNOWN = -1
    OK = 0
    INTERNAL_ERROR = 1
    TIMESTAMP_OUT_OF_RANGE = 2
    AUTHENTICATION_FAILED = 3
    ACCESS_DENIED = 4
    INVALID_ACTION = 5
    INPUT_ERROR = 6
    UNKNOWN_PARAMETER = 7
    RATE_LIMITED = 8
    INVALID_TIMEZONE = 9
    API_IN_READONLY_MODE = 10
    INVALID_ACTION_TYPE = 90

    CUSTOMER_NOT_FOUND = 250

    APPLICATION_NOT_FOUND = 260
    APPLICATION_NOT_PERMITTED = 261
    APPLICATION_ROLE_ALREADY_ASSIGNED = 262
    APPLICATION_ROLE_NOT_ASSIGNED = 263

    ROLE_NOT_FOUND = 270
    TOKEN_NOT_FOUND = 271
    ROLE_ALREADY_HAS_TOKEN = 272
    ROLE_DOES_NOT_HAVE_TOKEN = 273
    ROLE_NOT_PERMITTED = 274
    ROLE_STILL_USED = 275

    SESSION_NEEDS_V2_HASH = 280
    SESSION_INVALID = 281
    SESSION_NOT_FOUND = 282

    ACCOUNT_NOT_FOUND = 290

    USER_NOT_FOUND = 310
    USER_NOT_PERMITTED = 311

    @classmethod
    def lookup(cls, code: int) -> Status | int:
        """Return the matching member, or *code* itself when it is not known."""
        try:
            return cls(code)
        except ValueError:
            return code


class Header(BaseModel):
    """The decoded header of a response.

    Fields other than ``status`` and ``statusmessage`` are kept as extras and
    are reachable through ``all_fields``.
    """

    model_config = ConfigDict(extra="allow", strict=True)

    status: int
    statusmessage: str

    @property
    def all_fields(self) -> dict[str, Any]:
        return {"status": self.status, "statusmessage": self.statusmessage, **(self.model_extra or {})}


class Response:
    """A parsed API envelope, or the error that prevented getting one."""

    def __init__(
        self,
        raw: Any = None,
        *,
        error: StreamOneError | None = None,
        from_cache: bool = False,
        cache_age: float = -1,
    ) -> None:
        self.raw = raw
        self.error = error
        self.from_cache = from_cache
        self.cache_age = cache_age
        self.header: Header | None = None
        self.body: Any = None
        self._has_body = False

        if error is None:
            self._parse(raw)

    @classmethod
    def from_error(cls, error: StreamOneError) -> Response:
        return cls(None, error=error)

    @property
    def valid(self) -> bool:
        return self.error is None and self.header is not None and self._has_body

    @property
    def status(self) -> Status | int:
        if self.header is None:
            return Status.UNKNOWN
        return Status.lookup(self.header.status)

    @property
    def status_message(self) -> str:
        if self.header is not None:
            return self.header.statusmessage
        if self.error is not None:
            return str(self.error)
        return "Invalid response"

    @property
    def success(self) -> bool:
        return self.valid and self.header is not None and self.header.status == Status.OK

    @property
    def cacheable(self) -> bool:
        if not self.success or self.header is None:
            return False
        return self.header.all_fields.get("cacheable") is True

    def typed_body(self, type_: type[T] | Any) -> T | None:
        """Decode the body as *type_*, or return ``None`` if it does not fit."""
        if not self.valid:
            return None
        try:
            return TypeAdapter(type_).validate_python(self.body)
        except ValidationError as exc:
            logger.debug("Response body does not decode as %s: %s", type_, exc)
            return None

    def __repr__(self) -> str:
        return (
            f"Response(status={self.status!r}, valid={self.valid}, "
            f"from_cache={self.from_cache})"
        )

    # -- private helpers -----------------------------------------------------

    def _parse(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            return
        try:
            self.header = Header.model_validate(raw.get("header"))
        except ValidationError:
            self.header = None
            return
        if "body" in raw:
            self._has_body = True
            self.body = raw["body"]


def error_from_response(response: Response) -> StreamOneError:
    """Map an unsuccessful *response* to the exception a caller should see.

    Also used for a successful response whose body turned out not to decode.
    """
    if response.error is not None:
        return response.error
    if not response.valid:
        return NetworkError("Invalid response envelope")
    if not response.success:
        return ApiError(int(response.status), response.status_message)
    return DecodeError("Response body has an unexpected shape")
