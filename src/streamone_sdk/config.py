"""Client configuration for the StreamOne SDK.

Pattern: Explicit Configuration Object
---------------------------------------
A single ``Config`` is created per client and passed by reference into every
component that needs it: requests, sessions and actors.  Nothing reads
ambient globals.

The *identity* part of the configuration (authentication type, authenticator
ID and pre-shared key) is fixed at construction and exposed read-only.  The
remaining attributes are collaborators that may be swapped after
construction: the API endpoint, the default account, the request factory,
both caches, the session store and the HTTP executor.

Settings can also be loaded from a YAML file (``config/settings.yaml``), with
environment variables taking precedence for the values that should not be
committed to disk.
"""

from __future__ import annotations

import enum
import logging
import os
import pathlib
from typing import TYPE_CHECKING, Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from streamone_sdk.auth.session_store import MemorySessionStore, SessionStore
from streamone_sdk.cache.base import Cache, MemoryCache, NoopCache
from streamone_sdk.cache.file import FileCache
from streamone_sdk.errors import ConfigError

if TYPE_CHECKING:
    from streamone_sdk.request.factory import RequestFactory
    from streamone_sdk.request.transport import HttpExecutor

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.streamonecloud.net"


class AuthenticationType(enum.Enum):
    """How requests authenticate against the API.

    The value is what is sent as the ``authentication_type`` parameter and is
    also the name of the identity parameter added when signing.
    """

    USER = "user"
    APPLICATION = "application"


class Config:
    """Configuration shared by all requests, sessions and actors of one client."""

    def __init__(
        self,
        authentication_type: AuthenticationType,
        authenticator_id: str,
        authenticator_psk: str,
        *,
        api_url: str = DEFAULT_API_URL,
        default_account_id: str | None = None,
        request_factory: RequestFactory | None = None,
        request_cache: Cache | None = None,
        token_cache: Cache | None = None,
        use_session_for_token_cache: bool = True,
        session_store: SessionStore | None = None,
        http_executor: HttpExecutor | None = None,
    ) -> None:
        from streamone_sdk.request.factory import StandardRequestFactory
        from streamone_sdk.request.transport import HttpxExecutor

        self._authentication_type = authentication_type
        self._authenticator_id = authenticator_id
        self._authenticator_psk = authenticator_psk

        self.api_url = api_url
        self.default_account_id = default_account_id
        self.request_factory: RequestFactory = request_factory or StandardRequestFactory()
        self.request_cache: Cache = request_cache or NoopCache()
        self.token_cache: Cache = token_cache or NoopCache()
        self.use_session_for_token_cache = use_session_for_token_cache
        self.session_store: SessionStore = session_store or MemorySessionStore()
        self.http_executor: HttpExecutor = http_executor or HttpxExecutor()

    @property
    def authentication_type(self) -> AuthenticationType:
        return self._authentication_type

    @property
    def authenticator_id(self) -> str:
        return self._authenticator_id

    @property
    def authenticator_psk(self) -> str:
        return self._authenticator_psk

    def set_cache(self, cache: Cache) -> None:
        """Use *cache* for both request responses and roles/tokens."""
        self.request_cache = cache
        self.token_cache = cache

    def __repr__(self) -> str:
        return (
            f"Config(authentication_type={self._authentication_type.value}, "
            f"authenticator_id={self._authenticator_id}, api_url={self.api_url})"
        )


# ---------------------------------------------------------------------------
# Settings file
# ---------------------------------------------------------------------------


class ApiSettings(BaseModel):
    """Endpoint and identity settings."""

    url: str = Field(default=DEFAULT_API_URL, description="Base URL of the API, optionally with protocol and prefix.")
    authentication_type: AuthenticationType = Field(
        default=AuthenticationType.APPLICATION,
        description="Authenticate as a 'user' or an 'application'.",
    )
    authenticator_id: str = Field(default="", description="ID of the user or application.")
    psk: str = Field(default="", description="Pre-shared key. Falls back to STREAMONE_PSK env var.")
    default_account: str | None = Field(default=None, description="Account used when a request sets none.")


class CacheSettings(BaseModel):
    """Which cache backend to use for responses, roles and tokens."""

    backend: Literal["noop", "memory", "file"] = "noop"
    directory: str = Field(default=".cache/streamone", description="Directory for the file backend.")
    expiration: float = Field(default=300.0, description="Seconds before a file cache entry expires.")


class SessionSettings(BaseModel):
    use_for_token_cache: bool = True


class HttpSettings(BaseModel):
    timeout: float = Field(default=10.0, description="Timeout in seconds for a single API call.")


class Settings(BaseModel):
    """Top-level structure of ``settings.yaml``."""

    api: ApiSettings = Field(default_factory=ApiSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    def resolve(self) -> Settings:
        """Return a copy with env-var fallbacks applied."""
        api = self.api
        auth_type = os.getenv("STREAMONE_AUTHENTICATION_TYPE")
        try:
            resolved_type = AuthenticationType(auth_type) if auth_type else api.authentication_type
        except ValueError as exc:
            raise ConfigError(f"Invalid STREAMONE_AUTHENTICATION_TYPE: {auth_type}") from exc
        resolved_api = api.model_copy(
            update={
                "url": os.getenv("STREAMONE_API_URL", api.url),
                "authentication_type": resolved_type,
                "authenticator_id": os.getenv("STREAMONE_AUTHENTICATOR_ID", api.authenticator_id),
                "psk": os.getenv("STREAMONE_PSK") or api.psk,
                "default_account": os.getenv("STREAMONE_DEFAULT_ACCOUNT", api.default_account),
            }
        )
        return self.model_copy(update={"api": resolved_api})

    def build_config(self) -> Config:
        """Construct a ``Config`` from these settings."""
        from streamone_sdk.request.transport import HttpxExecutor

        if not self.api.authenticator_id:
            raise ConfigError("api.authenticator_id is required")

        cache = _build_cache(self.cache)
        config = Config(
            self.api.authentication_type,
            self.api.authenticator_id,
            self.api.psk,
            api_url=self.api.url,
            default_account_id=self.api.default_account,
            use_session_for_token_cache=self.session.use_for_token_cache,
            http_executor=HttpxExecutor(timeout=self.http.timeout),
        )
        config.set_cache(cache)
        return config


def load_settings(path: str | pathlib.Path) -> Settings:
    """Parse *path* into ``Settings`` and apply environment fallbacks."""
    path = pathlib.Path(path)
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    with open(path) as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigError("Settings file must contain a mapping at the top level")
    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {path}: {exc}") from exc
    return settings.resolve()


def load_config(path: str | pathlib.Path) -> Config:
    """Load settings from *path* and return a ready-to-use ``Config``."""
    config = load_settings(path).build_config()
    logger.debug("Loaded %r from %s", config, path)
    return config


def _build_cache(settings: CacheSettings) -> Cache:
    if settings.backend == "memory":
        return MemoryCache()
    if settings.backend == "file":
        return FileCache(settings.directory, settings.expiration)
    return NoopCache()


def settings_as_dict(settings: Settings) -> dict[str, Any]:
    """Dump *settings* without the pre-shared key, for display."""
    data = settings.model_dump(mode="json")
    data["api"]["psk"] = "***" if settings.api.psk else ""
    return data
