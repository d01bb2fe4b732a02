"""Token resolution for the identity requests are made as.

Pattern: Role-Coverage Token Check
-----------------------------------
An ``Actor`` is the user or application requests are made on behalf of,
optionally scoped to one customer or to one or more accounts (never both).
``has_token(token)`` decides whether the actor holds a permission token in
that scope:

  1. Fetch the actor's roles (``{user|application}/getmyroles``), from the
     token cache when possible.
  2. If the actor is scoped to accounts and any role is held in a customer,
     ask the API (``api/mytokens``).  Which customer an account belongs to
     cannot be derived from role data, so a customer role may or may not
     cover the account.
  3. Without accounts, the token is held if any role that covers the
     actor's customer (or any global role) grants it.
  4. With accounts, *every* account needs at least one covering role that
     grants the token.

A role *covers* a (customer, account) pair when it is global, when it is held
in the given customer, or when it is held in the given account.

Fetch failures are raised to the caller; the token is then not held.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any

from streamone_sdk.cache.base import Cache
from streamone_sdk.cache.session import SessionCache
from streamone_sdk.config import AuthenticationType, Config
from streamone_sdk.errors import NoSessionError, UnsupportedAuthenticationError
from streamone_sdk.policy.models import RoleInActor
from streamone_sdk.request.response import Response, error_from_response

if TYPE_CHECKING:
    from streamone_sdk.auth.session import Session
    from streamone_sdk.request.request import Request

logger = logging.getLogger(__name__)


class ActorType(enum.Enum):
    USER = "User"
    APPLICATION = "Application"

    @property
    def api_command(self) -> str:
        """The API command that serves roles for this kind of actor."""
        return self.value.lower()


def is_super_of(role: RoleInActor, customer: str | None, account: str | None) -> bool:
    """Return whether *role* covers the given customer and account.

    A customer role never covers an account, even one owned by that
    customer; ``Actor.has_token`` asks the API for that case instead.
    """
    if role.customer is None and role.account is None:
        return True
    if role.account is None and customer is not None and role.customer is not None:
        return role.customer.id == customer
    if role.account is not None and account is not None:
        return role.account.id == account
    return False


def role_grants(role: RoleInActor, token: str, customer: str | None, account: str | None) -> bool:
    return is_super_of(role, customer, account) and token in role.role.tokens


class Actor:
    """A user or application, optionally within a session, scoped to accounts or a customer."""

    def __init__(self, config: Config, session: Session | None = None) -> None:
        self.config = config
        self.session = session

        self.token_cache: Cache
        if session is not None and config.use_session_for_token_cache:
            self.token_cache = SessionCache(session.session_store)
        else:
            self.token_cache = config.token_cache

        self._customer: str | None = None
        self._accounts: list[str] = []
        if config.default_account_id is not None:
            self._accounts = [config.default_account_id]

    # -- scope ---------------------------------------------------------------

    @property
    def customer(self) -> str | None:
        return self._customer

    @customer.setter
    def customer(self, customer: str | None) -> None:
        self._customer = customer
        self._accounts = []

    @property
    def accounts(self) -> list[str]:
        return list(self._accounts)

    @accounts.setter
    def accounts(self, accounts: list[str]) -> None:
        self._accounts = list(accounts)
        self._customer = None

    @property
    def actor_type(self) -> ActorType:
        if self.session is not None or self.config.authentication_type is AuthenticationType.USER:
            return ActorType.USER
        return ActorType.APPLICATION

    # -- requests ------------------------------------------------------------

    def new_request(self, command: str, action: str) -> Request:
        """Build a request scoped to this actor's customer or accounts.

        With neither set, the configured default account is removed so the
        request is not scoped at all.  Raises ``NoSessionError`` when the
        actor's session is no longer active.
        """
        request = self._new_clean_request(command, action)
        if self._customer is not None:
            request.customer = self._customer
        elif self._accounts:
            request.accounts = self._accounts
        else:
            request.account = None
        return request

    # -- token resolution ----------------------------------------------------

    async def has_token(self, token: str) -> bool:
        """Return whether this actor holds *token* in its current scope."""
        roles = await self.get_roles()

        if self._should_check_my_tokens(roles):
            tokens = await self.get_my_tokens()
            return token in tokens

        if not self._accounts:
            return any(role_grants(role, token, self._customer, None) for role in roles)

        return all(
            any(role_grants(role, token, None, account) for role in roles)
            for account in self._accounts
        )

    async def get_roles(self) -> list[RoleInActor]:
        """Return the roles of this actor, from the token cache when possible."""
        actor_type = self.actor_type
        key = self.roles_cache_key(actor_type)
        roles = self._load_from_cache(key, list[RoleInActor])
        if roles is not None:
            return roles
        return await self._load_from_api(actor_type.api_command, "getmyroles", key, list[RoleInActor])

    async def get_my_tokens(self) -> list[str]:
        """Return the tokens the API reports for this actor in its current scope."""
        key = self.tokens_cache_key()
        tokens = self._load_from_cache(key, list[str])
        if tokens is not None:
            return tokens
        return await self._load_from_api("api", "mytokens", key, list[str])

    def roles_cache_key(self, actor_type: ActorType) -> str:
        return f"s1:roles:{actor_type.api_command}:{self.config.authenticator_id}"

    def tokens_cache_key(self) -> str:
        return (
            f"s1:tokens:{self.config.authentication_type.value}:"
            f"{self._customer}:{','.join(self._accounts)}"
        )

    def __repr__(self) -> str:
        return (
            f"Actor(type={self.actor_type.value}, customer={self._customer}, "
            f"accounts={self._accounts})"
        )

    # -- private helpers -----------------------------------------------------

    def _new_clean_request(self, command: str, action: str) -> Request:
        if self.session is None:
            return self.config.request_factory.new_request(command, action, self.config)

        request = self.session.new_request(command, action)
        if request is None:
            if not self.session.is_active:
                raise NoSessionError("Actor session is not active")
            raise UnsupportedAuthenticationError(
                "Sessions require application authentication"
            )
        return request

    def _should_check_my_tokens(self, roles: list[RoleInActor]) -> bool:
        return bool(self._accounts) and any(role.customer is not None for role in roles)

    def _load_from_cache(self, key: str, type_: Any) -> Any | None:
        raw = self.token_cache.get(key)
        if raw is None:
            return None
        value = Response(raw, from_cache=True).typed_body(type_)
        if value is None:
            logger.debug("Ignoring undecodable cache entry %s", key)
        return value

    async def _load_from_api(self, command: str, action: str, key: str, type_: Any) -> Any:
        response = await self.new_request(command, action).execute()
        if not response.success:
            raise error_from_response(response)
        value = response.typed_body(type_)
        if value is None:
            raise error_from_response(response)
        self.token_cache.set(key, response.raw)
        return value
