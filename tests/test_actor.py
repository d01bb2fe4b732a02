"""Tests for actor scope, request construction and token resolution."""

from __future__ import annotations

from typing import Any

import pytest

from conftest import FakeExecutor, envelope, role_in_actor
from streamone_sdk.auth.session import Session
from streamone_sdk.auth.session_store import MemorySessionStore
from streamone_sdk.cache.base import MemoryCache, NoopCache
from streamone_sdk.cache.session import SessionCache
from streamone_sdk.config import AuthenticationType, Config
from streamone_sdk.errors import ApiError, DecodeError, NetworkError, NoSessionError
from streamone_sdk.policy.actor import Actor, ActorType, is_super_of
from streamone_sdk.policy.models import RoleInActor


def active_session(config: Config) -> Session:
    store = MemorySessionStore()
    store.set_session("session", "key", "user", 100)
    return Session(config, store)


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class TestScope:
    def test_no_default_account(self, app_config: Config) -> None:
        actor = Actor(app_config)
        assert actor.accounts == []
        assert actor.customer is None

    def test_default_account(self, executor: FakeExecutor) -> None:
        config = Config(AuthenticationType.USER, "user", "psk", default_account_id="account", http_executor=executor)
        assert Actor(config).accounts == ["account"]

    def test_accounts_clear_customer(self, app_config: Config) -> None:
        actor = Actor(app_config)
        actor.customer = "C1"
        actor.accounts = ["A1", "A2"]
        assert actor.accounts == ["A1", "A2"]
        assert actor.customer is None

    def test_customer_clears_accounts(self, app_config: Config) -> None:
        actor = Actor(app_config)
        actor.accounts = ["A1"]
        actor.customer = "C1"
        assert actor.customer == "C1"
        assert actor.accounts == []

    def test_accounts_copied(self, app_config: Config) -> None:
        actor = Actor(app_config)
        accounts = ["A1"]
        actor.accounts = accounts
        accounts.append("A2")
        assert actor.accounts == ["A1"]


class TestTokenCacheSelection:
    def test_configuration_cache_without_session(self, app_config: Config) -> None:
        assert Actor(app_config).token_cache is app_config.token_cache

    def test_session_cache_with_session(self, app_config: Config) -> None:
        assert isinstance(Actor(app_config, active_session(app_config)).token_cache, SessionCache)

    def test_configuration_cache_when_disabled(self, app_config: Config) -> None:
        app_config.use_session_for_token_cache = False
        assert Actor(app_config, active_session(app_config)).token_cache is app_config.token_cache


class TestActorType:
    def test_user_authentication(self, user_config: Config) -> None:
        actor = Actor(user_config)
        assert actor.actor_type is ActorType.USER
        assert actor.actor_type.api_command == "user"

    def test_application_authentication(self, app_config: Config) -> None:
        actor = Actor(app_config)
        assert actor.actor_type is ActorType.APPLICATION
        assert actor.actor_type.api_command == "application"

    def test_session_acts_as_user(self, app_config: Config) -> None:
        assert Actor(app_config, active_session(app_config)).actor_type is ActorType.USER


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestNewRequest:
    @pytest.fixture
    def default_account_config(self, executor: FakeExecutor) -> Config:
        return Config(
            AuthenticationType.APPLICATION, "application", "apppsk",
            default_account_id="account", http_executor=executor,
        )

    @pytest.mark.parametrize("accounts", [["A1"], ["A1", "A2"]])
    def test_accounts(self, app_config: Config, accounts: list[str]) -> None:
        actor = Actor(app_config)
        actor.accounts = accounts
        request = actor.new_request("command", "action")
        assert request.accounts == accounts
        assert request.customer is None
        assert request.config is app_config

    def test_customer(self, default_account_config: Config) -> None:
        actor = Actor(default_account_config)
        actor.customer = "C1"
        request = actor.new_request("command", "action")
        assert request.customer == "C1"
        assert request.accounts == []

    def test_default_account_kept(self, default_account_config: Config) -> None:
        request = Actor(default_account_config).new_request("command", "action")
        assert request.account == "account"

    def test_no_scope_clears_default_account(self, default_account_config: Config) -> None:
        actor = Actor(default_account_config)
        actor.accounts = []
        request = actor.new_request("command", "action")
        assert request.account is None
        assert request.customer is None

    def test_session_request(self, app_config: Config) -> None:
        actor = Actor(app_config, active_session(app_config))
        actor.accounts = ["A1"]
        request = actor.new_request("command", "action")
        assert request.accounts == ["A1"]
        assert request.authentication.signing_parameters({}, 1)["session"] == "session"
        assert request.authentication.signing_key() == "apppskkey"

    def test_inactive_session(self, app_config: Config) -> None:
        actor = Actor(app_config, Session(app_config, MemorySessionStore()))
        with pytest.raises(NoSessionError):
            actor.new_request("command", "action")


# ---------------------------------------------------------------------------
# Super-role predicate
# ---------------------------------------------------------------------------


class TestIsSuperOf:
    def _role(self, **kwargs: Any) -> RoleInActor:
        return RoleInActor.model_validate(role_in_actor("r", ["t"], **kwargs))

    def test_global_role_covers_everything(self) -> None:
        role = self._role()
        assert is_super_of(role, None, None)
        assert is_super_of(role, "C1", None)
        assert is_super_of(role, None, "A1")

    def test_customer_role(self) -> None:
        role = self._role(customer_id="C1")
        assert is_super_of(role, "C1", None)
        assert not is_super_of(role, "C2", None)
        assert not is_super_of(role, None, None)

    def test_customer_role_never_covers_account(self) -> None:
        assert not is_super_of(self._role(customer_id="C1"), None, "A1")

    def test_account_role(self) -> None:
        role = self._role(account="A1")
        assert is_super_of(role, None, "A1")
        assert not is_super_of(role, None, "A2")
        assert not is_super_of(role, "C1", None)


# ---------------------------------------------------------------------------
# Token resolution
# ---------------------------------------------------------------------------


class TestHasTokenGlobal:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("token", "held"),
        [("a", True), ("b", True), ("d", False), ("s", False), ("z", False)],
    )
    async def test_user(
        self, user_config: Config, executor: FakeExecutor, user_roles: list, token: str, held: bool
    ) -> None:
        executor.queue(envelope(user_roles))
        assert await Actor(user_config).has_token(token) is held
        assert executor.paths == ["https://api.streamonecloud.net/api/user/getmyroles"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("token", "held"), [("z", True), ("y", False), ("t", False), ("a", False)])
    async def test_application(
        self, app_config: Config, executor: FakeExecutor, application_roles: list, token: str, held: bool
    ) -> None:
        executor.queue(envelope(application_roles))
        assert await Actor(app_config).has_token(token) is held
        assert executor.paths[0].endswith("/api/application/getmyroles")

    @pytest.mark.asyncio
    async def test_session_fetches_user_roles(
        self, app_config: Config, executor: FakeExecutor, user_roles: list
    ) -> None:
        executor.queue(envelope(user_roles))
        actor = Actor(app_config, active_session(app_config))
        assert await actor.has_token("a")
        assert executor.paths[0].endswith("/api/user/getmyroles")
        assert "session=session" in executor.calls[0][0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("customer", "token", "held"), [("C1", "y", True), ("C1", "x", False), ("C2", "x", True), ("C1", "z", True)])
    async def test_customer(
        self,
        app_config: Config,
        executor: FakeExecutor,
        application_roles: list,
        customer: str,
        token: str,
        held: bool,
    ) -> None:
        executor.queue(envelope(application_roles))
        actor = Actor(app_config)
        actor.customer = customer
        assert await actor.has_token(token) is held
        assert len(executor.calls) == 1


class TestHasTokenInAccounts:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("accounts", "token", "held"),
        [
            (["A1"], "a", True),
            (["A1"], "f", True),
            (["A1"], "g", True),
            (["A1"], "h", False),
            (["A2"], "h", True),
            (["A1"], "t", False),
            (["A3"], "a", True),
            (["A4"], "q", False),
            (["A1", "A2"], "g", True),
            (["A1", "A2"], "f", False),
            (["A1", "A2"], "h", False),
            (["A1", "A2"], "a", True),
            (["A1", "A2", "A3"], "g", False),
            (["A1", "A2", "A3"], "a", True),
        ],
    )
    async def test_role_coverage(
        self,
        user_config: Config,
        executor: FakeExecutor,
        user_roles: list,
        accounts: list[str],
        token: str,
        held: bool,
    ) -> None:
        executor.queue(envelope(user_roles))
        actor = Actor(user_config)
        actor.accounts = accounts
        assert await actor.has_token(token) is held
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("accounts", "tokens", "token", "held"),
        [
            (["A1"], ["z", "y", "p", "w", "v"], "y", True),
            (["A1"], ["z", "y", "p", "w", "v"], "x", False),
            (["A1", "A3"], ["z", "p", "v"], "v", True),
            (["A1", "A3"], ["z", "p", "v"], "w", False),
        ],
    )
    async def test_customer_roles_ask_the_api(
        self,
        app_config: Config,
        executor: FakeExecutor,
        application_roles: list,
        accounts: list[str],
        tokens: list[str],
        token: str,
        held: bool,
    ) -> None:
        executor.queue(envelope(application_roles), envelope(tokens))
        actor = Actor(app_config)
        actor.accounts = accounts

        assert await actor.has_token(token) is held

        assert executor.paths[1].endswith("/api/api/mytokens")
        assert "account=" + "%2C".join(accounts) in executor.calls[1][0]


class TestFailures:
    @pytest.mark.asyncio
    async def test_network_error_raised(self, user_config: Config, executor: FakeExecutor) -> None:
        executor.queue(NetworkError("down"))
        with pytest.raises(NetworkError):
            await Actor(user_config).has_token("a")

    @pytest.mark.asyncio
    async def test_api_error_raised(self, user_config: Config, executor: FakeExecutor) -> None:
        executor.queue(envelope(None, status=4, message="Access denied"))
        with pytest.raises(ApiError) as exc_info:
            await Actor(user_config).has_token("a")
        assert exc_info.value.status == 4

    @pytest.mark.asyncio
    async def test_undecodable_roles(self, user_config: Config, executor: FakeExecutor) -> None:
        executor.queue(envelope([{"not": "a role"}]))
        with pytest.raises(DecodeError):
            await Actor(user_config).has_token("a")

    @pytest.mark.asyncio
    async def test_my_tokens_failure(
        self, app_config: Config, executor: FakeExecutor, application_roles: list
    ) -> None:
        executor.queue(envelope(application_roles), envelope(None, status=1, message="Error"))
        actor = Actor(app_config)
        actor.accounts = ["A1"]
        with pytest.raises(ApiError):
            await actor.has_token("y")


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestRoleAndTokenCaching:
    def test_cache_keys(self, app_config: Config) -> None:
        actor = Actor(app_config)
        assert actor.roles_cache_key(ActorType.APPLICATION) == "s1:roles:application:application"
        assert actor.roles_cache_key(ActorType.USER) == "s1:roles:user:application"
        actor.accounts = ["A1", "A2"]
        assert actor.tokens_cache_key() == "s1:tokens:application:None:A1,A2"
        actor.customer = "C1"
        assert actor.tokens_cache_key() == "s1:tokens:application:C1:"

    @pytest.mark.asyncio
    async def test_roles_cached(self, cached_app_config: Config, executor: FakeExecutor, application_roles: list) -> None:
        payload = envelope(application_roles)
        executor.queue(payload)
        actor = Actor(cached_app_config)

        assert await actor.has_token("z")
        assert await actor.has_token("a") is False

        assert len(executor.calls) == 1
        assert cached_app_config.token_cache.get("s1:roles:application:application") == payload

    @pytest.mark.asyncio
    async def test_roles_read_from_cache(self, app_config: Config, executor: FakeExecutor, user_roles: list) -> None:
        app_config.token_cache = MemoryCache()
        app_config.token_cache.set("s1:roles:application:application", envelope(user_roles))

        assert await Actor(app_config).has_token("a")
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_undecodable_cache_entry_refetched(
        self, app_config: Config, executor: FakeExecutor, application_roles: list
    ) -> None:
        app_config.token_cache = MemoryCache()
        app_config.token_cache.set("s1:roles:application:application", "garbage")
        executor.queue(envelope(application_roles))

        assert await Actor(app_config).has_token("z")
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    async def test_my_tokens_cached(
        self, cached_app_config: Config, executor: FakeExecutor, application_roles: list
    ) -> None:
        executor.queue(envelope(["z", "y"]), envelope(application_roles))
        actor = Actor(cached_app_config)
        actor.accounts = ["A1"]

        assert await actor.get_my_tokens() == ["z", "y"]
        assert await actor.has_token("y")

        assert executor.paths[0].endswith("/api/api/mytokens")
        assert len(executor.calls) == 2

    @pytest.mark.asyncio
    async def test_session_cache_used(self, app_config: Config, executor: FakeExecutor, user_roles: list) -> None:
        executor.queue(envelope(user_roles))
        session = active_session(app_config)
        actor = Actor(app_config, session)

        assert await actor.has_token("a")
        assert await actor.has_token("b")

        assert len(executor.calls) == 1
        assert session.session_store.has_cache_key("s1:roles:user:application")
        assert isinstance(app_config.token_cache, NoopCache)
