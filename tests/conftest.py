"""Shared fixtures for tests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from streamone_sdk.cache.base import MemoryCache
from streamone_sdk.config import AuthenticationType, Config
from streamone_sdk.errors import NetworkError


class FakeExecutor:
    """Records every call and answers with queued payloads.

    A queued ``NetworkError`` is raised instead of returned.
    """

    def __init__(self, *payloads: Any) -> None:
        self.payloads: list[Any] = list(payloads)
        self.calls: list[tuple[str, dict[str, str]]] = []

    def queue(self, *payloads: Any) -> None:
        self.payloads.extend(payloads)

    async def send(self, url: str, arguments: Mapping[str, str]) -> Any:
        self.calls.append((url, dict(arguments)))
        if not self.payloads:
            raise AssertionError(f"Unexpected API call: {url}")
        payload = self.payloads.pop(0)
        if isinstance(payload, NetworkError):
            raise payload
        return payload

    @property
    def paths(self) -> list[str]:
        return [url.split("?", 1)[0] for url, _ in self.calls]


def envelope(body: Any, status: int = 0, message: str = "OK", **header: Any) -> dict[str, Any]:
    """Build an API response envelope."""
    return {"header": {"status": status, "statusmessage": message, **header}, "body": body}


def customer(customer_id: str) -> dict[str, str]:
    return {
        "id": customer_id,
        "name": f"Customer {customer_id}",
        "datecreated": "2015-08-16 12:00:00",
        "datemodified": "2015-08-16 12:00:00",
    }


def role_in_actor(
    role_id: str,
    tokens: list[str],
    account: str | None = None,
    customer_id: str | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "role": {"id": role_id, "name": f"Role {role_id}", "tokens": tokens},
    }
    if account is not None:
        data["account"] = {"id": account, "name": f"Account {account}"}
    if customer_id is not None:
        data["customer"] = customer(customer_id)
    return data


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def user_config(executor: FakeExecutor) -> Config:
    return Config(AuthenticationType.USER, "user", "psk", http_executor=executor)


@pytest.fixture
def app_config(executor: FakeExecutor) -> Config:
    return Config(AuthenticationType.APPLICATION, "application", "apppsk", http_executor=executor)


@pytest.fixture
def cached_app_config(executor: FakeExecutor) -> Config:
    config = Config(AuthenticationType.APPLICATION, "application", "apppsk", http_executor=executor)
    config.set_cache(MemoryCache())
    return config


@pytest.fixture
def user_roles() -> list[dict[str, Any]]:
    """Global {a,b,c}; {f,g} in account A1; {g,h} in account A2."""
    return [
        role_in_actor("global", ["a", "b", "c"]),
        role_in_actor("acc1", ["f", "g"], account="A1"),
        role_in_actor("acc2", ["g", "h"], account="A2"),
    ]


@pytest.fixture
def application_roles() -> list[dict[str, Any]]:
    """Global {z}; {y,p} in C1; {x,p} in C2; {w,v} in A1; {v,u} in A3."""
    return [
        role_in_actor("global", ["z"]),
        role_in_actor("cust1", ["y", "p"], customer_id="C1"),
        role_in_actor("cust2", ["x", "p"], customer_id="C2"),
        role_in_actor("acc1", ["w", "v"], account="A1"),
        role_in_actor("acc3", ["v", "u"], account="A3"),
    ]
