"""Shared fixtures: an in-memory stand-in for the Serenia REST API."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx
import pytest

from serenia_client.api.client import SereniaApi
from serenia_client.config import ApiSettings, ClientSettings, PollerSettings
from serenia_client.domain.models import (
    AssistantReply,
    AuthResponse,
    ConversationSnapshot,
    Message,
    RedirectSession,
    SubscriptionStatus,
    User,
)


def http_error(status: int, body: Any = None, method: str = "GET") -> httpx.HTTPStatusError:
    request = httpx.Request(method, "http://serenia.test/api/endpoint")
    if body is None:
        response = httpx.Response(status, request=request)
    else:
        response = httpx.Response(status, json=body, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def transport_error() -> httpx.RequestError:
    return httpx.ConnectError(
        "connection refused", request=httpx.Request("GET", "http://serenia.test/api")
    )


def make_messages(count: int) -> list[Message]:
    return [
        Message(role="user" if idx % 2 == 0 else "assistant", content=f"message {idx}")
        for idx in range(count)
    ]


def make_status(plan: str = "FREE", **overrides: Any) -> SubscriptionStatus:
    payload = {
        "plan_name": plan,
        "tokens_remaining_this_month": 9_000,
        "messages_remaining_today": 8,
        "per_message_token_limit": 1_000,
        "monthly_token_limit": 10_000,
        "daily_message_limit": 10,
        "tokens_used_this_month": 1_000,
        "messages_sent_today": 2,
        "monthly_reset_date": "2026-11-01T00:00:00Z",
        "daily_reset_date": "2026-10-19T00:00:00Z",
    }
    payload.update(overrides)
    return SubscriptionStatus(**payload)


def mock_api(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[SereniaApi, httpx.AsyncClient]:
    """Real API wrapper over an in-process transport."""

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    api = SereniaApi(
        client, ApiSettings(base_url="http://serenia.test/api"), token_provider=lambda: "tok"
    )
    return api, client


def html_page(_request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html>gateway</html>")


class FakeApi:
    """Records calls and replays scripted responses or errors."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.snapshot: ConversationSnapshot | None = None
        self.history_error: Exception | None = None
        self.reply = AssistantReply(conversation_id="c1", role="assistant", content="Salut")
        self.send_error: Exception | None = None
        self.send_gate: asyncio.Event | None = None
        self.delete_error: Exception | None = None
        self.statuses: list[SubscriptionStatus | Exception] = []
        self.status_gate: asyncio.Event | None = None
        self.profile: User | Exception = User(id="u1", first_name="Ada", last_name="Lovelace")
        self.auth_response = AuthResponse(
            user=User(id="u1", first_name="Ada", last_name="Lovelace"), token="tok-1"
        )
        self.login_error: Exception | None = None

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def get_my_messages(self):
        self.calls.append(("get_my_messages", ()))
        if self.history_error is not None:
            raise self.history_error
        return self.snapshot

    async def add_message(self, content: str):
        self.calls.append(("add_message", (content,)))
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.send_error is not None:
            raise self.send_error
        return self.reply

    async def delete_my_conversations(self):
        self.calls.append(("delete_my_conversations", ()))
        if self.delete_error is not None:
            raise self.delete_error

    async def get_subscription_status(self):
        self.calls.append(("get_subscription_status", ()))
        if self.status_gate is not None:
            await self.status_gate.wait()
        if not self.statuses:
            return make_status()
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def change_plan(self, plan_type):
        self.calls.append(("change_plan", (plan_type,)))
        return make_status(plan_type.value)

    async def get_plans(self):
        self.calls.append(("get_plans", ()))
        return []

    async def create_checkout_session(self, plan_type):
        self.calls.append(("create_checkout_session", (plan_type,)))
        return RedirectSession(url=f"https://checkout.test/{plan_type.value}")

    async def create_portal_session(self):
        self.calls.append(("create_portal_session", ()))
        return RedirectSession(url="https://portal.test/session")

    async def get_profile(self):
        self.calls.append(("get_profile", ()))
        if isinstance(self.profile, Exception):
            raise self.profile
        return self.profile

    async def login(self, email: str, password: str):
        self.calls.append(("login", (email,)))
        if self.login_error is not None:
            raise self.login_error
        return self.auth_response

    async def delete_account(self):
        self.calls.append(("delete_account", ()))


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def fast_poller_settings() -> PollerSettings:
    return PollerSettings(max_attempts=10, interval_seconds=0.001)


@pytest.fixture
def settings(fast_poller_settings) -> ClientSettings:
    return ClientSettings(poller=fast_poller_settings)
