"""HTTP wrapper: paths, headers and payload decoding."""

from __future__ import annotations

import json

import httpx
import pytest

from serenia_client.api.client import SereniaApi, error_body, status_of
from serenia_client.config import ApiSettings
from serenia_client.domain.models import PlanType


class Recorder:
    def __init__(self, responses: dict[tuple[str, str], httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get(
            (request.method, request.url.path), httpx.Response(404, json={"message": "nope"})
        )


def _api(responses, token: str | None = "tok"):
    recorder = Recorder(responses)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    api = SereniaApi(
        client,
        ApiSettings(base_url="http://serenia.test/api/"),
        token_provider=lambda: token,
    )
    return api, recorder, client


@pytest.mark.asyncio
async def test_get_my_messages_normalizes_roles():
    payload = {
        "conversationId": "conv-123",
        "messages": [
            {"role": "USER", "content": "Hello", "timestamp": "2026-10-18T10:00:00Z"},
            {"role": "MODEL", "content": "Hi"},
            {"role": "Assistant", "content": "Anything else?"},
        ],
    }
    api, recorder, client = _api(
        {("GET", "/api/conversations/my-messages"): httpx.Response(200, json=payload)}
    )
    async with client:
        snapshot = await api.get_my_messages()

    assert snapshot is not None
    assert snapshot.conversation_id == "conv-123"
    assert [m.role for m in snapshot.messages] == ["user", "assistant", "assistant"]
    assert snapshot.messages[0].timestamp == "2026-10-18T10:00:00Z"
    assert recorder.requests[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [httpx.Response(200, json=None), httpx.Response(204)])
async def test_get_my_messages_without_conversation(response):
    api, _, client = _api({("GET", "/api/conversations/my-messages"): response})
    async with client:
        assert await api.get_my_messages() is None


@pytest.mark.asyncio
async def test_add_message_posts_content():
    api, recorder, client = _api(
        {
            ("POST", "/api/conversations/add-message"): httpx.Response(
                200, json={"conversationId": "c1", "role": "ASSISTANT", "content": "Salut"}
            )
        }
    )
    async with client:
        reply = await api.add_message("Bonjour")

    assert reply.conversation_id == "c1"
    assert reply.role == "assistant"
    assert json.loads(recorder.requests[0].content) == {"content": "Bonjour"}


@pytest.mark.asyncio
async def test_quota_error_surfaces_as_status_error():
    body = {"quotaType": "MONTHLY_TOKEN_LIMIT", "limit": 10, "current": 10, "requested": 5}
    api, _, client = _api(
        {("POST", "/api/conversations/add-message"): httpx.Response(429, json=body)}
    )
    async with client:
        with pytest.raises(httpx.HTTPStatusError) as excinfo:
            await api.add_message("Hi")

    assert status_of(excinfo.value) == 429
    assert error_body(excinfo.value) == body


@pytest.mark.asyncio
async def test_anonymous_requests_have_no_authorization_header():
    api, recorder, client = _api(
        {
            ("POST", "/api/auth/login"): httpx.Response(
                200,
                json={
                    "token": "new",
                    "user": {"id": 7, "firstName": "Ada", "lastName": "L", "email": "a@b.c", "roles": []},
                },
            )
        },
        token=None,
    )
    async with client:
        response = await api.login("a@b.c", "pw")

    assert response.token == "new"
    assert response.user.id == "7"
    assert "Authorization" not in recorder.requests[0].headers


@pytest.mark.asyncio
async def test_change_plan_and_status_payloads():
    status = {
        "planName": "PLUS",
        "tokensRemainingThisMonth": 90000,
        "messagesRemainingToday": 40,
        "monthlyTokenLimit": 100000,
        "dailyMessageLimit": 50,
        "tokensUsedThisMonth": 10000,
        "messagesSentToday": 10,
        "unknownField": True,
    }
    api, recorder, client = _api(
        {("PUT", "/api/subscription/plan"): httpx.Response(200, json=status)}
    )
    async with client:
        result = await api.change_plan(PlanType.PLUS)

    assert result.plan_name == "PLUS"
    assert result.messages_remaining_today == 40
    assert json.loads(recorder.requests[0].content) == {"planType": "PLUS"}


@pytest.mark.asyncio
async def test_delete_endpoints_accept_empty_bodies():
    api, recorder, client = _api(
        {
            ("DELETE", "/api/conversations/my-conversations"): httpx.Response(204),
            ("DELETE", "/api/auth/me"): httpx.Response(200),
        }
    )
    async with client:
        await api.delete_my_conversations()
        await api.delete_account()

    assert [r.method for r in recorder.requests] == ["DELETE", "DELETE"]


@pytest.mark.asyncio
async def test_activate_sends_token_as_query_param():
    api, recorder, client = _api(
        {("GET", "/api/auth/activate"): httpx.Response(200, json={"message": "ok"})}
    )
    async with client:
        result = await api.activate("abc")

    assert result.message == "ok"
    assert recorder.requests[0].url.params["token"] == "abc"


def test_error_body_handles_non_json():
    request = httpx.Request("GET", "http://serenia.test/api")
    response = httpx.Response(500, text="<html>", request=request)
    exc = httpx.HTTPStatusError("boom", request=request, response=response)

    assert error_body(exc) is None
    assert status_of(ValueError()) is None


@pytest.mark.asyncio
async def test_non_json_success_body_raises_decoding_error():
    api, _, client = _api(
        {("GET", "/api/subscription/status"): httpx.Response(200, text="<html>gateway</html>")}
    )
    async with client:
        with pytest.raises(httpx.DecodingError) as excinfo:
            await api.get_subscription_status()

    assert isinstance(excinfo.value, httpx.HTTPError)
    assert status_of(excinfo.value) is None


@pytest.mark.asyncio
async def test_admin_endpoints():
    detail = {"id": 3, "email": "a+b@serenia.test", "firstName": "Ada", "planType": "PLUS"}
    api, recorder, client = _api(
        {
            ("GET", "/api/admin/timeline"): httpx.Response(
                200, json={"metric": "users", "data": [{"date": "2026-10-18", "value": 4}]}
            ),
            ("GET", "/api/admin/users"): httpx.Response(
                200, json={"users": [detail], "totalCount": 41, "page": 1, "size": 20}
            ),
            ("GET", "/api/admin/users/a+b@serenia.test"): httpx.Response(200, json=detail),
        }
    )
    async with client:
        timeline = await api.get_admin_timeline("users", 30)
        page = await api.get_admin_users(1, 20)
        user = await api.get_admin_user("a+b@serenia.test")

    assert timeline.data[0].value == 4
    assert recorder.requests[0].url.params["days"] == "30"
    assert page.total_count == 41 and page.has_next is True
    assert page.users[0].plan_type == "PLUS"
    assert user.id == "3"
    assert recorder.requests[2].url.raw_path == b"/api/admin/users/a%2Bb%40serenia.test"
