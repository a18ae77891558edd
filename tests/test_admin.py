"""Admin statistics service."""

from __future__ import annotations

import httpx
import pytest

from serenia_client.services.admin import AdminService
from serenia_client.services.exceptions import AdminError, ValidationError

from .conftest import html_page, mock_api

DASHBOARD = {
    "users": {
        "totalUsers": 120,
        "activatedUsers": 100,
        "freeUsers": 90,
        "plusUsers": 20,
        "maxUsers": 10,
        "newUsersLast7Days": 6,
        "newUsersLast30Days": 25,
    },
    "messages": {
        "totalUserMessages": 5000,
        "messagesToday": 80,
        "messagesLast7Days": 600,
        "messagesLast30Days": 2400,
    },
    "engagement": {"activeUsers": 40, "activationRate": 83.3, "avgMessagesPerUser": 41.6},
    "subscriptions": {
        "totalTokensConsumed": 1200000,
        "estimatedRevenueCents": 49970,
        "currency": "EUR",
    },
}


def _router(routes: dict[str, httpx.Response]):
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        paths.append(path)
        return routes.get(path, httpx.Response(404))

    return handler, paths


@pytest.mark.asyncio
async def test_load_dashboard_publishes_snapshot():
    handler, _ = _router({"/admin/dashboard": httpx.Response(200, json=DASHBOARD)})
    api, client = mock_api(handler)
    async with client:
        service = AdminService(api)
        loading: list[bool] = []
        service.loading.subscribe(loading.append)

        dashboard = await service.load_dashboard()

    assert dashboard.users.new_users_last7_days == 6
    assert dashboard.messages.messages_last30_days == 2400
    assert dashboard.subscriptions.estimated_revenue_cents == 49970
    assert service.dashboard() is dashboard
    assert loading == [True, False]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 500])
async def test_dashboard_failure_keeps_previous_snapshot(status):
    routes = {"/admin/dashboard": httpx.Response(200, json=DASHBOARD)}
    handler, _ = _router(routes)
    api, client = mock_api(handler)
    async with client:
        service = AdminService(api)
        previous = await service.load_dashboard()
        routes["/admin/dashboard"] = httpx.Response(status)

        with pytest.raises(AdminError) as excinfo:
            await service.load_dashboard()

    assert excinfo.value.status_code == status
    assert service.dashboard() is previous
    assert service.loading() is False


@pytest.mark.asyncio
async def test_dashboard_non_json_body_is_admin_error():
    api, client = mock_api(html_page)
    async with client:
        service = AdminService(api)
        with pytest.raises(AdminError):
            await service.load_dashboard()

    assert service.dashboard() is None


@pytest.mark.asyncio
@pytest.mark.parametrize(("metric", "days"), [("tokens", 7), ("messages", 14)])
async def test_timeline_arguments_validated_locally(metric, days):
    handler, paths = _router({})
    api, client = mock_api(handler)
    async with client:
        with pytest.raises(ValidationError):
            await AdminService(api).get_timeline(metric, days)

    assert paths == []


@pytest.mark.asyncio
async def test_user_lookup_returns_none_when_missing():
    detail = {"id": "u9", "email": "ada@serenia.test", "activated": True, "messageCount": 12}
    handler, _ = _router(
        {
            "/admin/users/ada@serenia.test": httpx.Response(200, json=detail),
            "/admin/users": httpx.Response(
                200, json={"users": [detail], "totalCount": 1, "page": 0, "size": 20}
            ),
        }
    )
    api, client = mock_api(handler)
    async with client:
        service = AdminService(api)
        found = await service.get_user_by_email(" ada@serenia.test ")
        missing = await service.get_user_by_email("ghost@serenia.test")
        page = await service.get_users()

    assert found is not None and found.message_count == 12
    assert missing is None
    assert page.has_next is False


@pytest.mark.asyncio
async def test_clear_drops_dashboard():
    handler, _ = _router({"/admin/dashboard": httpx.Response(200, json=DASHBOARD)})
    api, client = mock_api(handler)
    async with client:
        service = AdminService(api)
        await service.load_dashboard()

    service.clear()

    assert service.dashboard() is None
