"""Typed wrapper around the Serenia REST API."""

from __future__ import annotations

from typing import Any, Callable
from urllib.parse import quote

import httpx

from serenia_client.config import ApiSettings
from serenia_client.domain.models import (
    ApiMessage,
    AssistantReply,
    AuthResponse,
    ConversationSnapshot,
    Dashboard,
    Plan,
    PlanType,
    RedirectSession,
    SubscriptionStatus,
    Timeline,
    User,
    UserDetail,
    UserPage,
)

TokenProvider = Callable[[], str | None]


class SereniaApi:
    """One method per backend endpoint.

    Methods raise ``httpx.HTTPStatusError`` for non-2xx responses and
    ``httpx.RequestError`` for transport failures; services translate those
    into their own exceptions.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: ApiSettings | None = None,
        *,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or ApiSettings()
        self._token_provider = token_provider

    # Conversations ----------------------------------------------------

    async def get_my_messages(self) -> ConversationSnapshot | None:
        data = await self._request("GET", "/conversations/my-messages")
        if not data:
            return None
        return ConversationSnapshot.model_validate(data)

    async def add_message(self, content: str) -> AssistantReply:
        data = await self._request(
            "POST", "/conversations/add-message", json={"content": content}
        )
        return AssistantReply.model_validate(data)

    async def delete_my_conversations(self) -> None:
        await self._request("DELETE", "/conversations/my-conversations")

    # Subscription -----------------------------------------------------

    async def get_subscription_status(self) -> SubscriptionStatus:
        data = await self._request("GET", "/subscription/status")
        return SubscriptionStatus.model_validate(data)

    async def get_plans(self) -> list[Plan]:
        data = await self._request("GET", "/subscription/plans")
        return [Plan.model_validate(item) for item in data or []]

    async def change_plan(self, plan_type: PlanType) -> SubscriptionStatus:
        data = await self._request(
            "PUT", "/subscription/plan", json={"planType": PlanType(plan_type).value}
        )
        return SubscriptionStatus.model_validate(data)

    async def create_checkout_session(self, plan_type: PlanType) -> RedirectSession:
        data = await self._request(
            "POST", "/subscription/checkout", json={"planType": PlanType(plan_type).value}
        )
        return RedirectSession.model_validate(data)

    async def create_portal_session(self) -> RedirectSession:
        data = await self._request("POST", "/subscription/portal", json={})
        return RedirectSession.model_validate(data)

    # Auth -------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        return AuthResponse.model_validate(data)

    async def register(
        self, *, first_name: str, last_name: str, email: str, password: str
    ) -> ApiMessage:
        payload = {
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        }
        data = await self._request("POST", "/auth/register", json=payload)
        return ApiMessage.model_validate(data or {})

    async def activate(self, token: str) -> ApiMessage:
        data = await self._request("GET", "/auth/activate", params={"token": token})
        return ApiMessage.model_validate(data or {})

    async def forgot_password(self, email: str) -> ApiMessage:
        data = await self._request("POST", "/auth/forgot-password", json={"email": email})
        return ApiMessage.model_validate(data or {})

    async def reset_password(self, token: str, new_password: str) -> ApiMessage:
        data = await self._request(
            "POST",
            "/auth/reset-password",
            json={"token": token, "newPassword": new_password},
        )
        return ApiMessage.model_validate(data or {})

    async def get_profile(self) -> User:
        data = await self._request("GET", "/auth/me")
        return User.model_validate(data)

    async def delete_account(self) -> None:
        await self._request("DELETE", "/auth/me")

    # Admin ------------------------------------------------------------

    async def get_admin_dashboard(self) -> Dashboard:
        data = await self._request("GET", "/admin/dashboard")
        return Dashboard.model_validate(data or {})

    async def get_admin_timeline(self, metric: str, days: int) -> Timeline:
        data = await self._request(
            "GET", "/admin/timeline", params={"metric": metric, "days": days}
        )
        return Timeline.model_validate(data)

    async def get_admin_users(self, page: int = 0, size: int = 20) -> UserPage:
        data = await self._request("GET", "/admin/users", params={"page": page, "size": size})
        return UserPage.model_validate(data or {})

    async def get_admin_user(self, email: str) -> UserDetail:
        data = await self._request("GET", f"/admin/users/{quote(email, safe='')}")
        return UserDetail.model_validate(data)

    # Internal helpers -------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._settings.root()}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._client.request(
            method,
            self._url(path),
            headers=self._headers(),
            timeout=self._settings.request_timeout_seconds,
            **kwargs,
        )
        response.raise_for_status()
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise httpx.DecodingError(
                f"Malformed JSON body from {method} {path}", request=response.request
            ) from exc


def error_body(exc: httpx.HTTPStatusError) -> Any:
    """Best-effort JSON body of a failed response, ``None`` when unparseable."""

    response = exc.response
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def status_of(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError) and exc.response is not None:
        return exc.response.status_code
    return None


__all__ = ["SereniaApi", "TokenProvider", "error_body", "status_of"]
