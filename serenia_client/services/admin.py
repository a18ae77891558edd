"""Read-only admin statistics: dashboard, timelines and user lookup."""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

import httpx
from pydantic import ValidationError as PayloadError

from serenia_client.api.client import SereniaApi, status_of
from serenia_client.domain.models import Dashboard, Timeline, UserDetail, UserPage
from serenia_client.logging import logger
from serenia_client.services.exceptions import AdminError, ValidationError
from serenia_client.state.observable import Observable

T = TypeVar("T")

TIMELINE_METRICS = ("messages", "users")
TIMELINE_DAYS = (7, 30)


class AdminService:
    """Holds the last loaded dashboard; the other calls are pass-through."""

    def __init__(self, api: SereniaApi) -> None:
        self.api = api
        self._dashboard = Observable[Dashboard | None](None, name="admin.dashboard")
        self._loading = Observable(False, name="admin.loading")

        self.dashboard = self._dashboard.as_readonly()
        self.loading = self._loading.as_readonly()

    async def load_dashboard(self) -> Dashboard:
        self._loading.set(True)
        try:
            dashboard = await self._call("dashboard", self.api.get_admin_dashboard)
        finally:
            self._loading.set(False)
        self._dashboard.set(dashboard)
        logger.info("admin_dashboard_loaded", total_users=dashboard.users.total_users)
        return dashboard

    async def get_timeline(self, metric: str = "messages", days: int = 7) -> Timeline:
        if metric not in TIMELINE_METRICS:
            raise ValidationError(f"Unknown timeline metric: {metric}")
        if days not in TIMELINE_DAYS:
            raise ValidationError("Timeline span must be 7 or 30 days.")
        return await self._call("timeline", lambda: self.api.get_admin_timeline(metric, days))

    async def get_users(self, page: int = 0, size: int = 20) -> UserPage:
        if page < 0 or size < 1:
            raise ValidationError("Page must be >= 0 and size >= 1.")
        return await self._call("users", lambda: self.api.get_admin_users(page, size))

    async def get_user_by_email(self, email: str) -> UserDetail | None:
        """Look up one account; ``None`` when no user has that email."""

        email = (email or "").strip()
        if not email:
            raise ValidationError("email must not be empty.")
        try:
            return await self._call("user", lambda: self.api.get_admin_user(email))
        except AdminError as exc:
            if exc.status_code == 404:
                return None
            raise

    def clear(self) -> None:
        self._dashboard.set(None)

    async def _call(self, operation: str, request: Callable[[], Awaitable[T]]) -> T:
        try:
            return await request()
        except (httpx.HTTPError, PayloadError) as exc:
            status = status_of(exc)
            logger.warning("admin_request_failed", operation=operation, status_code=status)
            raise AdminError(f"admin {operation} failed.", status_code=status) from exc


__all__ = ["AdminService", "TIMELINE_DAYS", "TIMELINE_METRICS"]
