"""Composition root wiring the session, conversation and subscription layers."""

from __future__ import annotations

import asyncio
from typing import Mapping

import httpx

from serenia_client.api.client import SereniaApi
from serenia_client.config import ClientSettings, get_settings
from serenia_client.domain.models import AssistantReply
from serenia_client.logging import logger
from serenia_client.services.admin import AdminService
from serenia_client.services.auth import AuthService
from serenia_client.services.conversations import ConversationStore
from serenia_client.services.exceptions import ServiceError
from serenia_client.services.payment_poller import PaymentConfirmationPoller
from serenia_client.services.quota import QuotaTracker
from serenia_client.services.session import SessionStore
from serenia_client.services.submission import SubmissionPipeline
from serenia_client.services.subscriptions import SubscriptionService
from serenia_client.state.storage import TokenStorage, build_storage

CHECKOUT_SUCCESS_VALUES = {"success", "true", "1"}


class SereniaClient:
    """Owns one HTTP client and every state component built on it.

    Use as an async context manager so the poller is cancelled and the HTTP
    client closed on exit.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        storage: TokenStorage | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient()

        self.session = SessionStore(
            storage if storage is not None else build_storage(self.settings.storage),
            settings=self.settings,
        )
        self.api = SereniaApi(
            self.http, self.settings.api, token_provider=self.session.token.get
        )
        self.auth = AuthService(self.api, self.session, on_logout=self._reset_user_state)
        self.subscriptions = SubscriptionService(self.api)
        self.quota = QuotaTracker(self.subscriptions.status, self.settings.quota)
        self.conversation = ConversationStore(self.api, self.settings.conversation)
        self.pipeline = SubmissionPipeline(
            self.api,
            self.conversation,
            on_auth_expired=self.session.clear,
            on_reconciled=self._schedule_status_refresh,
        )
        self.poller = PaymentConfirmationPoller(self.subscriptions, self.settings.poller)
        self.admin = AdminService(self.api)
        self._pending_refresh: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> "SereniaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.poller.cancel()
        for task in list(self._pending_refresh):
            task.cancel()
        if self._owns_http:
            await self.http.aclose()

    async def bootstrap(self) -> bool:
        """Restore a stored session and, when authenticated, load its state."""

        user = await self.auth.restore_session()
        if user is None:
            return False
        await self.conversation.load_history()
        try:
            await self.subscriptions.refresh()
        except ServiceError:
            logger.info("bootstrap_status_unavailable")
        return True

    async def send(self, content: str) -> AssistantReply | None:
        return await self.pipeline.send(content)

    def handle_checkout_redirect(self, query: Mapping[str, str]) -> bool:
        """Start confirming a payment when the redirect says checkout succeeded."""

        flag = (query.get("checkout") or query.get("payment") or "").strip().lower()
        if flag not in CHECKOUT_SUCCESS_VALUES and not query.get("session_id"):
            return False
        self.poller.start(self.subscriptions.plan_name())
        return True

    async def delete_conversations(self) -> None:
        await self.conversation.delete_all()
        self.pipeline.forget_failures()

    def logout(self) -> None:
        self.auth.logout()

    def _reset_user_state(self) -> None:
        self.poller.cancel()
        self.conversation.clear()
        self.pipeline.forget_failures()
        self.subscriptions.clear()
        self.admin.clear()
        logger.info("user_state_cleared")

    def _schedule_status_refresh(self, _reply: AssistantReply) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh_status_quietly())
        self._pending_refresh.add(task)
        task.add_done_callback(self._pending_refresh.discard)

    async def _refresh_status_quietly(self) -> None:
        try:
            await self.subscriptions.refresh()
        except ServiceError:
            logger.info("status_refresh_after_send_failed")


__all__ = ["SereniaClient"]
