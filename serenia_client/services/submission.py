"""Optimistic, single-flight message submission."""

from __future__ import annotations

from enum import Enum
from typing import Callable

import httpx
from pydantic import ValidationError as PayloadError

from serenia_client.api.client import SereniaApi, error_body, status_of
from serenia_client.domain.models import AssistantReply, Message, QuotaError
from serenia_client.logging import logger
from serenia_client.services.conversations import ConversationStore
from serenia_client.services.exceptions import (
    AuthExpired,
    QuotaExceeded,
    SendFailed,
    ServiceError,
    ValidationError,
)
from serenia_client.state.observable import Observable


class PipelineState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    RECONCILED = "reconciled"
    FAILED = "failed"


def validate_content(content: str | None) -> str:
    """Return the trimmed message or raise ``ValidationError`` when blank."""

    trimmed = (content or "").strip()
    if not trimmed:
        raise ValidationError("Message must not be empty.")
    return trimmed


class SubmissionPipeline:
    """Sends one user message at a time.

    ``Idle -> Sending -> {Reconciled | Failed} -> Idle``. The user message is
    appended before the request is dispatched and is kept in history whatever
    the outcome; failed ones are listed in ``failed_messages`` so a view can
    flag them.
    """

    def __init__(
        self,
        api: SereniaApi,
        store: ConversationStore,
        *,
        on_auth_expired: Callable[[], None] | None = None,
        on_reconciled: Callable[[AssistantReply], None] | None = None,
    ) -> None:
        self.api = api
        self.store = store
        self._on_auth_expired = on_auth_expired
        self._on_reconciled = on_reconciled

        self._state = Observable(PipelineState.IDLE, name="submission.state")
        self._last_error = Observable[ServiceError | None](None, name="submission.last_error")
        self._failed = Observable[tuple[Message, ...]]((), name="submission.failed")

        self.state = self._state.as_readonly()
        self.last_error = self._last_error.as_readonly()
        self.failed_messages = self._failed.as_readonly()

    @property
    def is_sending(self) -> bool:
        return self._state() is PipelineState.SENDING

    async def send(self, content: str) -> AssistantReply | None:
        """Send ``content``; ``None`` means the call was ignored.

        Blank input and calls made while a send is in flight are dropped
        without touching state or the network.
        """

        try:
            trimmed = validate_content(content)
        except ValidationError:
            logger.debug("message_send_ignored", reason="empty")
            return None
        if self.is_sending:
            logger.debug("message_send_ignored", reason="in_flight")
            return None

        self._last_error.set(None)
        self._state.set(PipelineState.SENDING)
        optimistic = self.store.append_user(trimmed)

        try:
            reply = await self.api.add_message(trimmed)
        except (httpx.HTTPError, PayloadError) as exc:
            error = self._classify(exc)
            self._fail(optimistic, error)
            if isinstance(error, AuthExpired) and self._on_auth_expired is not None:
                self._on_auth_expired()
            raise error from exc
        except BaseException:
            self._state.set(PipelineState.IDLE)
            raise

        self.store.reconcile_assistant(reply.content, reply.conversation_id)
        self._state.set(PipelineState.RECONCILED)
        self._state.set(PipelineState.IDLE)
        logger.info("message_reconciled", conversation_id=reply.conversation_id)
        if self._on_reconciled is not None:
            self._on_reconciled(reply)
        return reply

    def forget_failures(self) -> None:
        self._failed.set(())

    def is_failed(self, message: Message) -> bool:
        return any(item is message for item in self._failed())

    def _fail(self, message: Message, error: ServiceError) -> None:
        self._failed.update(lambda failed: failed + (message,))
        self._last_error.set(error)
        self._state.set(PipelineState.FAILED)
        self._state.set(PipelineState.IDLE)
        logger.warning(
            "message_send_failed",
            error=error.__class__.__name__,
            status_code=error.status_code,
        )

    @staticmethod
    def _classify(exc: Exception) -> ServiceError:
        status = status_of(exc)
        if status == 401:
            return AuthExpired("Session expired.", status_code=401)
        if status == 429:
            quota_error = _parse_quota_error(exc)
            message = quota_error.message if quota_error is not None else ""
            return QuotaExceeded(message, quota_error=quota_error)
        return SendFailed("Unable to send the message.", status_code=status)


def _parse_quota_error(exc: Exception) -> QuotaError | None:
    if not isinstance(exc, httpx.HTTPStatusError):
        return None
    body = error_body(exc)
    if not isinstance(body, dict):
        return None
    try:
        return QuotaError.model_validate(body)
    except PayloadError:
        logger.warning("quota_error_unparseable")
        return None


__all__ = ["PipelineState", "SubmissionPipeline", "validate_content"]
