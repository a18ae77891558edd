"""Client-side conversation history with a bottom-anchored view window."""

from __future__ import annotations

import httpx
from pydantic import ValidationError as PayloadError

from serenia_client.api.client import SereniaApi, status_of
from serenia_client.config import ConversationSettings
from serenia_client.domain.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ConversationSnapshot,
    Message,
)
from serenia_client.logging import logger
from serenia_client.services.exceptions import ConversationError, LoadFailed
from serenia_client.state.observable import Computed, Observable
from serenia_client.utils.datetime import utc_now_iso


class ConversationStore:
    """Owns the full message history and the size of its visible tail.

    History only grows, except through ``clear`` or a reload. The visible
    slice is always the most recent ``min(visible_count, len(history))``
    messages.
    """

    def __init__(self, api: SereniaApi, settings: ConversationSettings | None = None) -> None:
        self.api = api
        self.page_size = (settings or ConversationSettings()).page_size

        self._history = Observable[tuple[Message, ...]]((), name="conversation.history")
        self._visible_count = Observable(self.page_size, name="conversation.visible_count")
        self._conversation_id = Observable[str | None](None, name="conversation.id")
        self._loading = Observable(False, name="conversation.loading")

        self.all_messages = self._history.as_readonly()
        self.visible_count = self._visible_count.as_readonly()
        self.conversation_id = self._conversation_id.as_readonly()
        self.loading = self._loading.as_readonly()
        self.messages = Computed(
            self._visible_tail,
            [self._history, self._visible_count],
            name="conversation.messages",
        ).as_readonly()
        self.total_messages = Computed(
            lambda: len(self._history()), [self._history], name="conversation.total"
        ).as_readonly()
        self.has_messages = Computed(
            lambda: len(self._history()) > 0, [self._history], name="conversation.has_messages"
        ).as_readonly()
        self.has_more_messages = Computed(
            lambda: self._visible_count() < len(self._history()),
            [self._history, self._visible_count],
            name="conversation.has_more",
        ).as_readonly()

    async def load_history(self) -> ConversationSnapshot | None:
        """Replace local state with the backend's copy of the conversation.

        A failed fetch leaves the current state untouched.
        """

        self._loading.set(True)
        try:
            snapshot = await self.api.get_my_messages()
        except (httpx.HTTPError, PayloadError) as exc:
            status = status_of(exc)
            logger.warning("history_load_failed", status_code=status, error=str(exc))
            raise LoadFailed("Unable to load messages.", status_code=status) from exc
        finally:
            self._loading.set(False)

        if snapshot is None:
            self._replace((), None)
            logger.info("history_loaded", conversation_id=None, count=0)
            return None

        self._replace(tuple(snapshot.messages), snapshot.conversation_id)
        logger.info(
            "history_loaded",
            conversation_id=snapshot.conversation_id,
            count=len(snapshot.messages),
        )
        return snapshot

    def expand_window(self) -> bool:
        total = len(self._history())
        current = self._visible_count()
        if current >= total:
            return False
        self._visible_count.set(min(current + self.page_size, total))
        return True

    def append_user(self, content: str) -> Message:
        message = Message(role=ROLE_USER, content=content, timestamp=utc_now_iso())
        self._append(message)
        return message

    def reconcile_assistant(self, content: str, conversation_id: str | None) -> Message:
        message = Message(role=ROLE_ASSISTANT, content=content, timestamp=utc_now_iso())
        self._append(message)
        if conversation_id:
            self._conversation_id.set(conversation_id)
        return message

    def clear(self) -> None:
        self._replace((), None)

    async def delete_all(self) -> None:
        """Delete every conversation server-side, then clear local state."""

        try:
            await self.api.delete_my_conversations()
        except httpx.HTTPError as exc:
            status = status_of(exc)
            logger.warning("conversation_delete_failed", status_code=status)
            raise ConversationError("Unable to delete conversations.", status_code=status) from exc
        self.clear()
        logger.info("conversations_deleted")

    # Internal helpers -------------------------------------------------

    def _append(self, message: Message) -> None:
        self._history.update(lambda history: history + (message,))
        self._visible_count.update(lambda count: count + 1)

    def _replace(self, messages: tuple[Message, ...], conversation_id: str | None) -> None:
        self._visible_count.set(self.page_size)
        self._history.set(messages)
        self._conversation_id.set(conversation_id)

    def _visible_tail(self) -> tuple[Message, ...]:
        history = self._history()
        size = min(self._visible_count(), len(history))
        if size == 0:
            return ()
        return history[-size:]


__all__ = ["ConversationStore"]
