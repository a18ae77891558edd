"""Authoritative authentication state."""

from __future__ import annotations

from typing import Awaitable, Callable

from serenia_client.config import ClientSettings, get_settings
from serenia_client.domain.models import User
from serenia_client.logging import logger
from serenia_client.state.observable import Computed, Observable
from serenia_client.state.storage import MemoryStorage, TokenStorage

ProfileFetcher = Callable[[], Awaitable[User]]


class SessionStore:
    """Holds the bearer token and the user profile.

    The token is mirrored into the injected ``TokenStorage`` so that a new
    store built on the same storage picks it up. ``is_authenticated`` needs
    both a token and a profile.
    """

    def __init__(
        self,
        storage: TokenStorage | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._storage = storage if storage is not None else MemoryStorage()
        self._key = self.settings.storage.token_key

        self._token = Observable[str | None](self._storage.get(self._key), name="session.token")
        self._user = Observable[User | None](None, name="session.user")
        self._loading = Observable(False, name="session.loading")

        self.token = self._token.as_readonly()
        self.user = self._user.as_readonly()
        self.loading = self._loading.as_readonly()
        self.is_authenticated = Computed(
            lambda: bool(self._token()) and self._user() is not None,
            [self._token, self._user],
            name="session.is_authenticated",
        ).as_readonly()
        self.user_full_name = Computed(
            lambda: self._user().full_name if self._user() is not None else "",
            [self._user],
            name="session.user_full_name",
        ).as_readonly()

    def set_user(self, user: User | None) -> None:
        self._user.set(user)

    def set_token(self, token: str | None) -> None:
        self._token.set(token or None)
        if token:
            self._storage.set(self._key, token)
        else:
            self._storage.remove(self._key)

    def set_loading(self, loading: bool) -> None:
        self._loading.set(loading)

    def clear(self) -> None:
        self._user.set(None)
        self.set_token(None)

    async def restore_session(self, fetch_profile: ProfileFetcher) -> User | None:
        """Rebuild the profile from a stored token; any failure means no session."""

        if not self._token():
            return None
        try:
            user = await fetch_profile()
        except Exception as exc:
            logger.info("session_restore_failed", error=exc.__class__.__name__)
            self.clear()
            return None
        self.set_user(user)
        logger.info("session_restored", user_id=user.id)
        return user


__all__ = ["ProfileFetcher", "SessionStore"]
