"""Account operations layered over the session store."""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

import httpx
from pydantic import ValidationError as PayloadError

from serenia_client.api.client import SereniaApi, status_of
from serenia_client.domain.models import ApiMessage, User
from serenia_client.logging import logger
from serenia_client.services.exceptions import AuthError, AuthExpired, ValidationError
from serenia_client.services.session import SessionStore

T = TypeVar("T")


class AuthService:
    def __init__(
        self,
        api: SereniaApi,
        session: SessionStore,
        *,
        on_logout: Callable[[], None] | None = None,
    ) -> None:
        self.api = api
        self.session = session
        self._on_logout = on_logout

    async def login(self, email: str, password: str) -> User:
        email = _require(email, "email")
        _require(password, "password")
        response = await self._call("login", lambda: self.api.login(email, password))
        self.session.set_token(response.token)
        self.session.set_user(response.user)
        logger.info("login_succeeded", user_id=response.user.id)
        return response.user

    async def register(
        self, *, first_name: str, last_name: str, email: str, password: str
    ) -> ApiMessage:
        email = _require(email, "email")
        _require(password, "password")
        return await self._call(
            "register",
            lambda: self.api.register(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=email,
                password=password,
            ),
        )

    async def activate(self, token: str) -> ApiMessage:
        token = _require(token, "token")
        return await self._call("activate", lambda: self.api.activate(token))

    async def forgot_password(self, email: str) -> ApiMessage:
        email = _require(email, "email")
        return await self._call("forgot_password", lambda: self.api.forgot_password(email))

    async def reset_password(self, token: str, new_password: str) -> ApiMessage:
        token = _require(token, "token")
        _require(new_password, "new_password")
        return await self._call(
            "reset_password", lambda: self.api.reset_password(token, new_password)
        )

    async def get_profile(self) -> User:
        try:
            user = await self.api.get_profile()
        except (httpx.HTTPError, PayloadError) as exc:
            raise _translate("get_profile", exc) from exc
        self.session.set_user(user)
        return user

    async def restore_session(self) -> User | None:
        return await self.session.restore_session(self.api.get_profile)

    async def delete_account(self) -> None:
        await self._call("delete_account", self.api.delete_account)
        logger.info("account_deleted")
        self.logout()

    def logout(self) -> None:
        self.session.clear()
        if self._on_logout is not None:
            self._on_logout()

    async def _call(self, operation: str, request: Callable[[], Awaitable[T]]) -> T:
        self.session.set_loading(True)
        try:
            return await request()
        except (httpx.HTTPError, PayloadError) as exc:
            raise _translate(operation, exc) from exc
        finally:
            self.session.set_loading(False)


def _require(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be empty.")
    return cleaned


def _translate(operation: str, exc: Exception) -> AuthError:
    status = status_of(exc)
    logger.warning("auth_request_failed", operation=operation, status_code=status)
    if status == 401:
        return AuthExpired("Authentication required.", status_code=401)
    return AuthError(f"{operation} failed.", status_code=status)


__all__ = ["AuthService"]
