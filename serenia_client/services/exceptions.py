"""Domain-specific exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from serenia_client.domain.models import QuotaError


class ServiceError(Exception):
    def __init__(self, message: str = "", *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ServiceError):
    """Input rejected locally; never reaches the network."""


class AuthError(ServiceError):
    pass


class AuthExpired(AuthError):
    pass


class QuotaExceeded(ServiceError):
    def __init__(self, message: str = "", *, quota_error: QuotaError | None = None) -> None:
        super().__init__(message or "Quota exceeded.", status_code=429)
        self.quota_error = quota_error


class ConversationError(ServiceError):
    pass


class SendFailed(ConversationError):
    pass


class LoadFailed(ConversationError):
    pass


class SubscriptionError(ServiceError):
    pass


class AdminError(ServiceError):
    """Admin statistics call rejected or unreachable; 403 for non-admin users."""


__all__ = [
    "AdminError",
    "AuthError",
    "AuthExpired",
    "ConversationError",
    "LoadFailed",
    "QuotaExceeded",
    "SendFailed",
    "ServiceError",
    "SubscriptionError",
    "ValidationError",
]
