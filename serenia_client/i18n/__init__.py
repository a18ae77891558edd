"""User-facing text for typed client errors and payment outcomes."""

from __future__ import annotations

from serenia_client.domain.models import QuotaError, QuotaType
from serenia_client.i18n.service import I18nService
from serenia_client.services.exceptions import (
    AdminError,
    AuthError,
    AuthExpired,
    ConversationError,
    LoadFailed,
    QuotaExceeded,
    SendFailed,
    ServiceError,
    SubscriptionError,
    ValidationError,
)
from serenia_client.services.payment_poller import PollOutcome

_ERROR_KEYS: tuple[tuple[type[ServiceError], str], ...] = (
    (AuthExpired, "error.auth_expired"),
    (AuthError, "error.auth"),
    (ValidationError, "error.validation"),
    (SendFailed, "error.send_failed"),
    (LoadFailed, "error.load_failed"),
    (ConversationError, "error.delete_failed"),
    (AdminError, "error.admin"),
)


def describe_quota_error(
    quota_error: QuotaError | None, i18n: I18nService, locale: str | None = None
) -> str:
    if quota_error is None:
        return i18n.gettext("quota.generic", locale=locale)
    if quota_error.quota_type is QuotaType.DAILY_MESSAGE_LIMIT:
        return i18n.gettext(
            "quota.daily_message_limit",
            locale=locale,
            current=quota_error.current,
            limit=quota_error.limit,
        )
    if quota_error.quota_type is QuotaType.MONTHLY_TOKEN_LIMIT:
        return i18n.gettext("quota.monthly_token_limit", locale=locale)
    return quota_error.message or i18n.gettext("quota.generic", locale=locale)


def describe_error(exc: BaseException, i18n: I18nService, locale: str | None = None) -> str:
    if isinstance(exc, QuotaExceeded):
        return describe_quota_error(exc.quota_error, i18n, locale)
    if isinstance(exc, SubscriptionError):
        # SubscriptionError carries its message key as the exception text.
        return i18n.gettext(str(exc) or "error.generic", locale=locale)
    for error_type, key in _ERROR_KEYS:
        if isinstance(exc, error_type):
            return i18n.gettext(key, locale=locale)
    return i18n.gettext("error.generic", locale=locale)


def describe_outcome(outcome: PollOutcome, i18n: I18nService, locale: str | None = None) -> str:
    return i18n.gettext(f"payment.{outcome.value}", locale=locale)


__all__ = ["I18nService", "describe_error", "describe_outcome", "describe_quota_error"]
