"""Usage figures derived from the latest subscription snapshot."""

from __future__ import annotations

from typing import Callable, TypeVar

from serenia_client.config import QuotaSettings
from serenia_client.domain.models import FREE_PLAN, SubscriptionStatus
from serenia_client.state.observable import Computed, ReadOnly

T = TypeVar("T")


def usage_percent(used: int, limit: int) -> float:
    if limit <= 0:
        return 0.0
    return min(100.0, used / limit * 100)


class QuotaTracker:
    """Pure view over a ``SubscriptionStatus`` source; it never fetches."""

    def __init__(
        self,
        status: ReadOnly[SubscriptionStatus | None],
        settings: QuotaSettings | None = None,
    ) -> None:
        self._status = status
        self._settings = settings or QuotaSettings()

        self.tokens_usage_percent = self._derive(
            "tokens_usage_percent",
            lambda s: usage_percent(s.tokens_used_this_month, s.monthly_token_limit),
            0.0,
        )
        self.messages_usage_percent = self._derive(
            "messages_usage_percent",
            lambda s: usage_percent(s.messages_sent_today, s.daily_message_limit),
            0.0,
        )
        self.is_quota_low = self._derive("is_quota_low", self._is_low, False)
        self.tokens_remaining = self._derive(
            "tokens_remaining", lambda s: s.tokens_remaining_this_month, 0
        )
        self.messages_remaining = self._derive(
            "messages_remaining", lambda s: s.messages_remaining_today, 0
        )
        self.plan_name = self._derive("plan_name", lambda s: s.plan_name, FREE_PLAN)
        self.is_free_plan = self._derive(
            "is_free_plan", lambda s: s.plan_name == FREE_PLAN, True
        )
        self.is_paid_plan = self._derive(
            "is_paid_plan", lambda s: s.plan_name != FREE_PLAN, False
        )
        self.is_subscription_active = self._derive(
            "is_subscription_active",
            lambda s: s.status == "ACTIVE" or (s.status == "CANCELED" and s.cancel_at_period_end),
            True,
        )
        self.is_payment_failed = self._derive(
            "is_payment_failed", lambda s: s.status == "PAST_DUE", False
        )

    def _is_low(self, status: SubscriptionStatus) -> bool:
        return (
            status.messages_remaining_today <= self._settings.low_messages_threshold
            or status.tokens_remaining_this_month < self._settings.low_tokens_threshold
        )

    def _derive(
        self, name: str, fn: Callable[[SubscriptionStatus], T], default: T
    ) -> ReadOnly[T]:
        def compute() -> T:
            status = self._status()
            return default if status is None else fn(status)

        return Computed(compute, [self._status], name=f"quota.{name}").as_readonly()


__all__ = ["QuotaTracker", "usage_percent"]
