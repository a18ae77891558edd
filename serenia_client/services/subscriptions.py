"""Subscription status source and plan management."""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

import httpx
from pydantic import ValidationError as PayloadError

from serenia_client.api.client import SereniaApi, status_of
from serenia_client.domain.models import FREE_PLAN, PLAN_CONFIGS, Plan, PlanType, SubscriptionStatus
from serenia_client.logging import logger
from serenia_client.services.exceptions import SubscriptionError
from serenia_client.state.observable import Computed, Observable

T = TypeVar("T")

ERROR_STATUS = "subscription.error.status"
ERROR_PLANS = "subscription.error.plans"
ERROR_CHANGE_PLAN = "subscription.error.change_plan"
ERROR_CHECKOUT = "subscription.error.checkout"
ERROR_PORTAL = "subscription.error.portal"


class SubscriptionService:
    """Owns the latest ``SubscriptionStatus`` snapshot.

    Every successful status-bearing call replaces the snapshot wholesale;
    ``QuotaTracker`` and ``PaymentConfirmationPoller`` read from here.
    """

    def __init__(self, api: SereniaApi) -> None:
        self.api = api
        self._status = Observable[SubscriptionStatus | None](None, name="subscription.status")
        self._plans = Observable[tuple[Plan, ...]](PLAN_CONFIGS, name="subscription.plans")
        self._loading = Observable(False, name="subscription.loading")
        self._error = Observable[str | None](None, name="subscription.error")

        self.status = self._status.as_readonly()
        self.plans = self._plans.as_readonly()
        self.loading = self._loading.as_readonly()
        self.error = self._error.as_readonly()
        self.plan_name = Computed(
            lambda: self._status().plan_name if self._status() is not None else FREE_PLAN,
            [self._status],
            name="subscription.plan_name",
        ).as_readonly()

    async def refresh(self) -> SubscriptionStatus:
        """Fetch ``/subscription/status`` and replace the current snapshot."""

        status = await self._call(ERROR_STATUS, self.api.get_subscription_status)
        self._status.set(status)
        logger.debug("subscription_status_refreshed", plan=status.plan_name)
        return status

    get_status = refresh

    async def change_plan(self, plan_type: PlanType | str) -> SubscriptionStatus:
        plan = PlanType(plan_type)
        status = await self._call(ERROR_CHANGE_PLAN, lambda: self.api.change_plan(plan))
        self._status.set(status)
        logger.info("subscription_plan_changed", plan=status.plan_name)
        return status

    async def get_plans(self) -> tuple[Plan, ...]:
        plans = await self._call(ERROR_PLANS, self.api.get_plans)
        if plans:
            self._plans.set(tuple(plans))
        return self._plans()

    async def create_checkout_session(self, plan_type: PlanType | str) -> str:
        """Return the hosted checkout URL the caller should redirect to."""

        plan = PlanType(plan_type)
        session = await self._call(
            ERROR_CHECKOUT, lambda: self.api.create_checkout_session(plan)
        )
        logger.info("checkout_session_created", plan=plan.value)
        return session.url

    async def open_customer_portal(self) -> str:
        session = await self._call(ERROR_PORTAL, self.api.create_portal_session)
        return session.url

    def current_plan_config(self) -> Plan | None:
        name = self.plan_name()
        for plan in self._plans():
            if plan.type.value == name:
                return plan
        return None

    def clear(self) -> None:
        self._status.set(None)
        self._error.set(None)

    async def _call(self, error_key: str, request: Callable[[], Awaitable[T]]) -> T:
        self._loading.set(True)
        self._error.set(None)
        try:
            return await request()
        except (httpx.HTTPError, PayloadError) as exc:
            status = status_of(exc)
            logger.warning("subscription_request_failed", error_key=error_key, status_code=status)
            self._error.set(error_key)
            raise SubscriptionError(error_key, status_code=status) from exc
        finally:
            self._loading.set(False)


__all__ = ["SubscriptionService"]
