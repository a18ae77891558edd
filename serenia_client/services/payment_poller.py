"""Bounded polling that confirms a subscription upgrade after checkout."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from serenia_client.config import PollerSettings
from serenia_client.domain.models import FREE_PLAN
from serenia_client.logging import logger
from serenia_client.services.exceptions import ServiceError
from serenia_client.services.subscriptions import SubscriptionService
from serenia_client.state.observable import Observable


class PollOutcome(str, Enum):
    ACTIVATED = "activated"
    PENDING = "pending"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class PollState:
    baseline_plan: str
    max_attempts: int
    interval_seconds: float
    attempt: int = 0


OutcomeListener = Callable[[PollOutcome], None]


class PaymentConfirmationPoller:
    """Re-fetches the subscription status until the plan changes or attempts run out.

    A run stops on the first tick where the fetched plan differs from the
    baseline and is not ``FREE`` (``ACTIVATED``), or after ``max_attempts``
    ticks (``PENDING``). Tick failures only consume an attempt. ``cancel``
    is idempotent and reports nothing to listeners.
    """

    def __init__(
        self,
        subscriptions: SubscriptionService,
        settings: PollerSettings | None = None,
    ) -> None:
        self.subscriptions = subscriptions
        self.settings = settings or PollerSettings()
        self._poll: PollState | None = None
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[OutcomeListener] = []

        self._outcome = Observable[PollOutcome | None](None, name="poller.outcome")
        self._attempt = Observable(0, name="poller.attempt")
        self.outcome = self._outcome.as_readonly()
        self.attempt = self._attempt.as_readonly()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: OutcomeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def start(self, baseline_plan: str | None = None) -> None:
        """Begin a polling run; a run already in progress is cancelled first."""

        self.cancel()
        baseline = baseline_plan or self.subscriptions.plan_name()
        poll = PollState(
            baseline_plan=baseline,
            max_attempts=self.settings.max_attempts,
            interval_seconds=self.settings.interval_seconds,
        )
        self._poll = poll
        self._outcome.set(None)
        self._attempt.set(0)
        self._task = asyncio.get_running_loop().create_task(self._run(poll))
        logger.info(
            "payment_poll_started",
            baseline_plan=baseline,
            max_attempts=poll.max_attempts,
        )

    def cancel(self) -> None:
        poll, task = self._poll, self._task
        self._poll = None
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        if poll is not None:
            self._outcome.set(PollOutcome.CANCELLED)
            logger.info("payment_poll_cancelled", attempt=poll.attempt)

    async def wait(self) -> PollOutcome | None:
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        return self._outcome()

    async def _run(self, poll: PollState) -> None:
        while True:
            await asyncio.sleep(poll.interval_seconds)
            if self._poll is not poll:
                return
            poll.attempt += 1
            self._attempt.set(poll.attempt)
            plan = await self._tick(poll)
            if self._poll is not poll:
                return
            if plan != poll.baseline_plan and plan != FREE_PLAN:
                self._finish(poll, PollOutcome.ACTIVATED)
                return
            if poll.attempt >= poll.max_attempts:
                self._finish(poll, PollOutcome.PENDING)
                return

    async def _tick(self, poll: PollState) -> str:
        try:
            status = await self.subscriptions.refresh()
        except ServiceError as exc:
            logger.info(
                "payment_poll_tick_failed",
                attempt=poll.attempt,
                error=exc.__class__.__name__,
            )
            return self.subscriptions.plan_name()
        logger.debug("payment_poll_tick", attempt=poll.attempt, plan=status.plan_name)
        return status.plan_name

    def _finish(self, poll: PollState, outcome: PollOutcome) -> None:
        self._poll = None
        self._task = None
        self._outcome.set(outcome)
        logger.info("payment_poll_finished", outcome=outcome.value, attempts=poll.attempt)
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                logger.exception("payment_poll_listener_failed", outcome=outcome.value)


__all__ = ["OutcomeListener", "PaymentConfirmationPoller", "PollOutcome", "PollState"]
