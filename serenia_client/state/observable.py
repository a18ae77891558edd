"""Minimal observable values used as the client's reactive state."""

from __future__ import annotations

from typing import Any, Callable, Generic, Sequence, TypeVar

from serenia_client.logging import logger

T = TypeVar("T")
Listener = Callable[[T], None]


class ReadOnly(Generic[T]):
    """Observation-only view handed out to callers that must not write."""

    def __init__(self, source: "Observable[T] | Computed[T]") -> None:
        self._source = source

    def get(self) -> T:
        return self._source.get()

    def __call__(self) -> T:
        return self._source.get()

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        return self._source.subscribe(listener)


class Observable(Generic[T]):
    """Single-writer value that notifies subscribers when it changes.

    Listeners are called synchronously, in subscription order, after the new
    value is stored. A value equal to the current one does not notify.
    """

    def __init__(self, initial: T, *, name: str = "observable") -> None:
        self._value = initial
        self._name = name
        self._listeners: list[Listener[T]] = []

    def get(self) -> T:
        return self._value

    def __call__(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        self._notify()

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def as_readonly(self) -> ReadOnly[T]:
        return ReadOnly(self)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception("observable_listener_failed", observable=self._name)


class Computed(Observable[T]):
    """Value derived from one or more sources, recomputed on every source change."""

    def __init__(
        self,
        compute: Callable[[], T],
        sources: Sequence[Observable[Any] | ReadOnly[Any]],
        *,
        name: str = "computed",
    ) -> None:
        super().__init__(compute(), name=name)
        self._compute = compute
        for source in sources:
            source.subscribe(lambda _value: self._recompute())

    def set(self, value: T) -> None:
        raise AttributeError(f"{self._name} is derived and cannot be set")

    def _recompute(self) -> None:
        value = self._compute()
        if value == self._value:
            return
        self._value = value
        self._notify()


__all__ = ["Computed", "Observable", "ReadOnly"]
