"""Profiler — subject-keyed surface over the store, views and waiters.

Instrumentation calls ``record``; assertion layers call the queries and
the ``wait_for*`` methods. Queries on a subject that never recorded an
event return the view's empty value and do not create a record.

Quick start::

    profiler = Profiler()
    profiler.record(button, "initial", actual_duration=4.2)
    profiler.record(button, "update", actual_duration=1.1)

    profiler.count(button)                  # 2
    profiler.by_category(button, "update")  # (LifecycleEvent(...),)

    await profiler.wait_for_at_least(button, 3, timeout_ms=500)

"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from recount.history.store import EventStore
from recount.views.kinds import (
    ByCategory,
    CategoryCounts,
    Counts,
    Durations,
    HasCategory,
    HistoryView,
    LastCategory,
    Loops,
    ViewKind,
)
from recount.waiting.conditions import ExactCount, MinimumCount, PhaseReached, SinceMark
from recount.waiting.registry import WaiterRegistry

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Mapping

    from recount._types import History, Listener, Unsubscribe
    from recount.config import RecountConfig
    from recount.history.events import LifecycleEvent
    from recount.history.record import HistoryRecord
    from recount.views.kinds import DurationStats, EventCounts, LoopReport
    from recount.views.metrics import CacheMetrics
    from recount.waiting.conditions import Condition
    from recount.waiting.registry import StabilizationResult, WaitResult


T = TypeVar("T")


class Profiler:
    """Event store, derived views and waiter registry behind one object.

    Args:
        config: Used when ``store`` is not given.
        store: Share an existing store (and its metrics) instead of
            creating one.

    """

    __slots__ = ("_registry", "_store")

    def __init__(self, config: RecountConfig | None = None, *, store: EventStore | None = None) -> None:
        self._store = store if store is not None else EventStore(config)
        self._registry = WaiterRegistry(self._store)

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def waiters(self) -> WaiterRegistry:
        return self._registry

    @property
    def metrics(self) -> CacheMetrics:
        return self._store.metrics

    # ----- Instrumentation side -----

    def record(self, subject: object, category: str, **metrics: float) -> LifecycleEvent:
        """Append one event for ``subject``."""
        return self._store.append(self._store.get_or_create(subject), category, **metrics)

    def handle(self, subject: object) -> HistoryRecord:
        """The subject's record, created on first use."""
        return self._store.get_or_create(subject)

    # ----- Queries -----

    def _view(self, subject: object, kind: ViewKind[T]) -> T:
        record = self._store.get(subject)
        if record is None:
            return kind.empty()
        return record.views.get(kind)

    def count(self, subject: object) -> int:
        record = self._store.get(subject)
        return record.count if record is not None else 0

    def history(self, subject: object) -> History:
        return self._view(subject, HistoryView())

    def by_category(self, subject: object, category: str) -> tuple[LifecycleEvent, ...]:
        return self._view(subject, ByCategory(category))

    def has_category(self, subject: object, category: str) -> bool:
        return self._view(subject, HasCategory(category))

    def counts(self, subject: object) -> EventCounts:
        return self._view(subject, Counts())

    def category_counts(self, subject: object) -> Mapping[str, int]:
        return self._view(subject, CategoryCounts())

    def last_category(self, subject: object) -> str | None:
        return self._view(subject, LastCategory())

    def event_at(self, subject: object, index: int) -> LifecycleEvent | None:
        record = self._store.get(subject)
        return record.event_at(index) if record is not None else None

    def duration_stats(self, subject: object, field: str) -> DurationStats:
        return self._view(subject, Durations(field))

    def loops(
        self,
        subject: object,
        *,
        max_consecutive: int = 10,
        max_consecutive_nested: int | None = None,
        ignore_initial_updates: int = 0,
    ) -> LoopReport:
        kind = Loops(
            max_consecutive=max_consecutive,
            max_consecutive_nested=max_consecutive_nested,
            ignore_initial_updates=ignore_initial_updates,
        )
        return self._view(subject, kind)

    # ----- Marks and subscriptions -----

    def mark(self, subject: object) -> int:
        """Start counting events from now; see ``count_since_mark``."""
        return self._store.mark(self._store.get_or_create(subject))

    def count_since_mark(self, subject: object) -> int:
        record = self._store.get(subject)
        return record.count_since_mark if record is not None else 0

    def subscribe(self, subject: object, listener: Listener) -> Unsubscribe:
        return self._store.subscribe(self._store.get_or_create(subject), listener)

    # ----- Waiting -----

    def wait_for(self, subject: object, condition: Condition, timeout_ms: float) -> asyncio.Future[WaitResult]:
        return self._registry.wait_for(subject, condition, timeout_ms)

    def wait_for_count(self, subject: object, count: int, *, timeout_ms: float) -> asyncio.Future[WaitResult]:
        return self._registry.wait_for(subject, ExactCount(count), timeout_ms)

    def wait_for_at_least(self, subject: object, count: int, *, timeout_ms: float) -> asyncio.Future[WaitResult]:
        return self._registry.wait_for(subject, MinimumCount(count), timeout_ms)

    def wait_for_phase(self, subject: object, category: str, *, timeout_ms: float) -> asyncio.Future[WaitResult]:
        return self._registry.wait_for(subject, PhaseReached(category), timeout_ms)

    def wait_for_since_mark(
        self,
        subject: object,
        count: int = 1,
        *,
        exact: bool = False,
        timeout_ms: float,
    ) -> asyncio.Future[WaitResult]:
        return self._registry.wait_for(subject, SinceMark(count, exact=exact), timeout_ms)

    def wait_for_next_event(self, subject: object, *, timeout_ms: float) -> asyncio.Future[LifecycleEvent]:
        return self._registry.wait_for_next_event(subject, timeout_ms)

    def wait_for_stabilization(
        self,
        subject: object,
        *,
        timeout_ms: float,
        debounce_ms: float | None = None,
    ) -> asyncio.Future[StabilizationResult]:
        if debounce_ms is None:
            debounce_ms = self._store.config.stabilization_debounce_ms
        return self._registry.wait_for_stabilization(subject, debounce_ms, timeout_ms)

    # ----- Reset -----

    def reset(self) -> int:
        """Clear every subject's history. Returns the number of events dropped."""
        return self._store.clear_all()

    def close(self) -> int:
        """Detach from the store and cancel pending waiters.

        Needed when the store is shared and outlives this profiler.
        Returns the number of waiters cancelled.
        """
        return self._registry.close()
