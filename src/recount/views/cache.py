"""Derived-view cache — lazily validated, per-record memoization.

Each record owns one ``ViewCache``. A slot remembers the record version it
was computed at; a query compares that against the record's current
version. Equal means hit: the stored object is returned as is. Anything
else means miss: the value is extended from the events appended since
(when the kind supports it and no clear happened in between) or rebuilt
from the full history.

Appends never touch the slots. Invalidation is the version bump in
``HistoryRecord._append``; the cost of catching up is paid by the next
read of each slot.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar, Any

from recount.views.kinds import (
    ByCategory,
    CategoryCounts,
    Counts,
    DurationStats,
    Durations,
    EventCounts,
    HasCategory,
    HistoryView,
    LastCategory,
    LoopReport,
    Loops,
    ViewKind,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Mapping

    from recount.history.events import LifecycleEvent
    from recount.history.record import HistoryRecord
    from recount.views.metrics import CacheMetrics

T = TypeVar("T")

_HISTORY = HistoryView()
_COUNTS = Counts()
_CATEGORY_COUNTS = CategoryCounts()
_LAST_CATEGORY = LastCategory()


@dataclass(slots=True)
class _Slot:
    value: Any
    version: int
    epoch: int
    count: int


class ViewCache:
    """Memoized views over one record's history.

    Args:
        record: The record whose history the views are computed from.
        lock: The owning store's lock; reads hold it so a slot is never
            written from a half-applied append.
        metrics: Shared hit/miss counters.

    """

    __slots__ = ("_lock", "_metrics", "_record", "_slots")

    def __init__(self, record: HistoryRecord, *, lock: threading.RLock, metrics: CacheMetrics) -> None:
        self._record = record
        self._lock = lock
        self._metrics = metrics
        self._slots: dict[ViewKind[Any], _Slot] = {}

    def get(self, kind: ViewKind[T]) -> T:
        """Return the view for ``kind``, recomputing only when stale."""
        with self._lock:
            record = self._record
            slot = self._slots.get(kind)
            if slot is not None and slot.version == record.version:
                self._metrics.record_hit(kind.name)
                return slot.value

            self._metrics.record_miss(kind.name)
            events = record.events
            if (
                slot is not None
                and kind.incremental
                and slot.epoch == record.epoch
                and slot.count <= len(events)
            ):
                value = kind.extend(slot.value, events[slot.count :])
            else:
                value = kind.compute(events)
            self._slots[kind] = _Slot(value, record.version, record.epoch, len(events))
            return value

    def peek(self, kind: ViewKind[T]) -> T:
        """Return the view for ``kind`` without touching slots or metrics.

        For internal re-checks (waiters): a valid slot is reused, a stale
        or missing one is computed and discarded, so callers' hit/miss
        accounting only reflects their own queries.
        """
        with self._lock:
            record = self._record
            slot = self._slots.get(kind)
            if slot is not None and slot.version == record.version:
                return slot.value
            return kind.compute(record.events)

    def clear(self) -> None:
        """Drop every slot (memory only; versions already make them stale)."""
        self._slots.clear()

    def __len__(self) -> int:
        return len(self._slots)

    # ----- Named views -----

    def history(self) -> tuple[LifecycleEvent, ...]:
        return self.get(_HISTORY)

    def by_category(self, category: str) -> tuple[LifecycleEvent, ...]:
        return self.get(ByCategory(category))

    def has_category(self, category: str) -> bool:
        return self.get(HasCategory(category))

    def counts(self) -> EventCounts:
        return self.get(_COUNTS)

    def category_counts(self) -> Mapping[str, int]:
        return self.get(_CATEGORY_COUNTS)

    def last_category(self) -> str | None:
        return self.get(_LAST_CATEGORY)

    def duration_stats(self, field: str) -> DurationStats:
        return self.get(Durations(field))

    def loops(
        self,
        *,
        max_consecutive: int = 10,
        max_consecutive_nested: int | None = None,
        ignore_initial_updates: int = 0,
    ) -> LoopReport:
        return self.get(
            Loops(
                max_consecutive=max_consecutive,
                max_consecutive_nested=max_consecutive_nested,
                ignore_initial_updates=ignore_initial_updates,
            )
        )
