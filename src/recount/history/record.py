"""Per-subject history record — the handle returned by ``EventStore``.

A record owns one subject's append-only event list, its derived-view
cache, its mark, and its (lazily created) subscriber channel. It never
shares mutable state with another record.

Mutation goes through ``EventStore`` so that locking, the history
ceiling, and observer dispatch stay in one place. Reads are public.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from recount.history.channel import EventChannel
from recount.history.events import LifecycleEvent, now_ns
from recount.views.cache import ViewCache

if TYPE_CHECKING:
    import threading
    from collections.abc import Mapping, Sequence

    from recount._types import Listener, Unsubscribe
    from recount.views.metrics import CacheMetrics


class HistoryRecord:
    """Event history for one subject.

    ``version`` increases on every append and clear; view-cache slots
    compare against it to decide whether they are still valid. ``epoch``
    increases only on clear, so a slot from the same epoch may be
    extended with the events appended since it was computed.

    """

    __slots__ = (
        "_channel",
        "_epoch",
        "_events",
        "_mark",
        "_max_listeners",
        "_version",
        "_views",
        "owner",
    )

    def __init__(
        self,
        owner: object,
        *,
        lock: threading.RLock,
        metrics: CacheMetrics,
        max_listeners: int,
    ) -> None:
        self.owner = owner
        self._events: list[LifecycleEvent] = []
        self._version = 0
        self._epoch = 0
        self._mark = 0
        self._max_listeners = max_listeners
        self._channel: EventChannel | None = None
        self._views = ViewCache(self, lock=lock, metrics=metrics)

    # ----- Reads -----

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def version(self) -> int:
        return self._version

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def events(self) -> Sequence[LifecycleEvent]:
        """Live event list. View kinds read it; nothing else should."""
        return self._events

    @property
    def views(self) -> ViewCache:
        """Derived-view cache for this record."""
        return self._views

    @property
    def count_since_mark(self) -> int:
        return len(self._events) - self._mark

    @property
    def listener_count(self) -> int:
        return len(self._channel) if self._channel is not None else 0

    def event_at(self, index: int) -> LifecycleEvent | None:
        """Return the event at ``index`` (negative indexes count from the end)."""
        try:
            return self._events[index]
        except IndexError:
            return None

    def last_event(self) -> LifecycleEvent | None:
        return self._events[-1] if self._events else None

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Call ``listener`` synchronously for every later append."""
        if self._channel is None:
            self._channel = EventChannel(self._max_listeners)
        return self._channel.subscribe(listener)

    # ----- Mutation (EventStore only) -----

    def _append(self, category: str, metrics: Mapping[str, float]) -> LifecycleEvent:
        event = LifecycleEvent(
            category=category,
            index=len(self._events),
            timestamp_ns=now_ns(),
            metrics=metrics,
        )
        self._events.append(event)
        self._version += 1
        return event

    def _emit(self, event: LifecycleEvent) -> None:
        if self._channel:
            self._channel.emit(event)

    def _set_mark(self) -> int:
        self._mark = len(self._events)
        return self._mark

    def _clear(self) -> int:
        count = len(self._events)
        self._events = []
        self._mark = 0
        self._version += 1
        self._epoch += 1
        self._views.clear()
        if self._channel is not None:
            self._channel.clear()
        return count

    def __repr__(self) -> str:
        return f"<HistoryRecord events={len(self._events)} version={self._version}>"
