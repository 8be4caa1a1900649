"""Event store — isolated, append-only histories keyed by subject identity.

Subjects are associated by identity only: the store never calls a
subject's ``__eq__`` or ``__hash__``, and never keeps a subject alive.
Each association holds a ``weakref.ref`` whose callback drops the record
once the subject is collected. Subjects that cannot be weakly referenced
(tuples, ``__slots__`` classes without ``__weakref__``) are held strongly
until ``dispose()``, ``reset()`` or process exit.

Thread Safety:
    ``append``, ``clear`` and observer dispatch run under one re-entrant
    lock per store, so "append, then visible invalidation, then listener
    dispatch" is atomic with respect to other threads. Listeners may
    append to the same store re-entrantly.

"""

from __future__ import annotations

import functools
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from recount._errors import HistoryLimitError, UsageError
from recount.config import RecountConfig
from recount.history.events import freeze_metrics
from recount.history.record import HistoryRecord
from recount.views.metrics import CacheMetrics

if TYPE_CHECKING:
    from recount._types import History, Listener, Unsubscribe
    from recount.history.events import LifecycleEvent

logger = logging.getLogger(__name__)

# Values whose identity is not stable (interning, caching, re-boxing).
_VALUE_TYPES = (str, bytes, int, float, complex, bool)

_live_stores: weakref.WeakSet[EventStore] = weakref.WeakSet()


class StoreObserver(Protocol):
    """Receives synchronous notifications from ``EventStore`` mutations."""

    def on_append(self, record: HistoryRecord, event: LifecycleEvent) -> None: ...

    def on_clear(self, record: HistoryRecord) -> None: ...

    def on_dispose(self, record: HistoryRecord) -> None: ...


@dataclass(slots=True)
class _Association:
    """Non-owning link from a subject to its record."""

    record: HistoryRecord
    ref: weakref.ref[object] | None = None
    strong: object | None = None

    def subject(self) -> object | None:
        if self.ref is not None:
            return self.ref()
        return self.strong


def check_subject(subject: object) -> None:
    """Raise ``UsageError`` when ``subject`` cannot be tracked by identity."""
    if subject is None or isinstance(subject, _VALUE_TYPES):
        msg = (
            "subject must be an object compared by identity "
            f"(not None or a str/bytes/number value), got {type(subject).__name__}"
        )
        raise UsageError(msg)


class EventStore:
    """Per-subject event histories with synchronous change notification.

    Args:
        config: Limits and metrics switch. Defaults to ``RecountConfig()``.

    """

    __slots__ = ("__weakref__", "_config", "_lock", "_metrics", "_observers", "_records")

    def __init__(self, config: RecountConfig | None = None) -> None:
        self._config = config if config is not None else RecountConfig()
        self._metrics = CacheMetrics(enabled=self._config.collect_metrics)
        self._records: dict[int, _Association] = {}
        self._observers: list[StoreObserver] = []
        self._lock = threading.RLock()
        _live_stores.add(self)

    @property
    def config(self) -> RecountConfig:
        return self._config

    @property
    def metrics(self) -> CacheMetrics:
        """View-cache hit/miss counters shared by every record of this store."""
        return self._metrics

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ----- Observers -----

    def add_observer(self, observer: StoreObserver) -> None:
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def remove_observer(self, observer: StoreObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    # ----- Association -----

    def get_or_create(self, subject: object) -> HistoryRecord:
        """Return the subject's record, creating an empty one on first use."""
        check_subject(subject)
        key = id(subject)
        with self._lock:
            assoc = self._records.get(key)
            if assoc is not None and assoc.subject() is subject:
                return assoc.record
            record = HistoryRecord(
                self,
                lock=self._lock,
                metrics=self._metrics,
                max_listeners=self._config.max_listeners,
            )
            self._records[key] = self._associate(key, subject, record)
            return record

    def get(self, subject: object) -> HistoryRecord | None:
        """Return the subject's record, or None if it was never recorded."""
        check_subject(subject)
        with self._lock:
            assoc = self._records.get(id(subject))
            if assoc is not None and assoc.subject() is subject:
                return assoc.record
            return None

    def has(self, subject: object) -> bool:
        return self.get(subject) is not None

    def dispose(self, subject: object) -> bool:
        """Drop the subject's record and notify observers. Returns False if there was none."""
        check_subject(subject)
        with self._lock:
            assoc = self._records.get(id(subject))
            if assoc is None or assoc.subject() is not subject:
                return False
            del self._records[id(subject)]
            self._notify_dispose(assoc.record)
            return True

    def _associate(self, key: int, subject: object, record: HistoryRecord) -> _Association:
        try:
            ref = weakref.ref(subject, functools.partial(self._on_collected, key))
        except TypeError:
            logger.debug(
                "%s is not weakly referenceable; holding it until dispose()",
                type(subject).__name__,
            )
            return _Association(record, strong=subject)
        return _Association(record, ref=ref)

    def _on_collected(self, key: int, ref: weakref.ref[object]) -> None:
        with self._lock:
            assoc = self._records.get(key)
            if assoc is not None and assoc.ref is ref:
                del self._records[key]
                self._notify_dispose(assoc.record)

    def _notify_dispose(self, record: HistoryRecord) -> None:
        for observer in tuple(self._observers):
            observer.on_dispose(record)

    # ----- Mutation -----

    def append(self, record: HistoryRecord, category: str, **metrics: float) -> LifecycleEvent:
        """Append one event and notify observers, then subscribers.

        Args:
            record: Handle from ``get_or_create``.
            category: Caller-defined, non-empty category string.
            **metrics: Optional numeric timing fields.

        Raises:
            UsageError: Bad record, category, or metric value.
            HistoryLimitError: The record already holds ``max_events`` events.

        """
        self._check_record(record)
        if not isinstance(category, str) or not category:
            msg = f"category must be a non-empty str, got {category!r}"
            raise UsageError(msg)
        frozen = freeze_metrics(metrics)
        with self._lock:
            if record.count >= self._config.max_events:
                logger.warning(
                    "history limit of %d events reached; rejecting %r",
                    self._config.max_events,
                    category,
                )
                raise HistoryLimitError(self._config.max_events)
            event = record._append(category, frozen)
            for observer in tuple(self._observers):
                observer.on_append(record, event)
            record._emit(event)
        return event

    def mark(self, record: HistoryRecord) -> int:
        """Remember the current count; ``count_since_mark`` measures from here."""
        self._check_record(record)
        with self._lock:
            return record._set_mark()

    def clear(self, record: HistoryRecord) -> int:
        """Empty one record's history and subscribers. Returns events dropped."""
        self._check_record(record)
        with self._lock:
            dropped = record._clear()
            for observer in tuple(self._observers):
                observer.on_clear(record)
        return dropped

    def clear_all(self) -> int:
        """Clear every record but keep the associations. Idempotent."""
        with self._lock:
            records = [assoc.record for assoc in self._records.values()]
            dropped = sum(self.clear(record) for record in records)
        if dropped:
            logger.debug("cleared %d events across %d subjects", dropped, len(records))
        return dropped

    def reset(self) -> int:
        """Clear every record, then drop every association. Idempotent."""
        with self._lock:
            dropped = self.clear_all()
            records = [assoc.record for assoc in self._records.values()]
            self._records.clear()
            for record in records:
                self._notify_dispose(record)
        return dropped

    # ----- Reads -----

    def snapshot(self, record: HistoryRecord) -> History:
        """Frozen history; the same object until the next append or clear."""
        self._check_record(record)
        return record.views.history()

    def count(self, record: HistoryRecord) -> int:
        self._check_record(record)
        return record.count

    def count_since_mark(self, record: HistoryRecord) -> int:
        self._check_record(record)
        return record.count_since_mark

    def subscribe(self, record: HistoryRecord, listener: Listener) -> Unsubscribe:
        """Subscribe ``listener`` to the record's later appends."""
        self._check_record(record)
        if not callable(listener):
            msg = f"listener must be callable, got {type(listener).__name__}"
            raise UsageError(msg)
        with self._lock:
            return record.subscribe(listener)

    def _check_record(self, record: object) -> None:
        if not isinstance(record, HistoryRecord):
            msg = f"record must be a HistoryRecord from get_or_create(), got {type(record).__name__}"
            raise UsageError(msg)
        if record.owner is not self:
            msg = "record belongs to a different EventStore"
            raise UsageError(msg)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def stats(self) -> dict[str, int]:
        """Return summary counts about tracked subjects."""
        with self._lock:
            records = [assoc.record for assoc in self._records.values()]
            observers = len(self._observers)
        return {
            "subjects": len(records),
            "events": sum(record.count for record in records),
            "listeners": sum(record.listener_count for record in records),
            "observers": observers,
        }


def reset_all_stores() -> int:
    """Clear every live store in the process. Idempotent.

    Associations are kept, so subjects created once (e.g. at module level
    in a test file) keep working with empty histories.
    """
    return sum(store.clear_all() for store in list(_live_stores))
