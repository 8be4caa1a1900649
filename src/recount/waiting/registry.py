"""Waiter registry — futures that resolve when a subject's history changes.

A waiter is one pending registration: a condition (or the next event, or
a quiet period), an asyncio future, and a deadline timer. The registry
observes an ``EventStore`` and re-evaluates every waiter of a subject,
independently, on every append and clear of that subject.

Lifecycle of a waiter:

1. ``wait_for`` validates its arguments, then checks the condition under
   the store lock. Already met: the returned future is already resolved
   and nothing is registered.
2. Otherwise the waiter is added to the subject's list and a timer is
   armed with ``loop.call_later``.
3. Exactly one terminal transition follows: satisfied, timed out, failed
   (the condition raised), disposed (the subject's record was dropped)
   or cancelled (the caller cancelled the future, or ``close()``).
   Every path goes through ``_Waiter._finish``, which unregisters the
   waiter once and is a no-op afterwards.

Thread Safety:
    Notifications run under the store lock on whichever thread appended.
    Future and timer operations are handed to the waiter's event loop with
    ``call_soon_threadsafe`` when that thread is not the loop's thread.

"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from recount._errors import StabilizationTimeoutError, SubjectDisposedError, UsageError, WaitTimeoutError
from recount.history.store import check_subject
from recount.waiting.conditions import Condition, MinimumCount

if TYPE_CHECKING:
    from recount.history.events import LifecycleEvent
    from recount.history.record import HistoryRecord
    from recount.history.store import EventStore

logger = logging.getLogger(__name__)

_PENDING = object()


def _check_ms(value: object, param: str) -> float:
    """Validate a positive, finite millisecond value and return it in seconds."""
    if isinstance(value, bool) or not isinstance(value, int | float) or not value > 0:
        msg = f"{param} must be a positive number of milliseconds, got {value!r}"
        raise UsageError(msg)
    if value == float("inf"):
        msg = f"{param} must be finite, got {value!r}"
        raise UsageError(msg)
    return value / 1000


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WaitResult:
    """Outcome of a satisfied ``wait_for``.

    Attributes:
        condition: The condition that was met.
        count: History length when it was met.
        last_event: Most recent event at that moment (None for an empty history).
        elapsed_ms: Time from registration to satisfaction.

    """

    condition: Condition
    count: int
    last_event: LifecycleEvent | None
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class StabilizationResult:
    """Outcome of a satisfied ``wait_for_stabilization``.

    Attributes:
        event_count: Events appended while waiting.
        last_category: Category of the last of those events, if any.
        elapsed_ms: Time from registration to stabilization.

    """

    event_count: int
    last_category: str | None
    elapsed_ms: float


# ---------------------------------------------------------------------------
# Waiters
# ---------------------------------------------------------------------------


class _Waiter:
    """Base waiter: registration bookkeeping and the single terminal transition."""

    __slots__ = (
        "_done",
        "_registry",
        "_started",
        "_thread_id",
        "_timer",
        "future",
        "loop",
        "record",
    )

    def __init__(self, registry: WaiterRegistry, record: HistoryRecord, loop: asyncio.AbstractEventLoop) -> None:
        self._registry = registry
        self.record = record
        self.loop = loop
        self.future: asyncio.Future[Any] = loop.create_future()
        self._started = loop.time()
        self._thread_id = threading.get_ident()
        self._timer: asyncio.TimerHandle | None = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def elapsed_ms(self) -> float:
        return (self.loop.time() - self._started) * 1000

    def arm(self, timeout_s: float) -> None:
        self._timer = self.loop.call_later(timeout_s, self._on_timeout)
        self.future.add_done_callback(self._on_future_done)

    # ----- Hooks -----

    def check(self, event: LifecycleEvent | None) -> object:
        """Return the resolution value, or ``_PENDING`` to keep waiting."""
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def timeout_error(self) -> WaitTimeoutError:
        raise NotImplementedError

    # ----- Notifications (store lock held) -----

    def notify(self, event: LifecycleEvent | None) -> None:
        if self._done:
            return
        try:
            outcome = self.check(event)
        except Exception as exc:
            logger.debug("waiter condition raised; rejecting", exc_info=True)
            self._finish()
            self._call_in_loop(self._reject, exc)
            return
        if outcome is not _PENDING:
            self._finish()
            self._call_in_loop(self._resolve, outcome)

    def abandon(self, exc: BaseException) -> None:
        """Settle with ``exc`` when the waiter can no longer be satisfied."""
        if self._finish():
            self._call_in_loop(self._reject, exc)

    # ----- Terminal transition -----

    def _finish(self) -> bool:
        """Unregister once. Returns False when already finished."""
        with self._registry.lock:
            if self._done:
                return False
            self._done = True
            self._registry._unregister(self)
            return True

    def _call_in_loop(self, callback: Any, *args: object) -> None:
        if threading.get_ident() == self._thread_id:
            callback(*args)
        else:
            self.loop.call_soon_threadsafe(callback, *args)

    def _cancel_timers(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _resolve(self, value: object) -> None:
        self._cancel_timers()
        if not self.future.done():
            self.future.set_result(value)

    def _reject(self, exc: BaseException) -> None:
        self._cancel_timers()
        if not self.future.done():
            self.future.set_exception(exc)

    def _cancel(self) -> None:
        self._cancel_timers()
        self.future.cancel()

    def _on_timeout(self) -> None:
        self._timer = None
        if not self._finish():
            return
        error = self.timeout_error()
        logger.debug("waiter timed out: %s", error)
        self._reject(error)

    def _on_future_done(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled() and self._finish():
            logger.debug("waiter cancelled by caller after %.0fms", self.elapsed_ms())
            self._cancel_timers()


class _ConditionWaiter(_Waiter):
    __slots__ = ("condition",)

    def __init__(
        self,
        registry: WaiterRegistry,
        record: HistoryRecord,
        loop: asyncio.AbstractEventLoop,
        condition: Condition,
    ) -> None:
        super().__init__(registry, record, loop)
        self.condition = condition

    def check(self, event: LifecycleEvent | None) -> object:
        if not self.condition.is_met(self.record):
            return _PENDING
        return WaitResult(
            condition=self.condition,
            count=self.record.count,
            last_event=self.record.last_event(),
            elapsed_ms=self.elapsed_ms(),
        )

    def describe(self) -> str:
        return self.condition.describe()

    def timeout_error(self) -> WaitTimeoutError:
        with self._registry.lock:
            actual = self.condition.actual(self.record)
        return WaitTimeoutError(
            self.describe(),
            target=self.condition.target,
            actual=actual,
            elapsed_ms=self.elapsed_ms(),
        )


class _NextEventWaiter(_Waiter):
    __slots__ = ("_after",)

    def __init__(self, registry: WaiterRegistry, record: HistoryRecord, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(registry, record, loop)
        self._after = record.count

    def check(self, event: LifecycleEvent | None) -> object:
        # A clear resets indexes; only a real append resolves.
        return event if event is not None else _PENDING

    def describe(self) -> str:
        return "the next event"

    def timeout_error(self) -> WaitTimeoutError:
        return WaitTimeoutError(
            self.describe(),
            target=self._after + 1,
            actual=self.record.count,
            elapsed_ms=self.elapsed_ms(),
        )


class _StabilizationWaiter(_Waiter):
    """Resolves after ``debounce`` seconds without an append."""

    __slots__ = ("_debounce", "_debounce_timer", "_event_count", "_last_category")

    def __init__(
        self,
        registry: WaiterRegistry,
        record: HistoryRecord,
        loop: asyncio.AbstractEventLoop,
        debounce_s: float,
    ) -> None:
        super().__init__(registry, record, loop)
        self._debounce = debounce_s
        self._debounce_timer: asyncio.TimerHandle | None = None
        self._event_count = 0
        self._last_category: str | None = None

    def arm(self, timeout_s: float) -> None:
        super().arm(timeout_s)
        self._restart_debounce()

    def notify(self, event: LifecycleEvent | None) -> None:
        if self._done or event is None:
            return
        self._event_count += 1
        self._last_category = event.category
        self._call_in_loop(self._restart_debounce)

    def _restart_debounce(self) -> None:
        if self._done:
            return
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
        self._debounce_timer = self.loop.call_later(self._debounce, self._on_quiet)

    def _on_quiet(self) -> None:
        self._debounce_timer = None
        if not self._finish():
            return
        self._resolve(
            StabilizationResult(
                event_count=self._event_count,
                last_category=self._last_category,
                elapsed_ms=self.elapsed_ms(),
            )
        )

    def _cancel_timers(self) -> None:
        super()._cancel_timers()
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None

    def describe(self) -> str:
        return f"no events for {self._debounce * 1000:.0f}ms"

    def timeout_error(self) -> WaitTimeoutError:
        return StabilizationTimeoutError(
            self.describe(),
            target=0,
            actual=self._event_count,
            elapsed_ms=self.elapsed_ms(),
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class WaiterRegistry:
    """Pending waiters per subject, driven by an ``EventStore``'s mutations.

    Any number of waiters may be pending on one subject; each is evaluated
    on every append and settles on its own. Callers must supply a timeout
    for every wait.

    Args:
        store: The store to observe. The registry subscribes itself
            until ``close()``.

    """

    __slots__ = ("_store", "_waiters")

    def __init__(self, store: EventStore) -> None:
        self._store = store
        self._waiters: dict[HistoryRecord, list[_Waiter]] = {}
        store.add_observer(self)

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def lock(self) -> threading.RLock:
        return self._store.lock

    def close(self) -> int:
        """Stop observing the store and cancel every pending waiter.

        Returns the number of waiters cancelled. Idempotent.
        """
        self._store.remove_observer(self)
        with self.lock:
            waiters = [w for ws in self._waiters.values() for w in ws]
            for waiter in waiters:
                if waiter._finish():
                    waiter._call_in_loop(waiter._cancel)
        return len(waiters)

    # ----- Waiting -----

    def wait_for(self, subject: object, condition: Condition, timeout_ms: float) -> asyncio.Future[WaitResult]:
        """Return a future that resolves once ``condition`` holds for ``subject``.

        Must be called from a running event loop. The future is already
        resolved when the condition holds at call time.

        Raises:
            UsageError: Non-subject, non-condition, or timeout <= 0.

        The future rejects with ``WaitTimeoutError`` when ``timeout_ms``
        elapses first.

        """
        if not isinstance(condition, Condition):
            msg = f"condition must be a Condition instance, got {type(condition).__name__}"
            raise UsageError(msg)
        timeout_s = _check_ms(timeout_ms, "timeout_ms")
        check_subject(subject)
        loop = asyncio.get_running_loop()
        record = self._store.get_or_create(subject)
        waiter = _ConditionWaiter(self, record, loop, condition)
        with self.lock:
            result = waiter.check(None)
            if result is not _PENDING:
                waiter._done = True
                waiter.future.set_result(result)
                logger.debug("%s already met at registration", condition.describe())
                return waiter.future
            self._register(waiter, timeout_s)
        logger.debug("waiting up to %.0fms for %s", timeout_ms, condition.describe())
        return waiter.future

    def wait_for_next_event(self, subject: object, timeout_ms: float) -> asyncio.Future[LifecycleEvent]:
        """Return a future that resolves with the next event appended for ``subject``."""
        timeout_s = _check_ms(timeout_ms, "timeout_ms")
        check_subject(subject)
        loop = asyncio.get_running_loop()
        record = self._store.get_or_create(subject)
        with self.lock:
            waiter = _NextEventWaiter(self, record, loop)
            self._register(waiter, timeout_s)
        return waiter.future

    def wait_for_stabilization(
        self,
        subject: object,
        debounce_ms: float,
        timeout_ms: float,
    ) -> asyncio.Future[StabilizationResult]:
        """Return a future that resolves once ``subject`` is quiet for ``debounce_ms``.

        Every append restarts the quiet period. Rejects with
        ``StabilizationTimeoutError`` if ``timeout_ms`` elapses first.

        Raises:
            UsageError: Non-positive values, or ``debounce_ms >= timeout_ms``.

        """
        debounce_s = _check_ms(debounce_ms, "debounce_ms")
        timeout_s = _check_ms(timeout_ms, "timeout_ms")
        if debounce_s >= timeout_s:
            msg = f"debounce_ms ({debounce_ms}) must be less than timeout_ms ({timeout_ms})"
            raise UsageError(msg)
        check_subject(subject)
        loop = asyncio.get_running_loop()
        record = self._store.get_or_create(subject)
        with self.lock:
            waiter = _StabilizationWaiter(self, record, loop, debounce_s)
            self._register(waiter, timeout_s)
        return waiter.future

    # ----- Introspection -----

    def pending(self, subject: object) -> int:
        """Number of unsettled waiters for ``subject``."""
        record = self._store.get(subject)
        if record is None:
            return 0
        with self.lock:
            return len(self._waiters.get(record, ()))

    @property
    def pending_total(self) -> int:
        with self.lock:
            return sum(len(waiters) for waiters in self._waiters.values())

    # ----- StoreObserver -----

    def on_append(self, record: HistoryRecord, event: LifecycleEvent) -> None:
        waiters = self._waiters.get(record)
        if not waiters:
            return
        for waiter in tuple(waiters):
            waiter.notify(event)

    def on_clear(self, record: HistoryRecord) -> None:
        waiters = self._waiters.get(record)
        if not waiters:
            return
        for waiter in tuple(waiters):
            waiter.notify(None)

    def on_dispose(self, record: HistoryRecord) -> None:
        waiters = self._waiters.get(record)
        if not waiters:
            return
        logger.debug("rejecting %d waiters of a disposed subject", len(waiters))
        for waiter in tuple(waiters):
            waiter.abandon(SubjectDisposedError(waiter.describe()))

    # ----- Bookkeeping (lock held) -----

    def _register(self, waiter: _Waiter, timeout_s: float) -> None:
        self._waiters.setdefault(waiter.record, []).append(waiter)
        waiter.arm(timeout_s)

    def _unregister(self, waiter: _Waiter) -> None:
        waiters = self._waiters.get(waiter.record)
        if waiters is None:
            return
        try:
            waiters.remove(waiter)
        except ValueError:
            return
        if not waiters:
            del self._waiters[waiter.record]
