"""View kinds — pure computations over one subject's history.

Every kind is a frozen dataclass, so an instance (kind + parameters) is
its own cache key. ``compute`` rebuilds the value from the full history;
kinds with ``incremental = True`` also implement ``extend``, which folds
only the events appended since the previous value was computed.

Both methods receive the live event list (or a slice of it) and must not
keep a reference to it.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar, Generic, TypeVar

from recount._errors import UsageError
from recount.history.events import INITIAL, NESTED_UPDATE, UPDATE, LifecycleEvent

# Outliers are events strictly slower than this multiple of the mean.
OUTLIER_FACTOR = 1.5

_EMPTY_COUNTS: Mapping[str, int] = MappingProxyType({})

# Categories consumed by the loop detector's warm-up allowance.
_WARM_UP_CATEGORIES = frozenset({UPDATE, NESTED_UPDATE})


def _check_category(category: object, param: str = "category") -> None:
    if not isinstance(category, str) or not category:
        msg = f"{param} must be a non-empty str, got {category!r}"
        raise UsageError(msg)


def _check_positive_int(value: object, param: str, *, minimum: int = 1) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        qualifier = "a positive" if minimum == 1 else "a non-negative"
        msg = f"{param} must be {qualifier} integer, got {value!r}"
        raise UsageError(msg)


T = TypeVar("T")


class ViewKind(Generic[T]):
    """Base class for view kinds."""

    __slots__ = ()

    name: ClassVar[str]
    incremental: ClassVar[bool] = False

    def compute(self, events: Sequence[LifecycleEvent]) -> T:
        raise NotImplementedError

    def extend(self, previous: T, delta: Sequence[LifecycleEvent]) -> T:
        raise NotImplementedError

    def empty(self) -> T:
        """Value for a subject with no recorded history."""
        return self.compute(())


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EventCounts:
    """Total, initial and non-initial event counts.

    Attributes:
        total: Number of events.
        initial: Events of category ``initial``.
        non_initial: Every other event.

    """

    total: int = 0
    initial: int = 0
    non_initial: int = 0


@dataclass(frozen=True, slots=True)
class DurationStats:
    """Aggregate statistics over one numeric timing field.

    Attributes:
        field: The metric name the stats were computed over.
        count: Events that carry the field.
        mean: Arithmetic mean, 0.0 when ``count`` is 0.
        threshold: ``OUTLIER_FACTOR * mean``.
        outliers: Events whose value is strictly above ``threshold``.

    """

    field: str
    count: int = 0
    mean: float = 0.0
    threshold: float = 0.0
    outliers: tuple[LifecycleEvent, ...] = ()


@dataclass(frozen=True, slots=True)
class LoopReport:
    """Consecutive same-category runs that may indicate an update loop.

    Attributes:
        has_loop: True when some run exceeded its threshold.
        category: Category of the first offending run.
        run_length: Length of that run when it crossed the threshold.
        start_index: History index where the offending run started.
        end_index: History index where it crossed the threshold.
        longest_runs: Longest run seen per non-initial category.

    """

    has_loop: bool = False
    category: str | None = None
    run_length: int = 0
    start_index: int | None = None
    end_index: int | None = None
    longest_runs: Mapping[str, int] = field(default_factory=lambda: _EMPTY_COUNTS, compare=False)


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class HistoryView(ViewKind[tuple[LifecycleEvent, ...]]):
    """The frozen history snapshot itself."""

    name: ClassVar[str] = "history"

    def compute(self, events: Sequence[LifecycleEvent]) -> tuple[LifecycleEvent, ...]:
        return tuple(events)


@dataclass(frozen=True, slots=True)
class ByCategory(ViewKind[tuple[LifecycleEvent, ...]]):
    """Events of one category, in history order."""

    category: str
    name: ClassVar[str] = "by_category"
    incremental: ClassVar[bool] = True

    def __post_init__(self) -> None:
        _check_category(self.category)

    def compute(self, events: Sequence[LifecycleEvent]) -> tuple[LifecycleEvent, ...]:
        return tuple(e for e in events if e.category == self.category)

    def extend(
        self, previous: tuple[LifecycleEvent, ...], delta: Sequence[LifecycleEvent]
    ) -> tuple[LifecycleEvent, ...]:
        added = self.compute(delta)
        return previous + added if added else previous


@dataclass(frozen=True, slots=True)
class HasCategory(ViewKind[bool]):
    """Whether any event of one category was recorded."""

    category: str
    name: ClassVar[str] = "has_category"
    incremental: ClassVar[bool] = True

    def __post_init__(self) -> None:
        _check_category(self.category)

    def compute(self, events: Sequence[LifecycleEvent]) -> bool:
        return any(e.category == self.category for e in events)

    def extend(self, previous: bool, delta: Sequence[LifecycleEvent]) -> bool:
        return previous or self.compute(delta)


@dataclass(frozen=True, slots=True)
class Counts(ViewKind[EventCounts]):
    """Total / initial / non-initial counts."""

    name: ClassVar[str] = "counts"
    incremental: ClassVar[bool] = True

    def compute(self, events: Sequence[LifecycleEvent]) -> EventCounts:
        return self.extend(EventCounts(), events)

    def extend(self, previous: EventCounts, delta: Sequence[LifecycleEvent]) -> EventCounts:
        initial = sum(1 for e in delta if e.category == INITIAL)
        return EventCounts(
            total=previous.total + len(delta),
            initial=previous.initial + initial,
            non_initial=previous.non_initial + len(delta) - initial,
        )


@dataclass(frozen=True, slots=True)
class CategoryCounts(ViewKind[Mapping[str, int]]):
    """Read-only mapping of category to event count, in first-seen order."""

    name: ClassVar[str] = "category_counts"
    incremental: ClassVar[bool] = True

    def compute(self, events: Sequence[LifecycleEvent]) -> Mapping[str, int]:
        return self.extend(_EMPTY_COUNTS, events)

    def extend(self, previous: Mapping[str, int], delta: Sequence[LifecycleEvent]) -> Mapping[str, int]:
        if not delta:
            return previous
        counts = dict(previous)
        for e in delta:
            counts[e.category] = counts.get(e.category, 0) + 1
        return MappingProxyType(counts)


@dataclass(frozen=True, slots=True)
class LastCategory(ViewKind["str | None"]):
    """Category of the most recent event."""

    name: ClassVar[str] = "last_category"
    incremental: ClassVar[bool] = True

    def compute(self, events: Sequence[LifecycleEvent]) -> str | None:
        return events[-1].category if events else None

    def extend(self, previous: str | None, delta: Sequence[LifecycleEvent]) -> str | None:
        return delta[-1].category if delta else previous


@dataclass(frozen=True, slots=True)
class Durations(ViewKind[DurationStats]):
    """Mean and outliers of one numeric timing field.

    Full recompute only: a new event moves the mean and with it the
    outlier set.
    """

    field: str
    name: ClassVar[str] = "duration_stats"

    def __post_init__(self) -> None:
        _check_category(self.field, "field")

    def compute(self, events: Sequence[LifecycleEvent]) -> DurationStats:
        samples = [(e, e.metrics[self.field]) for e in events if self.field in e.metrics]
        if not samples:
            return DurationStats(field=self.field)
        mean = sum(value for _, value in samples) / len(samples)
        threshold = mean * OUTLIER_FACTOR
        return DurationStats(
            field=self.field,
            count=len(samples),
            mean=mean,
            threshold=threshold,
            outliers=tuple(e for e, value in samples if value > threshold),
        )


@dataclass(frozen=True, slots=True)
class Loops(ViewKind[LoopReport]):
    """Detect runs of the same non-initial category longer than a threshold.

    An ``initial`` event resets the current run. The first
    ``ignore_initial_updates`` events of category ``update`` or
    ``nested-update`` are skipped for detection (warm-up); other
    categories never count toward the warm-up. ``longest_runs`` is
    computed over the whole history, warm-up included.
    ``nested-update`` runs use ``max_consecutive_nested`` when given,
    every other category uses ``max_consecutive``.
    """

    max_consecutive: int = 10
    max_consecutive_nested: int | None = None
    ignore_initial_updates: int = 0
    name: ClassVar[str] = "loops"

    def __post_init__(self) -> None:
        _check_positive_int(self.max_consecutive, "max_consecutive")
        if self.max_consecutive_nested is not None:
            _check_positive_int(self.max_consecutive_nested, "max_consecutive_nested")
        _check_positive_int(self.ignore_initial_updates, "ignore_initial_updates", minimum=0)

    def threshold_for(self, category: str) -> int:
        if category == NESTED_UPDATE and self.max_consecutive_nested is not None:
            return self.max_consecutive_nested
        return self.max_consecutive

    def compute(self, events: Sequence[LifecycleEvent]) -> LoopReport:
        longest: dict[str, int] = {}
        offending: tuple[str, int, int, int] | None = None
        # Detection run: warm-up updates break it.
        run_category: str | None = None
        run_length = 0
        run_start = 0
        # Statistics run: warm-up does not apply.
        stat_category: str | None = None
        stat_length = 0
        skipped = 0

        for e in events:
            if e.category == INITIAL:
                run_category, run_length = None, 0
                stat_category, stat_length = None, 0
                continue

            if e.category == stat_category:
                stat_length += 1
            else:
                stat_category, stat_length = e.category, 1
            if stat_length > longest.get(e.category, 0):
                longest[e.category] = stat_length

            if e.category in _WARM_UP_CATEGORIES and skipped < self.ignore_initial_updates:
                skipped += 1
                run_category, run_length = None, 0
                continue
            if e.category == run_category:
                run_length += 1
            else:
                run_category, run_length, run_start = e.category, 1, e.index
            if offending is None and run_length > self.threshold_for(e.category):
                offending = (e.category, run_length, run_start, e.index)

        runs = MappingProxyType(longest)
        if offending is None:
            return LoopReport(longest_runs=runs)
        category, length, start, end = offending
        return LoopReport(
            has_loop=True,
            category=category,
            run_length=length,
            start_index=start,
            end_index=end,
            longest_runs=runs,
        )
