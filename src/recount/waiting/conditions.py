"""Wait conditions — what a waiter is waiting for.

All conditions are immutable and validate their parameters on
construction, so a malformed condition fails at the call site before
anything is registered. ``is_met`` is evaluated synchronously against the
record's current state: once at registration, then after every append
and clear of that subject.

"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from recount._errors import UsageError
from recount.views.kinds import HistoryView

if TYPE_CHECKING:
    from recount._types import HistoryPredicate
    from recount.history.record import HistoryRecord


_HISTORY = HistoryView()


def _check_target(value: object, param: str = "target") -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"{param} must be a non-negative integer, got {value!r}"
        raise UsageError(msg)


class Condition(ABC):
    """A boolean condition over one subject's history."""

    __slots__ = ()

    @abstractmethod
    def is_met(self, record: HistoryRecord) -> bool: ...

    @abstractmethod
    def describe(self) -> str: ...

    @property
    @abstractmethod
    def target(self) -> object: ...

    def actual(self, record: HistoryRecord) -> object:
        """The observed value reported on timeout."""
        return record.count


@dataclass(frozen=True, slots=True)
class ExactCount(Condition):
    """Met while the history holds exactly ``count`` events."""

    count: int

    def __post_init__(self) -> None:
        _check_target(self.count, "count")

    def is_met(self, record: HistoryRecord) -> bool:
        return record.count == self.count

    def describe(self) -> str:
        return f"exactly {self.count} events"

    @property
    def target(self) -> int:
        return self.count


@dataclass(frozen=True, slots=True)
class MinimumCount(Condition):
    """Met once the history holds at least ``count`` events."""

    count: int

    def __post_init__(self) -> None:
        _check_target(self.count, "count")

    def is_met(self, record: HistoryRecord) -> bool:
        return record.count >= self.count

    def describe(self) -> str:
        return f"at least {self.count} events"

    @property
    def target(self) -> int:
        return self.count


@dataclass(frozen=True, slots=True)
class PhaseReached(Condition):
    """Met while the most recent event has category ``category``.

    Only the latest event counts: a matching event followed by a
    different one no longer satisfies the condition.
    """

    category: str

    def __post_init__(self) -> None:
        if not isinstance(self.category, str) or not self.category:
            msg = f"category must be a non-empty str, got {self.category!r}"
            raise UsageError(msg)

    def is_met(self, record: HistoryRecord) -> bool:
        last = record.last_event()
        return last is not None and last.category == self.category

    def describe(self) -> str:
        return f"latest event of category {self.category!r}"

    @property
    def target(self) -> str:
        return self.category

    def actual(self, record: HistoryRecord) -> str | None:
        last = record.last_event()
        return last.category if last is not None else None


@dataclass(frozen=True, slots=True)
class SinceMark(Condition):
    """Met once ``count`` events were appended after the record's mark.

    With ``exact=True`` the condition holds only while the delta equals
    ``count``.
    """

    count: int = 1
    exact: bool = False

    def __post_init__(self) -> None:
        _check_target(self.count, "count")
        if not isinstance(self.exact, bool):
            msg = f"exact must be a bool, got {self.exact!r}"
            raise UsageError(msg)

    def is_met(self, record: HistoryRecord) -> bool:
        delta = record.count_since_mark
        return delta == self.count if self.exact else delta >= self.count

    def describe(self) -> str:
        qualifier = "exactly" if self.exact else "at least"
        return f"{qualifier} {self.count} events since mark"

    @property
    def target(self) -> int:
        return self.count

    def actual(self, record: HistoryRecord) -> int:
        return record.count_since_mark


@dataclass(frozen=True, slots=True)
class Predicate(Condition):
    """Met when ``fn(history)`` returns true for the frozen history snapshot."""

    fn: HistoryPredicate = field(compare=False)
    description: str = "custom predicate"

    def __post_init__(self) -> None:
        if not callable(self.fn):
            msg = f"fn must be callable, got {type(self.fn).__name__}"
            raise UsageError(msg)

    def is_met(self, record: HistoryRecord) -> bool:
        return bool(self.fn(record.views.peek(_HISTORY)))

    def describe(self) -> str:
        return self.description

    @property
    def target(self) -> str:
        return self.description
