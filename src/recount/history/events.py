"""Lifecycle event model.

A ``LifecycleEvent`` is one recorded occurrence for one subject: its
caller-defined category, its 0-based position in that subject's history,
a monotonic nanosecond timestamp, and optional numeric timing fields.

Thread Safety:
    Events are frozen (immutable) and safe to share across threads.

"""

import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from recount._errors import UsageError

# Reference-domain categories. The store accepts any non-empty string.
INITIAL = "initial"
UPDATE = "update"
NESTED_UPDATE = "nested-update"

_EMPTY_METRICS: Mapping[str, float] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    """One lifecycle event in a subject's history.

    Attributes:
        category: Caller-defined category (e.g. "initial", "update").
        index: 0-based position in the subject's history.
        timestamp_ns: Monotonic nanosecond timestamp taken at append.
        metrics: Read-only numeric timing fields (e.g. ``actual_duration``).
            Excluded from equality and hashing.

    """

    category: str
    index: int
    timestamp_ns: int
    metrics: Mapping[str, float] = field(default_factory=lambda: _EMPTY_METRICS, compare=False, hash=False)

    def metric(self, name: str) -> float | None:
        """Return a timing field, or None when the event does not carry it."""
        return self.metrics.get(name)

    @property
    def is_initial(self) -> bool:
        return self.category == INITIAL


def freeze_metrics(metrics: Mapping[str, object]) -> Mapping[str, float]:
    """Validate timing fields and return a read-only copy.

    Raises ``UsageError`` for non-numeric values (bools included) and NaN.
    """
    if not metrics:
        return _EMPTY_METRICS
    frozen: dict[str, float] = {}
    for name, value in metrics.items():
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"metric {name!r} must be a number, got {type(value).__name__}"
            raise UsageError(msg)
        if math.isnan(value):
            msg = f"metric {name!r} must not be NaN"
            raise UsageError(msg)
        frozen[name] = float(value)
    return MappingProxyType(frozen)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
