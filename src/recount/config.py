"""Recount configuration.

RecountConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass

from recount._errors import ConfigError

# Circuit breaker for runaway update loops. Most subjects record fewer than
# a hundred events in a test run.
DEFAULT_MAX_EVENTS = 10_000

# Subscriber leak detection. Real callers hold a handful of subscriptions.
DEFAULT_MAX_LISTENERS = 100


@dataclass(frozen=True, slots=True)
class RecountConfig:
    """Configuration shared by an event store and everything built on it.

    Attributes:
        max_events: History ceiling per subject. Appending past it raises
            ``HistoryLimitError`` instead of degrading view recomputation.
        max_listeners: Maximum live ``subscribe()`` listeners per subject.
            Waiters are not counted.
        collect_metrics: Record view-cache hits and misses.
        stabilization_debounce_ms: Quiet period used by
            ``wait_for_stabilization`` when the caller passes none.

    """

    max_events: int = DEFAULT_MAX_EVENTS
    max_listeners: int = DEFAULT_MAX_LISTENERS
    collect_metrics: bool = True
    stabilization_debounce_ms: float = 50.0

    def __post_init__(self) -> None:
        for name in ("max_events", "max_listeners"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                msg = f"{name} must be a positive integer, got {value!r}"
                raise ConfigError(msg)
        if not isinstance(self.collect_metrics, bool):
            msg = f"collect_metrics must be a bool, got {self.collect_metrics!r}"
            raise ConfigError(msg)
        debounce = self.stabilization_debounce_ms
        if isinstance(debounce, bool) or not isinstance(debounce, int | float) or debounce <= 0:
            msg = f"stabilization_debounce_ms must be a positive number, got {debounce!r}"
            raise ConfigError(msg)
