"""Recount error hierarchy.

All recount-specific errors inherit from RecountError for easy catching.
Usage errors also inherit ValueError, timeouts also inherit TimeoutError.
"""

from __future__ import annotations


class RecountError(Exception):
    """Base error for all recount operations."""


class UsageError(RecountError, ValueError):
    """A caller passed an invalid subject, category, condition, or timeout."""


class ConfigError(RecountError):
    """Invalid configuration value or unreadable configuration file."""


class HistoryLimitError(RecountError):
    """A subject's history reached the configured safety ceiling.

    Usually a runaway update loop in the observed subject.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"history limit reached: {limit} events recorded for one subject "
            f"(raise max_events or RECOUNT_MAX_EVENTS if this is expected)"
        )


class ListenerLimitError(RecountError):
    """Too many live subscribers on one subject (likely a missing unsubscribe)."""

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(
            f"listener leak detected: {count} subscribers on one subject "
            f"(limit {limit}); call the unsubscribe handle returned by subscribe()"
        )


class WaitTimeoutError(RecountError, TimeoutError):
    """A waiter's deadline elapsed before its condition became true.

    Attributes:
        description: Human-oriented description of the awaited condition.
        target: The condition's target value (count or category).
        actual: The observed value when the deadline elapsed.
        elapsed_ms: Time between registration and timeout.

    """

    def __init__(
        self,
        description: str,
        *,
        target: object,
        actual: object,
        elapsed_ms: float,
    ) -> None:
        self.description = description
        self.target = target
        self.actual = actual
        self.elapsed_ms = elapsed_ms
        super().__init__(
            f"timed out after {elapsed_ms:.0f}ms waiting for {description} "
            f"(target: {target!r}, actual: {actual!r})"
        )


class StabilizationTimeoutError(WaitTimeoutError):
    """Events kept arriving until the stabilization deadline elapsed."""


class SubjectDisposedError(RecountError):
    """The awaited subject's record was dropped while a waiter was pending.

    Raised into the waiter's future by ``dispose()``, ``reset()`` or the
    subject being garbage collected. Later appends for the same subject go
    to a new record, so the waiter could never settle.
    """

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(f"subject disposed while waiting for {description}")
