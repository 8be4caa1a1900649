"""Tests for recount._errors."""

from recount._errors import (
    ConfigError,
    HistoryLimitError,
    ListenerLimitError,
    RecountError,
    StabilizationTimeoutError,
    SubjectDisposedError,
    UsageError,
    WaitTimeoutError,
)


class TestErrorHierarchy:
    """All recount errors inherit from RecountError."""

    def test_recount_error_is_exception(self) -> None:
        assert issubclass(RecountError, Exception)

    def test_usage_error_is_value_error(self) -> None:
        assert issubclass(UsageError, RecountError)
        assert issubclass(UsageError, ValueError)

    def test_timeout_is_timeout_error(self) -> None:
        assert issubclass(WaitTimeoutError, RecountError)
        assert issubclass(WaitTimeoutError, TimeoutError)

    def test_stabilization_timeout_inherits(self) -> None:
        assert issubclass(StabilizationTimeoutError, WaitTimeoutError)

    def test_catch_all_recount_errors(self) -> None:
        """All specific errors are catchable via RecountError."""
        errors = (
            ConfigError("bad"),
            UsageError("bad"),
            HistoryLimitError(10),
            ListenerLimitError(101, 100),
            WaitTimeoutError("x", target=1, actual=0, elapsed_ms=5.0),
            SubjectDisposedError("the next event"),
        )
        for error in errors:
            try:
                raise error
            except RecountError:
                pass


class TestErrorPayloads:
    def test_timeout_carries_context(self) -> None:
        err = WaitTimeoutError("exactly 5 events", target=5, actual=2, elapsed_ms=101.4)
        assert err.description == "exactly 5 events"
        assert err.target == 5
        assert err.actual == 2
        assert err.elapsed_ms == 101.4
        assert "exactly 5 events" in str(err)
        assert "101ms" in str(err)

    def test_history_limit_names_limit(self) -> None:
        err = HistoryLimitError(10_000)
        assert err.limit == 10_000
        assert "10000" in str(err)

    def test_listener_limit_names_counts(self) -> None:
        err = ListenerLimitError(101, 100)
        assert err.count == 101
        assert err.limit == 100
        assert "unsubscribe" in str(err)

    def test_disposed_names_the_wait(self) -> None:
        err = SubjectDisposedError("at least 2 events")
        assert err.description == "at least 2 events"
        assert "disposed" in str(err)
        assert "at least 2 events" in str(err)
