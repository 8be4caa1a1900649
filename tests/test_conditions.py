"""Tests for recount.waiting.conditions."""

from __future__ import annotations

import pytest

from recount._errors import UsageError
from recount.history.events import INITIAL, UPDATE
from recount.history.store import EventStore
from recount.waiting.conditions import ExactCount, MinimumCount, PhaseReached, Predicate, SinceMark

from tests.conftest import Widget


@pytest.fixture
def record(store: EventStore, widget: Widget):
    return store.get_or_create(widget)


class TestCountConditions:
    def test_exact_count(self, store: EventStore, record) -> None:
        condition = ExactCount(1)
        assert not condition.is_met(record)
        store.append(record, INITIAL)
        assert condition.is_met(record)
        store.append(record, UPDATE)
        assert not condition.is_met(record)

    def test_minimum_count(self, store: EventStore, record) -> None:
        condition = MinimumCount(2)
        store.append(record, INITIAL)
        assert not condition.is_met(record)
        store.append(record, UPDATE)
        store.append(record, UPDATE)
        assert condition.is_met(record)

    def test_describe_and_target(self, record) -> None:
        assert ExactCount(3).describe() == "exactly 3 events"
        assert MinimumCount(3).describe() == "at least 3 events"
        assert ExactCount(3).target == 3
        assert ExactCount(3).actual(record) == 0

    @pytest.mark.parametrize("count", [-1, 1.5, True, "2"])
    def test_rejects_bad_count(self, count: object) -> None:
        with pytest.raises(UsageError, match="count"):
            ExactCount(count)  # type: ignore[arg-type]
        with pytest.raises(UsageError, match="count"):
            MinimumCount(count)  # type: ignore[arg-type]


class TestPhaseReached:
    def test_latest_event_only(self, store: EventStore, record) -> None:
        condition = PhaseReached(UPDATE)
        store.append(record, INITIAL)
        assert not condition.is_met(record)
        store.append(record, UPDATE)
        assert condition.is_met(record)
        store.append(record, INITIAL)
        assert not condition.is_met(record)
        assert condition.actual(record) == INITIAL

    def test_rejects_empty_category(self) -> None:
        with pytest.raises(UsageError, match="category"):
            PhaseReached("")


class TestSinceMark:
    def test_at_least(self, store: EventStore, record) -> None:
        store.append(record, INITIAL)
        store.mark(record)
        condition = SinceMark(2)
        store.append(record, UPDATE)
        assert not condition.is_met(record)
        store.append(record, UPDATE)
        store.append(record, UPDATE)
        assert condition.is_met(record)

    def test_exact(self, store: EventStore, record) -> None:
        store.mark(record)
        condition = SinceMark(1, exact=True)
        store.append(record, UPDATE)
        assert condition.is_met(record)
        store.append(record, UPDATE)
        assert not condition.is_met(record)
        assert condition.actual(record) == 2
        assert condition.describe() == "exactly 1 events since mark"

    def test_rejects_non_bool_exact(self) -> None:
        with pytest.raises(UsageError, match="exact"):
            SinceMark(1, exact="yes")  # type: ignore[arg-type]


class TestPredicate:
    def test_receives_frozen_history(self, store: EventStore, record) -> None:
        seen = []

        def fn(history) -> bool:
            seen.append(history)
            return len(history) == 2

        condition = Predicate(fn, "two events")
        store.append(record, INITIAL)
        assert not condition.is_met(record)
        store.append(record, UPDATE)
        assert condition.is_met(record)
        assert all(isinstance(h, tuple) for h in seen)
        assert condition.describe() == "two events"

    def test_default_description(self) -> None:
        assert Predicate(lambda h: True).describe() == "custom predicate"

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(UsageError, match="callable"):
            Predicate(42)  # type: ignore[arg-type]
