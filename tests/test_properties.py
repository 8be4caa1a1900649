"""Property tests for cache correctness and subject isolation."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from recount.history.events import INITIAL, NESTED_UPDATE, UPDATE
from recount.history.store import EventStore
from recount.views.kinds import (
    ByCategory,
    CategoryCounts,
    Counts,
    Durations,
    HasCategory,
    HistoryView,
    LastCategory,
    Loops,
)

from tests.conftest import Widget

# =============================================================================
# STRATEGIES
# =============================================================================

categories = st.sampled_from([INITIAL, UPDATE, NESTED_UPDATE, "custom"])

KINDS = (
    HistoryView(),
    ByCategory(UPDATE),
    HasCategory(NESTED_UPDATE),
    Counts(),
    CategoryCounts(),
    LastCategory(),
    Durations("actual_duration"),
    Loops(max_consecutive=2, max_consecutive_nested=1),
)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("append"), categories, st.floats(min_value=0, max_value=100)),
        st.tuples(st.just("read"), st.integers(min_value=0, max_value=len(KINDS) - 1)),
        st.tuples(st.just("clear")),
        st.tuples(st.just("mark")),
    ),
    max_size=60,
)


# =============================================================================
# PROPERTIES
# =============================================================================


@given(operations)
@settings(max_examples=200, deadline=None)
def test_cached_views_equal_full_recompute(ops) -> None:
    """A cached view never differs from recomputing it over the current history."""
    store = EventStore()
    widget = Widget()
    record = store.get_or_create(widget)
    for op in ops:
        match op:
            case ("append", category, duration):
                store.append(record, category, actual_duration=duration)
            case ("read", index):
                kind = KINDS[index]
                assert record.views.get(kind) == kind.compute(record.events)
            case ("clear",):
                store.clear(record)
            case ("mark",):
                store.mark(record)
    for kind in KINDS:
        assert record.views.get(kind) == kind.compute(record.events)
    assert [e.index for e in record.events] == list(range(record.count))


@given(st.lists(st.tuples(st.integers(min_value=0, max_value=4), categories), max_size=80))
@settings(max_examples=100, deadline=None)
def test_subjects_are_isolated(appends) -> None:
    """Appending to one subject never changes another subject's history."""
    store = EventStore()
    widgets = [Widget(str(i)) for i in range(5)]
    expected: dict[int, list[str]] = {i: [] for i in range(5)}
    for target, category in appends:
        store.append(store.get_or_create(widgets[target]), category)
        expected[target].append(category)
    for i, widget in enumerate(widgets):
        record = store.get(widget)
        history = record.views.history() if record is not None else ()
        assert [e.category for e in history] == expected[i]


@given(st.lists(categories, max_size=40), st.integers(min_value=1, max_value=20))
@settings(max_examples=100, deadline=None)
def test_repeated_reads_hit(appended, reads) -> None:
    """Between appends, the first read misses and every later read hits."""
    store = EventStore()
    widget = Widget()
    record = store.get_or_create(widget)
    for category in appended:
        store.append(record, category)
    first = record.views.counts()
    for _ in range(reads - 1):
        assert record.views.counts() is first
    stats = store.metrics.get("counts")
    assert stats.misses == 1
    assert stats.hits == reads - 1
