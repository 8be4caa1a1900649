"""Tests for recount.history.channel — synchronous subscriber fan-out."""

import pytest

from recount._errors import ListenerLimitError
from recount.history.channel import EventChannel
from recount.history.events import UPDATE, LifecycleEvent


def _event(index: int = 0) -> LifecycleEvent:
    return LifecycleEvent(UPDATE, index, index)


class TestSubscribe:
    def test_delivers_in_subscription_order(self) -> None:
        channel = EventChannel(max_listeners=10)
        seen: list[str] = []
        channel.subscribe(lambda e: seen.append("a"))
        channel.subscribe(lambda e: seen.append("b"))
        channel.emit(_event())
        assert seen == ["a", "b"]

    def test_unsubscribe_is_idempotent(self) -> None:
        channel = EventChannel(max_listeners=10)
        seen: list[LifecycleEvent] = []
        unsubscribe = channel.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        channel.emit(_event())
        assert seen == []
        assert len(channel) == 0
        assert not channel

    def test_same_listener_twice_is_two_subscriptions(self) -> None:
        channel = EventChannel(max_listeners=10)
        seen: list[LifecycleEvent] = []
        first = channel.subscribe(seen.append)
        channel.subscribe(seen.append)
        first()
        channel.emit(_event())
        assert len(seen) == 1

    def test_limit(self) -> None:
        channel = EventChannel(max_listeners=2)
        channel.subscribe(lambda e: None)
        channel.subscribe(lambda e: None)
        with pytest.raises(ListenerLimitError, match="unsubscribe") as exc_info:
            channel.subscribe(lambda e: None)
        assert exc_info.value.limit == 2
        assert exc_info.value.count == 3

    def test_unsubscribe_frees_a_slot(self) -> None:
        channel = EventChannel(max_listeners=1)
        unsubscribe = channel.subscribe(lambda e: None)
        unsubscribe()
        channel.subscribe(lambda e: None)
        assert len(channel) == 1


class TestEmit:
    def test_failing_listener_does_not_starve_others(self) -> None:
        channel = EventChannel(max_listeners=10)
        seen: list[LifecycleEvent] = []

        def boom(event: LifecycleEvent) -> None:
            raise RuntimeError("listener failed")

        channel.subscribe(boom)
        channel.subscribe(seen.append)
        with pytest.raises(RuntimeError, match="listener failed"):
            channel.emit(_event())
        assert len(seen) == 1

    def test_listener_added_during_emit_waits_for_next(self) -> None:
        channel = EventChannel(max_listeners=10)
        late: list[LifecycleEvent] = []

        def add_late(event: LifecycleEvent) -> None:
            channel.subscribe(late.append)

        channel.subscribe(add_late)
        channel.emit(_event(0))
        assert late == []

    def test_clear_returns_dropped(self) -> None:
        channel = EventChannel(max_listeners=10)
        channel.subscribe(lambda e: None)
        channel.subscribe(lambda e: None)
        assert channel.clear() == 2
        assert len(channel) == 0
