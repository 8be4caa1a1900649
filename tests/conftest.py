"""Shared test fixtures for recount."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from recount.api import Profiler
from recount.history.store import EventStore, reset_all_stores
from recount.waiting.registry import WaiterRegistry


class Widget:
    """Stand-in for an observed subject (weakly referenceable)."""

    def __init__(self, name: str = "widget") -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Widget({self.name!r})"


class AlwaysEqual:
    """A subject whose __eq__/__hash__ would alias every instance."""

    def __eq__(self, other: object) -> bool:
        return True

    def __hash__(self) -> int:
        return 0


@pytest.fixture(autouse=True)
def _isolate_stores() -> Iterator[None]:
    yield
    reset_all_stores()


@pytest.fixture
def store() -> EventStore:
    return EventStore()


@pytest.fixture
def registry(store: EventStore) -> WaiterRegistry:
    return WaiterRegistry(store)


@pytest.fixture
def profiler() -> Profiler:
    return Profiler()


@pytest.fixture
def widget() -> Widget:
    return Widget()
