"""Shared type definitions for recount."""

from collections.abc import Callable
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from recount.history.events import LifecycleEvent

# Caller-defined lifecycle category (e.g. "initial", "update")
Category: TypeAlias = str

# Frozen history snapshot
History: TypeAlias = "tuple[LifecycleEvent, ...]"

# Callback invoked synchronously for every appended event
Listener: TypeAlias = Callable[["LifecycleEvent"], None]

# Idempotent handle returned by subscribe()
Unsubscribe: TypeAlias = Callable[[], None]

# Caller-supplied condition over a history snapshot
HistoryPredicate: TypeAlias = Callable[[History], bool]
