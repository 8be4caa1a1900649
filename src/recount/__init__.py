"""Recount — lifecycle event history, cached views, and async waiters.

Records what an observed subject does (e.g. each draw of a UI component)
and answers questions about it cheaply: synchronous queries over the
accumulated history, and futures that resolve once a condition holds.

Quick start::

    from recount import Profiler, MinimumCount

    profiler = Profiler()
    profiler.record(widget, "initial")

    profiler.count(widget)                       # 1
    await profiler.wait_for(widget, MinimumCount(3), timeout_ms=500)

Three layers, usable on their own:

    EventStore      per-subject, isolated, append-only histories
    ViewCache       memoized views, lazily invalidated by version
    WaiterRegistry  timeout-bounded futures over a store's changes

"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
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
    from recount.api import Profiler
    from recount.config import RecountConfig
    from recount.config_loader import load_config
    from recount.history.events import LifecycleEvent
    from recount.history.store import EventStore, reset_all_stores
    from recount.waiting.conditions import (
        Condition,
        ExactCount,
        MinimumCount,
        PhaseReached,
        Predicate,
        SinceMark,
    )
    from recount.waiting.registry import WaiterRegistry

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "Condition",
    "ConfigError",
    "EventStore",
    "ExactCount",
    "HistoryLimitError",
    "LifecycleEvent",
    "ListenerLimitError",
    "MinimumCount",
    "PhaseReached",
    "Predicate",
    "Profiler",
    "RecountConfig",
    "RecountError",
    "SinceMark",
    "StabilizationTimeoutError",
    "SubjectDisposedError",
    "UsageError",
    "WaitTimeoutError",
    "WaiterRegistry",
    "__version__",
    "load_config",
    "reset_all_stores",
]

# Public name -> defining module. Resolved on first access to keep
# ``import recount`` fast.
_LAZY = {
    "Condition": "recount.waiting.conditions",
    "ConfigError": "recount._errors",
    "EventStore": "recount.history.store",
    "ExactCount": "recount.waiting.conditions",
    "HistoryLimitError": "recount._errors",
    "LifecycleEvent": "recount.history.events",
    "ListenerLimitError": "recount._errors",
    "MinimumCount": "recount.waiting.conditions",
    "PhaseReached": "recount.waiting.conditions",
    "Predicate": "recount.waiting.conditions",
    "Profiler": "recount.api",
    "RecountConfig": "recount.config",
    "RecountError": "recount._errors",
    "SinceMark": "recount.waiting.conditions",
    "StabilizationTimeoutError": "recount._errors",
    "SubjectDisposedError": "recount._errors",
    "UsageError": "recount._errors",
    "WaitTimeoutError": "recount._errors",
    "WaiterRegistry": "recount.waiting.registry",
    "load_config": "recount.config_loader",
    "reset_all_stores": "recount.history.store",
}


def __getattr__(name: str) -> object:
    """Lazy imports for the public API."""
    module_name = _LAZY.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
