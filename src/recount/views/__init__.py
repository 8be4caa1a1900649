"""View layer — memoized derived views over one subject's history."""

from recount.views.cache import ViewCache
from recount.views.kinds import (
    ByCategory,
    CategoryCounts,
    Counts,
    DurationStats,
    Durations,
    EventCounts,
    HasCategory,
    HistoryView,
    LastCategory,
    LoopReport,
    Loops,
    ViewKind,
)
from recount.views.metrics import CacheMetrics, CacheStats

__all__ = [
    "ByCategory",
    "CacheMetrics",
    "CacheStats",
    "CategoryCounts",
    "Counts",
    "DurationStats",
    "Durations",
    "EventCounts",
    "HasCategory",
    "HistoryView",
    "LastCategory",
    "LoopReport",
    "Loops",
    "ViewCache",
    "ViewKind",
]
