"""Cache metrics — hit/miss counters per view kind.

Purely observational: nothing in recount reads these counters to decide
what to return.

Usage in tests::

    store = EventStore()
    ...
    print(store.metrics.report())
    # by_category: 9/10 hits (90.00%)
    # history: 4/5 hits (80.00%)

"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(slots=True)
class CacheStats:
    """Cumulative counters for one view kind."""

    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses


class CacheMetrics:
    """Thread-safe hit/miss counters keyed by view-kind name.

    Args:
        enabled: When False every ``record_*`` call is a no-op.

    """

    __slots__ = ("_enabled", "_lock", "_stats")

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._stats: dict[str, CacheStats] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record_hit(self, kind: str) -> None:
        if self._enabled:
            with self._lock:
                self._stats.setdefault(kind, CacheStats()).hits += 1

    def record_miss(self, kind: str) -> None:
        if self._enabled:
            with self._lock:
                self._stats.setdefault(kind, CacheStats()).misses += 1

    def get(self, kind: str) -> CacheStats:
        """Return a copy of the counters for ``kind`` (zeros if never queried)."""
        with self._lock:
            stats = self._stats.get(kind)
            return CacheStats(stats.hits, stats.misses) if stats else CacheStats()

    def hit_rate(self, kind: str) -> float:
        """Hit rate as a percentage (0-100); 0 when nothing was recorded."""
        stats = self.get(kind)
        return stats.hits / stats.total * 100 if stats.total else 0.0

    def snapshot(self) -> dict[str, CacheStats]:
        with self._lock:
            return {kind: CacheStats(s.hits, s.misses) for kind, s in self._stats.items()}

    def report(self) -> str:
        """One line per view kind, sorted by name."""
        lines = []
        for kind, stats in sorted(self.snapshot().items()):
            rate = stats.hits / stats.total * 100 if stats.total else 0.0
            lines.append(f"{kind}: {stats.hits}/{stats.total} hits ({rate:.2f}%)")
        return "\n".join(lines)

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
