"""Per-subject event channel — synchronous fan-out to subscribers.

Listeners are called in subscription order, synchronously, from inside
``EventStore.append``. A listener that raises does not stop delivery to
the others; the first error is re-raised once every listener ran.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from recount._errors import ListenerLimitError

if TYPE_CHECKING:
    from recount._types import Listener, Unsubscribe
    from recount.history.events import LifecycleEvent

logger = logging.getLogger(__name__)


class EventChannel:
    """Subscriber list for one subject.

    Created lazily by ``HistoryRecord`` on first subscription.

    Args:
        max_listeners: Live subscriber count above which ``subscribe``
            raises ``ListenerLimitError``.

    """

    __slots__ = ("_listeners", "_max_listeners", "_tokens")

    def __init__(self, max_listeners: int) -> None:
        self._listeners: dict[int, Listener] = {}
        self._max_listeners = max_listeners
        self._tokens = itertools.count()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Add a listener and return an idempotent unsubscribe handle."""
        if len(self._listeners) >= self._max_listeners:
            raise ListenerLimitError(len(self._listeners) + 1, self._max_listeners)
        token = next(self._tokens)
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def emit(self, event: LifecycleEvent) -> None:
        """Deliver an event to every listener subscribed before the call."""
        first_error: Exception | None = None
        for listener in tuple(self._listeners.values()):
            try:
                listener(event)
            except Exception as exc:
                logger.debug("listener %r failed on event #%d", listener, event.index, exc_info=True)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def clear(self) -> int:
        """Drop every listener and return how many were dropped."""
        count = len(self._listeners)
        self._listeners.clear()
        return count

    def __len__(self) -> int:
        return len(self._listeners)

    def __bool__(self) -> bool:
        return bool(self._listeners)
