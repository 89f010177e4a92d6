"""Listener registry for failover and circuit-open notifications."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

FailoverListener = Callable[[str, str, str], None]
CircuitOpenListener = Callable[[str], None]


class ListenerRegistry:
    """Synchronous fan-out to subscribed callbacks.

    ``subscribe`` returns a disposer; calling it more than once is a no-op.
    A listener that raises is logged and skipped; delivery order across
    listeners is not guaranteed.

    Args:
        event_name: Used in log messages only.
    """

    def __init__(self, event_name: str) -> None:
        self.event_name = event_name
        self._listeners: dict[int, Callable[..., Any]] = {}
        self._tokens = itertools.count()

    def subscribe(self, callback: Callable[..., Any]) -> Callable[[], None]:
        token = next(self._tokens)
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def emit(self, *args: Any) -> None:
        for callback in list(self._listeners.values()):
            try:
                callback(*args)
            except Exception:
                logger.exception("%s listener %r raised", self.event_name, callback)
