"""Module observer: lightweight signal/slot plumbing used by every store."""
#
# PURPOSE:
# Screens re-render by subscribing to a store's `changed` signal. A Signal
# keeps an ordered list of callbacks and calls each of them on emit().
#
# KEY CONCEPTS:
# - One Signal instance per store instance (never shared between stores)
# - A failing subscriber is logged and skipped; delivery continues
#

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """
    A simple pure-Python signal implementation.
    """
    def __init__(self, name: str = "signal"):
        self.name = name
        self._observers: List[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe a callback function. Returns a callable that unsubscribes it."""
        if callback not in self._observers:
            self._observers.append(callback)
        return lambda: self.disconnect(callback)

    def disconnect(self, callback: Callable[..., Any]) -> None:
        """Unsubscribe a callback function."""
        if callback in self._observers:
            self._observers.remove(callback)

    def emit(self, *args, **kwargs) -> None:
        """Notify all subscribers."""
        # Iterate over a copy so callbacks may unsubscribe themselves
        for callback in list(self._observers):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error("[Signal:%s] Error in observer callback: %s", self.name, e, exc_info=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)


class Observable:
    """
    Base class for objects that emit signals.
    """
    pass
