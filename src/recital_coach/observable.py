"""
Minimal subscription support for state holders.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Observable(Generic[T]):
    """
    Holds a committed state snapshot and notifies subscribers on every change.

    Subscribers are called once with the current snapshot when they subscribe.
    """

    def __init__(self, initial_state: T):
        self._state = initial_state
        self._subscribers: List[Callable[[T], None]] = []
        self._subscribers_lock = threading.Lock()

    @property
    def state(self) -> T:
        return self._state

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a callback for state changes.

        Returns:
            Function that removes the subscription
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)
        callback(self._state)

        def unsubscribe():
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _set_state(self, state: T) -> None:
        self._state = state
        self._notify(state)

    def _notify(self, state: T) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(state)
            except Exception as e:
                logger.error(f"State subscriber {callback!r} failed: {e}")
