"""Foreground/background signal pushed by the host."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

VisibilityListener = Callable[[bool], None]


class ForegroundSignal:
    """
    Message-passing visibility source.

    The host calls ``publish`` when it becomes hidden or visible again;
    subscribers are notified in subscription order. Nothing polls.
    """

    def __init__(self, visible: bool = True):
        self._visible = visible
        self._listeners: list[VisibilityListener] = []

    @property
    def visible(self) -> bool:
        return self._visible

    def subscribe(self, listener: VisibilityListener) -> Callable[[], None]:
        """Register ``listener``. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        logger.debug(f"Host is now {'visible' if visible else 'hidden'}")
        for listener in list(self._listeners):
            listener(visible)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
