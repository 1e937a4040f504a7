"""Append-only, capacity-bounded log of tracking events."""

from collections import deque
from collections.abc import Iterable

from lessontrack.domain.constants import MAX_EVENTS
from lessontrack.domain.models import TrackingEvent


class EventLog:
    """
    Keeps the most recent ``max_events`` events in insertion order.

    Older entries are dropped from the front once the cap is exceeded.
    """

    def __init__(self, max_events: int = MAX_EVENTS, events: Iterable[TrackingEvent] = ()):
        if max_events < 1:
            raise ValueError(f"max_events must be >= 1, got {max_events}")
        self._max = max_events
        self._events: deque[TrackingEvent] = deque(maxlen=max_events)
        self._events.extend(events)

    @property
    def max_events(self) -> int:
        return self._max

    def record(self, event: TrackingEvent) -> None:
        self._events.append(event)

    def extend(self, events: Iterable[TrackingEvent]) -> None:
        self._events.extend(events)

    def entries(self) -> list[TrackingEvent]:
        return list(self._events)

    def for_lesson(self, lesson_key: str) -> list[TrackingEvent]:
        return [e for e in self._events if e.lesson_key == lesson_key]

    def tail(self, limit: int) -> list[TrackingEvent]:
        if limit <= 0:
            return []
        return list(self._events)[-limit:]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))
