"""
Per-lesson scroll positions and the "continue reading" marker.

Positions are written through the write-behind queue, so frequent scroll
saves collapse into one store write per flush interval.
"""

import json
import logging
from collections.abc import Callable

from pydantic import ValidationError

from lessontrack.application.write_behind import WriteBehindQueue
from lessontrack.domain.constants import (
    ANONYMOUS_USER,
    LAST_READ_KEY,
    LAST_READ_MAX_AGE_MS,
    SCROLL_POSITIONS_KEY,
    SCROLL_SAVE_THRESHOLD,
)
from lessontrack.domain.models import LastReadLesson

logger = logging.getLogger(__name__)


class ReadingPositions:
    def __init__(
        self,
        queue: WriteBehindQueue,
        clock: Callable[[], int],
        user_id: int | None = None,
    ):
        self._queue = queue
        self._clock = clock
        user = str(user_id) if user_id is not None else ANONYMOUS_USER
        self._positions_key = f"{SCROLL_POSITIONS_KEY}:{user}"
        self._last_read_key = f"{LAST_READ_KEY}:{user}"
        self._positions: dict[str, float] | None = None

    def save_position(self, lesson_key: str, position: float, title: str | None = None) -> bool:
        """
        Remember the scroll position of a lesson.

        Positions near the top are not worth restoring and are skipped.

        Returns:
            True if the position was recorded.
        """
        if position <= SCROLL_SAVE_THRESHOLD:
            return False

        positions = self._load_positions()
        positions[lesson_key] = float(position)
        self._queue.enqueue(self._positions_key, dict(positions))

        marker = LastReadLesson(
            lesson_key=lesson_key,
            title=title,
            timestamp=self._clock(),
            scroll_position=float(position),
        )
        self._queue.enqueue(self._last_read_key, marker)
        return True

    def get_position(self, lesson_key: str) -> float:
        return self._load_positions().get(lesson_key, 0.0)

    def last_read(self) -> LastReadLesson | None:
        """
        The most recently read lesson, if read within the last 30 days.

        Stale and corrupt markers are deleted.
        """
        pending = self._queue.pending(self._last_read_key)
        if isinstance(pending, LastReadLesson):
            marker = pending
        else:
            try:
                raw = self._queue.store.get(self._last_read_key)
            except Exception as e:
                logger.error(f"Failed to read last-read marker: {e}")
                return None
            if raw is None:
                return None
            try:
                marker = LastReadLesson.model_validate_json(raw)
            except (ValidationError, ValueError) as e:
                logger.warning(f"Discarding corrupt last-read marker: {e}")
                self.clear_last_read()
                return None

        if marker.timestamp <= self._clock() - LAST_READ_MAX_AGE_MS:
            logger.debug(f"Last-read marker for '{marker.lesson_key}' expired")
            self.clear_last_read()
            return None
        return marker

    def clear_last_read(self) -> None:
        self._queue.discard(self._last_read_key)
        try:
            self._queue.store.delete(self._last_read_key)
        except Exception as e:
            logger.error(f"Failed to clear last-read marker: {e}")

    def _load_positions(self) -> dict[str, float]:
        if self._positions is not None:
            return self._positions

        positions: dict[str, float] = {}
        try:
            raw = self._queue.store.get(self._positions_key)
        except Exception as e:
            logger.error(f"Failed to read scroll positions: {e}")
            raw = None

        if raw:
            try:
                data = json.loads(raw)
                positions = {str(k): float(v) for k, v in data.items()}
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Discarding corrupt scroll positions: {e}")

        self._positions = positions
        return positions
