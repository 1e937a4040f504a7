"""
Progress gateway: ties the write-behind queue and event log to the store.

All persistence errors stop here: they are logged and swallowed so the
session state machine never sees them.
"""

import json
import logging

from pydantic import TypeAdapter, ValidationError

from lessontrack.application.tracking.event_log import EventLog
from lessontrack.application.write_behind import WriteBehindQueue
from lessontrack.domain.constants import ANONYMOUS_USER, EVENTS_KEY, PROGRESS_KEY_PREFIX
from lessontrack.domain.models import ProgressMetrics, TrackingEvent
from lessontrack.domain.ports import AnalyticsSink

logger = logging.getLogger(__name__)

_events_adapter = TypeAdapter(list[TrackingEvent])


def progress_key(user: str, lesson_key: str) -> str:
    return f"{PROGRESS_KEY_PREFIX}:{user}:{lesson_key}"


class ProgressGateway:
    """
    Persistence for one user's metrics and the shared event log.

    Args:
        queue: Write-behind queue in front of the store.
        event_log: Bounded in-memory event log; persisted as a whole.
        user_id: Numeric user id, or None for anonymous (session-only) use.
        analytics: Optional remote sink, fed best-effort.
    """

    def __init__(
        self,
        queue: WriteBehindQueue,
        event_log: EventLog,
        user_id: int | None = None,
        analytics: AnalyticsSink | None = None,
    ):
        self.queue = queue
        self.event_log = event_log
        self.user_id = user_id
        self.analytics = analytics
        self._user = str(user_id) if user_id is not None else ANONYMOUS_USER

    @property
    def store(self):
        return self.queue.store

    # ---------- Metrics ----------

    def load_metrics(self, lesson_key: str) -> ProgressMetrics | None:
        """
        Load persisted metrics. Missing, unreadable and corrupt records all
        come back as None.
        """
        key = progress_key(self._user, lesson_key)

        pending = self.queue.pending(key)
        if isinstance(pending, ProgressMetrics):
            return pending

        try:
            raw = self.store.get(key)
        except Exception as e:
            logger.error(f"Failed to read progress for '{lesson_key}': {e}")
            return None

        if raw is None:
            return None
        return self._parse_metrics(lesson_key, raw)

    def save_metrics(self, lesson_key: str, metrics: ProgressMetrics) -> None:
        try:
            self.queue.enqueue(progress_key(self._user, lesson_key), metrics)
        except Exception as e:
            logger.error(f"Failed to save progress for '{lesson_key}': {e}")

    def list_metrics(self) -> dict[str, ProgressMetrics]:
        """All stored metrics of this user, keyed by lesson."""
        self.flush()

        prefix = progress_key(self._user, "")
        try:
            keys = self.store.keys(prefix)
        except Exception as e:
            logger.error(f"Failed to list progress records: {e}")
            return {}

        result: dict[str, ProgressMetrics] = {}
        for key in keys:
            lesson_key = key[len(prefix) :]
            metrics = self.load_metrics(lesson_key)
            if metrics is not None:
                result[lesson_key] = metrics
        return result

    def _parse_metrics(self, lesson_key: str, raw: str) -> ProgressMetrics | None:
        try:
            return ProgressMetrics.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding corrupt progress record for '{lesson_key}': {e}")
            return None

    # ---------- Events ----------

    def restore_events(self) -> int:
        """Load the persisted event log into memory. Returns the restored count."""
        try:
            raw = self.store.get(EVENTS_KEY)
        except Exception as e:
            logger.error(f"Failed to read event log: {e}")
            return 0

        if not raw:
            return 0

        try:
            events = _events_adapter.validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding corrupt event log: {e}")
            return 0

        self.event_log.extend(events)
        return len(self.event_log)

    def record_event(self, event: TrackingEvent) -> None:
        self.event_log.record(event)

        try:
            snapshot = [e.model_dump(mode="json") for e in self.event_log.entries()]
            self.queue.enqueue(EVENTS_KEY, json.dumps(snapshot))
        except Exception as e:
            logger.error(f"Failed to track event: {e}")

        if self.analytics is not None:
            try:
                self.analytics.submit(event)
            except Exception as e:
                logger.warning(f"Analytics submission failed: {e}")

    # ---------- Lifecycle ----------

    def flush(self) -> int:
        try:
            return self.queue.flush_now()
        except Exception as e:
            logger.error(f"Flush failed: {e}")
            return 0
