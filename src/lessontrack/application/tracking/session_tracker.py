"""
Session tracker: the stateful core of reading-progress tracking.

Owns at most one ReadingSession at a time and moves it through
``idle -> active <-> backgrounded -> ended``. Scroll samples, periodic
ticks, visibility changes and the dwell bonus all mutate the session;
ScoreEngine turns it into ProgressMetrics which go to the gateway.

Active time is only ever credited through ``_credit_active_time``: add the
time elapsed since ``last_activity_at``, then move ``last_activity_at`` to
now. Every trigger uses it, so overlapping triggers never double count.
"""

import dataclasses
import logging
import time
from collections.abc import Callable
from typing import Any

from ulid import ULID

from lessontrack.application.tracking.gateway import ProgressGateway
from lessontrack.application.tracking.score_engine import ScoreEngine
from lessontrack.application.tracking.visibility import ForegroundSignal
from lessontrack.domain.constants import (
    COMPLETION_SCROLL_THRESHOLD,
    COMPLETION_TIME_THRESHOLD_MS,
    DWELL_BONUS_MS,
    DWELL_BONUS_POINTS,
    MIN_DWELL_MS,
    SCROLL_REPORT_THRESHOLD,
    SLOW_SCROLL_SPEED,
    TICK_INTERVAL_MS,
)
from lessontrack.domain.models import (
    EventKind,
    ProgressMetrics,
    ReadingSession,
    SessionState,
    TrackingEvent,
    count_words,
)
from lessontrack.domain.ports import Scheduler

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def scroll_percent(position: float, max_scrollable: float) -> float:
    """Scrolled fraction in [0, 100]. Non-positive distances count as 0."""
    if max_scrollable <= 0:
        return 0.0
    percent = max(position, 0.0) / max_scrollable * 100
    return min(percent, 100.0)


class SessionTracker:
    """
    Tracks reading progress for the lesson currently on screen.

    Args:
        gateway: Persistence for metrics and events.
        scheduler: Timer source for ticks and the dwell bonus.
        score_engine: Optional custom engine; uses default if not provided.
        visibility: Optional host signal. Without one the host is assumed
            visible and ``on_visibility_change`` can be called directly.
        clock: Returns epoch milliseconds.
    """

    def __init__(
        self,
        gateway: ProgressGateway,
        scheduler: Scheduler,
        score_engine: ScoreEngine | None = None,
        visibility: ForegroundSignal | None = None,
        clock: Callable[[], int] | None = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        dwell_bonus_ms: int = DWELL_BONUS_MS,
    ):
        self._gateway = gateway
        self._scheduler = scheduler
        self._engine = score_engine or ScoreEngine()
        self._clock = clock or now_ms
        self._tick_interval = tick_interval_ms
        self._dwell_delay = dwell_bonus_ms

        self._state = SessionState.IDLE
        self._session: ReadingSession | None = None
        self._baseline: ProgressMetrics | None = None
        self._metrics: ProgressMetrics | None = None

        self._tick_handle: object | None = None
        self._dwell_handle: object | None = None

        self._foreground = visibility.visible if visibility is not None else True
        self._unsubscribe = (
            visibility.subscribe(self.on_visibility_change) if visibility is not None else None
        )
        self._closed = False

    # ---------- Read-only views ----------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def metrics(self) -> ProgressMetrics | None:
        """Snapshot of the metrics shown for the current (or last) lesson."""
        return self._metrics

    @property
    def session(self) -> ReadingSession | None:
        """A copy of the running session; mutating it has no effect."""
        if self._session is None:
            return None
        return dataclasses.replace(self._session)

    @property
    def lesson_key(self) -> str | None:
        return self._session.lesson_key if self._session else None

    @property
    def has_pending_timers(self) -> bool:
        return self._tick_handle is not None or self._dwell_handle is not None

    # ---------- Transitions ----------

    def open_lesson(
        self, lesson_key: str, content: str, title: str | None = None
    ) -> ProgressMetrics | None:
        """
        Start tracking a lesson. Any running session is ended first.

        Returns:
            The metrics shown for the lesson, seeded from the stored record.
        """
        if self._closed:
            logger.warning(f"Tracker is shut down; ignoring open of '{lesson_key}'")
            return None

        if self._session is not None:
            self.end_session()

        now = self._clock()
        session = ReadingSession(
            lesson_key=lesson_key,
            session_id=str(ULID()),
            started_at=now,
            last_activity_at=now,
            word_count=count_words(content),
            last_scroll_at=now,
        )

        previous = self._gateway.load_metrics(lesson_key)
        self._baseline = previous
        if previous is not None:
            self._metrics = previous.model_copy(
                update={"visits": previous.visits + 1, "last_visited_at": now}
            )
        else:
            self._metrics = ProgressMetrics(visits=1, last_visited_at=now)

        self._session = session
        self._state = SessionState.ACTIVE if self._foreground else SessionState.BACKGROUNDED
        logger.debug(
            f"Session {session.session_id} started for '{lesson_key}' ({self._state.value})"
        )

        self._gateway.save_metrics(lesson_key, self._metrics)
        self._emit(session, "open", now, {"word_count": session.word_count, "title": title})

        if self._state is SessionState.ACTIVE:
            self._arm_timers()

        return self._metrics

    def on_visibility_change(self, visible: bool) -> None:
        """Host became visible (``True``) or hidden (``False``)."""
        self._foreground = visible
        session = self._session
        if session is None:
            return

        now = self._clock()
        if not visible and self._state is SessionState.ACTIVE:
            self._credit_active_time(now)
            self._state = SessionState.BACKGROUNDED
            self._teardown_timers()
            self._refresh_metrics(session, persist=True)
            self._check_completion(now)
            # Hidden hosts are often killed without further notice.
            self._gateway.flush()
        elif visible and self._state is SessionState.BACKGROUNDED:
            session.last_activity_at = now
            self._state = SessionState.ACTIVE
            self._arm_timers()

    def handle_scroll(self, position: float, max_scrollable: float) -> None:
        """Feed a scroll sample. Ignored unless a session is active."""
        session = self._session
        if session is None or self._state is not SessionState.ACTIVE:
            return

        now = self._clock()
        percent = scroll_percent(position, max_scrollable)

        elapsed = now - session.last_scroll_at
        delta = abs(position - session.last_scroll_position)
        speed = delta / elapsed if elapsed > 0 else 0.0

        # Slow, deliberate scrolling after a pause reads as attention.
        if speed < SLOW_SCROLL_SPEED and elapsed > MIN_DWELL_MS:
            session.engagement_points += 1

        previous_progress = session.scroll_progress
        session.scroll_progress = max(previous_progress, percent)
        session.last_scroll_position = position
        session.last_scroll_at = now
        self._credit_active_time(now)

        if percent > previous_progress + SCROLL_REPORT_THRESHOLD:
            self._emit(session, "scroll", now, {"scroll_percent": round(percent)})

        self._arm_dwell_timer()
        self._refresh_metrics(session, persist=True)
        self._check_completion(now)

    def mark_as_complete(self) -> ProgressMetrics | None:
        """Explicitly mark the current lesson as complete."""
        session = self._session
        if session is None:
            return None

        now = self._clock()
        self._credit_active_time(now)
        metrics = self._refresh_metrics(session, persist=False)
        self._metrics = metrics.model_copy(
            update={"completion_score": 1.0, "last_visited_at": now}
        )
        session.completion_reported = True

        self._gateway.save_metrics(session.lesson_key, self._metrics)
        self._emit(session, "complete", now, {"manual": True})
        return self._metrics

    def end_session(self) -> ProgressMetrics | None:
        """
        Finalize the running session: credit time, cancel timers, persist, report a
        completion reached since the last tick, emit ``close`` and flush. Ending twice is a no-op.

        Returns:
            Final metrics, or None if there was nothing to end.
        """
        session = self._session
        if session is None:
            return None

        now = self._clock()
        self._credit_active_time(now)
        self._teardown_timers()

        metrics = self._refresh_metrics(session, persist=True)
        self._check_completion(now)
        self._emit(
            session,
            "close",
            now,
            {
                "total_time_ms": session.active_time_ms,
                "scroll_progress": session.scroll_progress,
                "engagement_points": session.engagement_points,
            },
        )
        self._gateway.flush()

        logger.debug(
            f"Session {session.session_id} ended for '{session.lesson_key}' "
            f"after {session.active_time_ms}ms (score={metrics.completion_score:.2f})"
        )

        self._session = None
        self._baseline = None
        self._state = SessionState.ENDED
        return metrics

    def get_progress(self, lesson_key: str) -> ProgressMetrics | None:
        """Stored metrics for any lesson; corrupt records read as absent."""
        return self._gateway.load_metrics(lesson_key)

    def shutdown(self) -> None:
        """End the session, detach from the host signal and flush."""
        if self._closed:
            return
        self.end_session()
        self._teardown_timers()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._gateway.flush()
        self._closed = True

    # ---------- Internals ----------

    def _credit_active_time(self, now: int) -> None:
        session = self._session
        if session is None or self._state is not SessionState.ACTIVE:
            return
        elapsed = max(now - session.last_activity_at, 0)
        session.active_time_ms += elapsed
        session.last_activity_at = now

    def _refresh_metrics(self, session: ReadingSession, persist: bool) -> ProgressMetrics:
        breakdown = self._engine.compute(
            session.active_time_ms,
            session.scroll_progress,
            session.engagement_points,
            session.word_count,
        )

        previous = self._metrics
        baseline = self._baseline
        completion = max(previous.completion_score if previous else 0.0, breakdown.completion_score)
        seeded_scroll = baseline.scroll_progress if baseline else 0.0

        metrics = ProgressMetrics(
            time_spent_ms=(baseline.time_spent_ms if baseline else 0) + session.active_time_ms,
            scroll_progress=max(seeded_scroll, session.scroll_progress),
            reading_speed_wpm=breakdown.reading_speed_wpm,
            completion_score=completion,
            visits=previous.visits if previous else 1,
            last_visited_at=previous.last_visited_at if previous else session.started_at,
            engagement_level=self._engine.engagement_level(completion, session.engagement_points),
        )
        self._metrics = metrics

        if persist:
            self._gateway.save_metrics(session.lesson_key, metrics)
        return metrics

    def _check_completion(self, now: int) -> None:
        session = self._session
        if session is None or session.completion_reported:
            return

        if (
            session.active_time_ms >= COMPLETION_TIME_THRESHOLD_MS
            and session.scroll_progress >= COMPLETION_SCROLL_THRESHOLD
        ):
            session.completion_reported = True
            self._emit(
                session,
                "complete",
                now,
                {
                    "time_spent_ms": session.active_time_ms,
                    "scroll_progress": session.scroll_progress,
                    "engagement_points": session.engagement_points,
                    "manual": False,
                },
            )

    def _emit(
        self, session: ReadingSession, kind: EventKind, now: int, payload: dict[str, Any]
    ) -> None:
        event = TrackingEvent(
            lesson_key=session.lesson_key,
            kind=kind,
            timestamp=now,
            payload={"session_id": session.session_id, **payload},
        )
        self._gateway.record_event(event)

    # ---------- Timers ----------

    def _arm_timers(self) -> None:
        self._teardown_timers()
        session_id = self._session.session_id if self._session else None
        self._tick_handle = self._scheduler.schedule(
            self._tick_interval, lambda: self._on_tick(session_id)
        )
        self._arm_dwell_timer()

    def _arm_dwell_timer(self) -> None:
        if self._dwell_handle is not None:
            self._scheduler.cancel(self._dwell_handle)
        session_id = self._session.session_id if self._session else None
        self._dwell_handle = self._scheduler.schedule(
            self._dwell_delay, lambda: self._on_dwell(session_id)
        )

    def _teardown_timers(self) -> None:
        """Cancel every outstanding timer. Called on every exit transition."""
        self._scheduler.cancel(self._tick_handle)
        self._scheduler.cancel(self._dwell_handle)
        self._tick_handle = None
        self._dwell_handle = None

    def _is_current(self, session_id: str | None) -> bool:
        return (
            self._session is not None
            and self._session.session_id == session_id
            and self._state is SessionState.ACTIVE
        )

    def _on_tick(self, session_id: str | None) -> None:
        self._tick_handle = None
        session = self._session
        if session is None or not self._is_current(session_id):
            return

        now = self._clock()
        self._credit_active_time(now)
        self._refresh_metrics(session, persist=True)
        self._check_completion(now)

        self._tick_handle = self._scheduler.schedule(
            self._tick_interval, lambda: self._on_tick(session_id)
        )

    def _on_dwell(self, session_id: str | None) -> None:
        self._dwell_handle = None
        session = self._session
        if session is None or not self._is_current(session_id):
            return

        session.engagement_points += DWELL_BONUS_POINTS
        logger.debug(f"Dwell bonus awarded for '{session.lesson_key}'")

        now = self._clock()
        self._credit_active_time(now)
        self._refresh_metrics(session, persist=True)
        self._check_completion(now)
        self._arm_dwell_timer()
