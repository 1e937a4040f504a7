"""
Per-user reading statistics derived from stored metrics and events.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone

from lessontrack.domain.constants import COMPLETED_SCORE_THRESHOLD
from lessontrack.domain.models import ProgressMetrics, TrackingEvent, UserStatistics

_STREAK_KINDS = {"open", "complete"}


def is_completed(metrics: ProgressMetrics) -> bool:
    return metrics.completion_score >= COMPLETED_SCORE_THRESHOLD


def activity_days(events: Iterable[TrackingEvent]) -> list[date]:
    """Distinct UTC days with reading activity, most recent first."""
    days = {
        datetime.fromtimestamp(e.timestamp / 1000, tz=timezone.utc).date()
        for e in events
        if e.kind in _STREAK_KINDS
    }
    return sorted(days, reverse=True)


def compute_streaks(events: Iterable[TrackingEvent]) -> tuple[int, int]:
    """
    Compute (current, longest) streaks of consecutive active days.

    The current streak is the run ending at the most recent active day.
    """
    days = activity_days(events)
    if not days:
        return 0, 0

    runs: list[int] = []
    run = 1
    for newer, older in zip(days, days[1:]):
        if newer - older == timedelta(days=1):
            run += 1
        else:
            runs.append(run)
            run = 1
    runs.append(run)

    return runs[0], max(runs)


def summarize(
    metrics: Iterable[ProgressMetrics],
    events: Iterable[TrackingEvent] = (),
) -> UserStatistics:
    records = list(metrics)
    current, longest = compute_streaks(events)

    if not records:
        return UserStatistics(
            lessons_viewed=0,
            lessons_completed=0,
            total_time_spent_ms=0,
            average_reading_speed_wpm=0.0,
            average_completion=0.0,
            completion_rate=0.0,
            current_streak=current,
            longest_streak=longest,
        )

    completed = sum(1 for m in records if is_completed(m))
    speeds = [m.reading_speed_wpm for m in records if m.reading_speed_wpm > 0]

    return UserStatistics(
        lessons_viewed=len(records),
        lessons_completed=completed,
        total_time_spent_ms=sum(m.time_spent_ms for m in records),
        average_reading_speed_wpm=sum(speeds) / len(speeds) if speeds else 0.0,
        average_completion=sum(m.completion_score for m in records) / len(records),
        completion_rate=completed / len(records),
        current_streak=current,
        longest_streak=longest,
    )
