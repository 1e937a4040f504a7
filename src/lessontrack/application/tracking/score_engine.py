"""
Score engine for deriving completion and engagement from session signals.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass

from lessontrack.domain.constants import (
    ENGAGEMENT_CAP,
    ENGAGEMENT_WEIGHT,
    HIGH_ENGAGEMENT_POINTS,
    HIGH_ENGAGEMENT_SCORE,
    MEDIUM_ENGAGEMENT_POINTS,
    MEDIUM_ENGAGEMENT_SCORE,
    SCROLL_WEIGHT,
    TIME_WEIGHT,
    WORDS_PER_MINUTE_AVERAGE,
)
from lessontrack.domain.models import EngagementLevel


@dataclass(frozen=True)
class ScoreBreakdown:
    time_score: float
    scroll_score: float
    engagement_score: float
    completion_score: float
    reading_speed_wpm: float
    engagement_level: EngagementLevel


class ScoreEngine:
    """
    Converts accumulated session signals into a completion score and an
    engagement level.

    Stateless and side-effect free.
    """

    def __init__(
        self,
        average_wpm: int = WORDS_PER_MINUTE_AVERAGE,
        time_weight: float = TIME_WEIGHT,
        scroll_weight: float = SCROLL_WEIGHT,
        engagement_weight: float = ENGAGEMENT_WEIGHT,
        engagement_cap: int = ENGAGEMENT_CAP,
    ):
        total = time_weight + scroll_weight + engagement_weight
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"score weights must sum to 1, got {total}")
        self.average_wpm = average_wpm
        self.time_weight = time_weight
        self.scroll_weight = scroll_weight
        self.engagement_weight = engagement_weight
        self.engagement_cap = engagement_cap

    def expected_reading_time_ms(self, word_count: int) -> float:
        return (word_count / self.average_wpm) * 60000

    def time_score(self, active_time_ms: float, word_count: int) -> float:
        """
        Fraction of the expected reading time spent, weighted.

        Empty lessons need no time, so any time counts as a full score.
        """
        expected = self.expected_reading_time_ms(word_count)
        if expected <= 0:
            return self.time_weight if active_time_ms > 0 else 0.0
        return min(max(active_time_ms, 0) / expected, 1.0) * self.time_weight

    def scroll_score(self, scroll_progress: float) -> float:
        return min(max(scroll_progress, 0.0), 100.0) / 100 * self.scroll_weight

    def engagement_score(self, engagement_points: int) -> float:
        return min(max(engagement_points, 0) / self.engagement_cap, 1.0) * self.engagement_weight

    def completion_score(
        self,
        active_time_ms: float,
        scroll_progress: float,
        engagement_points: int,
        word_count: int,
    ) -> float:
        total = (
            self.time_score(active_time_ms, word_count)
            + self.scroll_score(scroll_progress)
            + self.engagement_score(engagement_points)
        )
        return min(max(total, 0.0), 1.0)

    def reading_speed_wpm(self, word_count: int, active_time_ms: float) -> float:
        if active_time_ms <= 0:
            return 0.0
        return word_count / (active_time_ms / 60000)

    def engagement_level(self, completion_score: float, engagement_points: int) -> EngagementLevel:
        """Ordered checks, first match wins."""
        if completion_score > HIGH_ENGAGEMENT_SCORE and engagement_points > HIGH_ENGAGEMENT_POINTS:
            return "high"
        if (
            completion_score > MEDIUM_ENGAGEMENT_SCORE
            and engagement_points > MEDIUM_ENGAGEMENT_POINTS
        ):
            return "medium"
        return "low"

    def compute(
        self,
        active_time_ms: float,
        scroll_progress: float,
        engagement_points: int,
        word_count: int,
    ) -> ScoreBreakdown:
        time_score = self.time_score(active_time_ms, word_count)
        scroll_score = self.scroll_score(scroll_progress)
        engagement_score = self.engagement_score(engagement_points)
        completion = min(max(time_score + scroll_score + engagement_score, 0.0), 1.0)

        return ScoreBreakdown(
            time_score=time_score,
            scroll_score=scroll_score,
            engagement_score=engagement_score,
            completion_score=completion,
            reading_speed_wpm=self.reading_speed_wpm(word_count, active_time_ms),
            engagement_level=self.engagement_level(completion, engagement_points),
        )
