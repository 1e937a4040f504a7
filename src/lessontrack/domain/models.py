"""
Domain models for reading-progress tracking.

Sessions are plain mutable dataclasses owned by the tracker. Records that
are persisted (metrics, events, last-read markers) are frozen pydantic
models so that loading a stored value doubles as validation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

EngagementLevel = Literal["low", "medium", "high"]
EventKind = Literal["open", "scroll", "complete", "close"]


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    BACKGROUNDED = "backgrounded"
    ENDED = "ended"


@dataclass
class ReadingSession:
    """
    The tracked interval during which one lesson is the reading target.

    Attributes:
        lesson_key: Opaque identifier of the content being read.
        session_id: Unique id, attached to every event of this session.
        started_at: Epoch ms when the session started.
        last_activity_at: Epoch ms up to which active time has been credited.
        active_time_ms: Accumulated foreground time. Never decreases.
        scroll_progress: Maximum scrolled fraction in [0, 100]. Never decreases.
        word_count: Derived once from the lesson body.
        engagement_points: Slow-scroll and dwell rewards.
    """

    lesson_key: str
    session_id: str
    started_at: int
    last_activity_at: int
    word_count: int
    active_time_ms: int = 0
    scroll_progress: float = 0.0
    engagement_points: int = 0

    # Scroll sampling bookkeeping
    last_scroll_position: float = 0.0
    last_scroll_at: int = 0

    completion_reported: bool = False


class ProgressMetrics(BaseModel):
    """Derived progress for one lesson and one user."""

    model_config = ConfigDict(frozen=True)

    time_spent_ms: int = Field(default=0, ge=0)
    scroll_progress: float = Field(default=0.0, ge=0.0, le=100.0)
    reading_speed_wpm: float = Field(default=0.0, ge=0.0)
    completion_score: float = Field(default=0.0, ge=0.0, le=1.0)
    visits: int = Field(default=0, ge=0)
    last_visited_at: int = 0
    engagement_level: EngagementLevel = "low"


class TrackingEvent(BaseModel):
    """An append-only tracking event. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    lesson_key: str
    kind: EventKind
    timestamp: int
    payload: dict[str, Any] = Field(default_factory=dict)


class LastReadLesson(BaseModel):
    """Marker used to offer "continue reading" on the next visit."""

    model_config = ConfigDict(frozen=True)

    lesson_key: str
    title: str | None = None
    timestamp: int
    scroll_position: float = 0.0


@dataclass(frozen=True)
class Lesson:
    """Lesson content as handed over by a content provider."""

    key: str
    content: str
    title: str | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)

    @property
    def word_count(self) -> int:
        return count_words(self.content)


@dataclass(frozen=True)
class UserStatistics:
    lessons_viewed: int
    lessons_completed: int
    total_time_spent_ms: int
    average_reading_speed_wpm: float
    average_completion: float
    completion_rate: float
    current_streak: int
    longest_streak: int


def count_words(content: str) -> int:
    """Count whitespace-separated words."""
    return len(content.split())
