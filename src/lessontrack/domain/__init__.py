# Domain Package
from .errors import ContentFetchError, LessonTrackError, StoreError
from .models import (
    Lesson,
    LastReadLesson,
    ProgressMetrics,
    ReadingSession,
    SessionState,
    TrackingEvent,
    UserStatistics,
)
from .ports import AnalyticsSink, ContentProvider, IdentityProvider, KeyValueStore, Scheduler

__all__ = [
    "AnalyticsSink",
    "ContentFetchError",
    "ContentProvider",
    "IdentityProvider",
    "KeyValueStore",
    "LastReadLesson",
    "Lesson",
    "LessonTrackError",
    "ProgressMetrics",
    "ReadingSession",
    "Scheduler",
    "SessionState",
    "StoreError",
    "TrackingEvent",
    "UserStatistics",
]
