class LessonTrackError(Exception):
    """Base class for lessontrack errors."""


class ContentFetchError(LessonTrackError):
    """Lesson content could not be fetched.

    ``retryable`` is set for network-level failures where a later attempt
    may succeed.
    """

    def __init__(self, lesson_key: str, message: str, retryable: bool = False):
        super().__init__(f"Failed to fetch lesson '{lesson_key}': {message}")
        self.lesson_key = lesson_key
        self.retryable = retryable


class StoreError(LessonTrackError):
    """The durable key-value store rejected an operation."""
