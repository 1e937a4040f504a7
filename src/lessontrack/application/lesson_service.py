"""Lesson content access with a bounded in-memory cache."""

import logging

from lessontrack.application.cache import BoundedCache
from lessontrack.domain.constants import LESSON_CACHE_SIZE
from lessontrack.domain.models import Lesson
from lessontrack.domain.ports import ContentProvider

logger = logging.getLogger(__name__)


class LessonService:
    """
    Fetches lessons through a ContentProvider, caching up to
    ``cache_size`` of them so navigating back and forth does not refetch.

    Fetch errors propagate to the caller; retries are the caller's decision.
    """

    def __init__(self, provider: ContentProvider, cache_size: int = LESSON_CACHE_SIZE):
        self._provider = provider
        self._cache: BoundedCache[str, Lesson] = BoundedCache(cache_size)

    @property
    def provider(self) -> ContentProvider:
        return self._provider

    async def fetch_lesson(self, lesson_key: str) -> Lesson:
        cached = self._cache.get(lesson_key)
        if cached is not None:
            return cached

        lesson = await self._provider.fetch_content(lesson_key)
        self._cache.set(lesson_key, lesson)
        return lesson

    async def preload(self, lesson_key: str) -> bool:
        """Warm the cache. Failures are ignored."""
        if lesson_key in self._cache:
            return True
        try:
            lesson = await self._provider.fetch_content(lesson_key)
        except Exception as e:
            logger.debug(f"Preload of '{lesson_key}' failed: {e}")
            return False
        self._cache.set(lesson_key, lesson)
        return True

    def cached(self, lesson_key: str) -> Lesson | None:
        return self._cache.get(lesson_key)

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_size(self) -> int:
        return self._cache.size()
