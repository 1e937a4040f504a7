"""
Ports (interfaces) for the tracking engine.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from .models import Lesson, TrackingEvent


class KeyValueStore(ABC):
    """
    Port for the durable key-value store.

    Values are serialized records. Implementations may raise on I/O failure;
    callers in the application layer catch and log.

    Implementations:
        - MemoryKeyValueStore: process-local dict, used for session-only mode.
        - SqliteKeyValueStore: single-table SQLite file.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored string, or None when absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``, sorted."""
        pass


class ContentProvider(ABC):
    """
    Port for fetching lesson content.

    Implementations:
        - MarkdownContentProvider: reads ``<key>.md`` from a lessons directory.
        - HttpContentProvider: fetches from the lessons API.
    """

    @abstractmethod
    async def fetch_content(self, lesson_key: str) -> Lesson:
        """
        Fetch a lesson.

        Raises:
            ContentFetchError: The lesson is missing or the fetch failed.
        """
        pass


class AnalyticsSink(ABC):
    """Best-effort remote analytics. Never required for local correctness."""

    @abstractmethod
    def submit(self, event: TrackingEvent) -> None:
        """Hand an event over without waiting for acknowledgement."""
        pass

    async def aclose(self) -> None:
        """Release resources and wait for in-flight submissions."""
        return None


class IdentityProvider(ABC):
    @abstractmethod
    def get_user_id(self) -> int | None:
        """Return the numeric user id, or None when the user is anonymous."""
        pass


class Scheduler(ABC):
    """
    Timer abstraction used for ticks, dwell bonuses and batched flushes.

    Handles are opaque. Cancelling a handle that already fired or was
    already cancelled is a no-op.
    """

    @abstractmethod
    def schedule(self, delay_ms: int, callback: Callable[[], Any]) -> object:
        pass

    @abstractmethod
    def cancel(self, handle: object | None) -> None:
        pass
