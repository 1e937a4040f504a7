"""
Write-behind queue for the durable key-value store.

Writes are buffered in a pending map (last write wins per key) and flushed
as one batch at most ``flush_delay_ms`` after the first pending write. ``flush_now`` is the synchronous path
for shutdown so nothing pending is dropped.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel

from lessontrack.domain.constants import FLUSH_DELAY_MS
from lessontrack.domain.ports import KeyValueStore, Scheduler

logger = logging.getLogger(__name__)


def encode_value(value: Any) -> str:
    """Serialize a pending value for the store."""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value)


class WriteBehindQueue:
    def __init__(
        self,
        store: KeyValueStore,
        scheduler: Scheduler,
        flush_delay_ms: int = FLUSH_DELAY_MS,
    ):
        self._store = store
        self._scheduler = scheduler
        self._delay = flush_delay_ms
        self._pending: dict[str, Any] = {}
        self._timer: object | None = None
        self._closed = False

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending(self, key: str) -> Any | None:
        """Return the not-yet-flushed value for ``key``, if any."""
        return self._pending.get(key)

    def enqueue(self, key: str, value: Any) -> None:
        """
        Buffer a write, replacing any earlier pending value for the same key.

        The flush timer starts with the first pending write and is not pushed
        back by later ones, so data reaches the store within one flush delay.
        """
        self._pending[key] = value

        if self._closed:
            self.flush_now()
            return

        if self._timer is None:
            self._timer = self._scheduler.schedule(self._delay, self._on_timer)

    def discard(self, key: str) -> None:
        self._pending.pop(key, None)

    def flush_now(self) -> int:
        """
        Write every pending key immediately.

        Returns:
            Number of keys written successfully.
        """
        if self._timer is not None:
            self._scheduler.cancel(self._timer)
            self._timer = None
        return self._write_batch()

    def close(self) -> None:
        """Flush and write through from now on."""
        self.flush_now()
        self._closed = True

    def _on_timer(self) -> None:
        self._timer = None
        self._write_batch()

    def _write_batch(self) -> int:
        if not self._pending:
            return 0

        batch = self._pending
        self._pending = {}

        written = 0
        for key, value in batch.items():
            try:
                self._store.set(key, encode_value(value))
                written += 1
            except Exception as e:
                logger.error(f"Failed to persist key '{key}': {e}")

        logger.debug(f"Flushed {written}/{len(batch)} pending writes")
        return written
