"""
Analytics sinks. Remote delivery is best-effort: failures are logged and
never reach the tracker.
"""

import asyncio
import logging

import httpx

from lessontrack.domain.constants import REQUEST_TIMEOUT
from lessontrack.domain.models import TrackingEvent
from lessontrack.domain.ports import AnalyticsSink


class NullAnalyticsSink(AnalyticsSink):
    def submit(self, event: TrackingEvent) -> None:
        return None


class HttpAnalyticsSink(AnalyticsSink):
    """
    Posts events to ``{base_url}/api/progress/event`` as background tasks.

    Requires a running event loop; without one the event is dropped.
    Events are only sent for identified users.
    """

    def __init__(
        self,
        base_url: str,
        user_id: int | None,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.url = f"{base_url.rstrip('/')}/api/progress/event"
        self.user_id = user_id
        self._client = client
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, event: TrackingEvent) -> None:
        if self.user_id is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug(f"No running loop; dropping '{event.kind}' event")
            return

        task = loop.create_task(self._send(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, event: TrackingEvent) -> bool:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)

        body = {
            "telegramId": self.user_id,
            "eventType": event.kind,
            "lessonPath": event.lesson_key,
            "timestamp": event.timestamp,
            **event.payload,
        }
        try:
            resp = await self._client.post(self.url, json=body)
            resp.raise_for_status()
            return True
        except httpx.HTTPError as e:
            self.logger.warning(f"Failed to track event '{event.kind}': {e}")
            return False

    async def aclose(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None
