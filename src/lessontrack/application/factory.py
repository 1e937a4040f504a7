"""
Tracking Factory
Wires stores, queues, logs and the tracker together from configuration.

Nothing here is a module-level singleton: every call builds an independent
context, so several trackers (or tests) never share state by accident.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from lessontrack.application.config import AppConfig
from lessontrack.application.lesson_service import LessonService
from lessontrack.application.reading_positions import ReadingPositions
from lessontrack.application.tracking.event_log import EventLog
from lessontrack.application.tracking.gateway import ProgressGateway
from lessontrack.application.tracking.session_tracker import SessionTracker, now_ms
from lessontrack.application.tracking.visibility import ForegroundSignal
from lessontrack.application.write_behind import WriteBehindQueue
from lessontrack.domain.ports import (
    AnalyticsSink,
    ContentProvider,
    IdentityProvider,
    KeyValueStore,
    Scheduler,
)
from lessontrack.infrastructure.adapters.analytics import HttpAnalyticsSink, NullAnalyticsSink
from lessontrack.infrastructure.adapters.http_content import HttpContentProvider
from lessontrack.infrastructure.adapters.markdown_content import MarkdownContentProvider
from lessontrack.infrastructure.identity import EnvIdentityProvider, StaticIdentity
from lessontrack.infrastructure.scheduler import AsyncioScheduler
from lessontrack.infrastructure.stores import MemoryKeyValueStore, SqliteKeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class TrackingContext:
    """Everything one reader needs, owned by whoever composes trackers."""

    user_id: int | None
    store: KeyValueStore
    scheduler: Scheduler
    queue: WriteBehindQueue
    event_log: EventLog
    gateway: ProgressGateway
    signal: ForegroundSignal
    tracker: SessionTracker
    positions: ReadingPositions
    lessons: LessonService | None
    analytics: AnalyticsSink

    async def aclose(self) -> None:
        """Tear down: end the session, flush pending writes, release adapters."""
        self.tracker.shutdown()
        self.queue.close()
        if isinstance(self.scheduler, AsyncioScheduler):
            self.scheduler.cancel_all()
        await self.analytics.aclose()
        if self.lessons is not None and isinstance(self.lessons.provider, HttpContentProvider):
            await self.lessons.provider.aclose()
        if isinstance(self.store, SqliteKeyValueStore):
            self.store.close()


def get_identity_provider(config: AppConfig) -> IdentityProvider:
    if config.user_id is not None:
        return StaticIdentity(config.user_id)
    return EnvIdentityProvider()


def get_store(config: AppConfig, user_id: int | None) -> KeyValueStore:
    """
    Durable store for identified users; anonymous readers get session-only
    tracking backed by memory.
    """
    if user_id is None:
        logger.info("No user id available; progress is kept for this session only")
        return MemoryKeyValueStore()
    return SqliteKeyValueStore(config.resolved_store_path)


def get_content_provider(config: AppConfig) -> ContentProvider | None:
    if config.lessons_dir is not None:
        return MarkdownContentProvider(config.lessons_dir)
    if config.content_url:
        return HttpContentProvider(config.content_url)
    return None


def build_tracking_context(
    config: AppConfig,
    *,
    identity: IdentityProvider | None = None,
    scheduler: Scheduler | None = None,
    store: KeyValueStore | None = None,
    content: ContentProvider | None = None,
    analytics: AnalyticsSink | None = None,
    clock: Callable[[], int] | None = None,
) -> TrackingContext:
    """Build an independent tracking context. Explicit arguments win over config."""
    identity = identity or get_identity_provider(config)
    user_id = identity.get_user_id()

    scheduler = scheduler or AsyncioScheduler()
    store = store if store is not None else get_store(config, user_id)
    clock = clock or now_ms

    if analytics is None:
        analytics = (
            HttpAnalyticsSink(config.analytics_url, user_id)
            if config.analytics_url
            else NullAnalyticsSink()
        )

    queue = WriteBehindQueue(store, scheduler, flush_delay_ms=config.flush_delay_ms)
    event_log = EventLog(max_events=config.max_events)
    gateway = ProgressGateway(queue, event_log, user_id=user_id, analytics=analytics)
    restored = gateway.restore_events()
    if restored:
        logger.debug(f"Restored {restored} tracking events")

    signal = ForegroundSignal()
    tracker = SessionTracker(
        gateway,
        scheduler,
        visibility=signal,
        clock=clock,
        tick_interval_ms=config.tick_interval_ms,
        dwell_bonus_ms=config.dwell_bonus_ms,
    )

    content = content if content is not None else get_content_provider(config)
    lessons = LessonService(content, cache_size=config.lesson_cache_size) if content else None

    return TrackingContext(
        user_id=user_id,
        store=store,
        scheduler=scheduler,
        queue=queue,
        event_log=event_log,
        gateway=gateway,
        signal=signal,
        tracker=tracker,
        positions=ReadingPositions(queue, clock, user_id=user_id),
        lessons=lessons,
        analytics=analytics,
    )
