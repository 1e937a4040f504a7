import pytest

from lessontrack.application.config import AppConfig
from lessontrack.application.factory import (
    build_tracking_context,
    get_content_provider,
    get_store,
)
from lessontrack.application.tracking.gateway import progress_key
from lessontrack.domain.models import TrackingEvent
from lessontrack.infrastructure.adapters.analytics import NullAnalyticsSink
from lessontrack.infrastructure.adapters.http_content import HttpContentProvider
from lessontrack.infrastructure.adapters.markdown_content import MarkdownContentProvider
from lessontrack.infrastructure.identity import StaticIdentity
from lessontrack.infrastructure.stores import MemoryKeyValueStore, SqliteKeyValueStore


@pytest.fixture
def config(tmp_path, mock_home):
    return AppConfig(data_dir=tmp_path / "data")


def test_anonymous_user_gets_memory_store(config):
    assert isinstance(get_store(config, None), MemoryKeyValueStore)


def test_identified_user_gets_sqlite_store(config, tmp_path):
    store = get_store(config, 5)
    assert isinstance(store, SqliteKeyValueStore)
    assert store.path == tmp_path / "data" / "progress.sqlite3"


def test_content_provider_selection(tmp_path, mock_home):
    assert get_content_provider(AppConfig()) is None
    assert isinstance(
        get_content_provider(AppConfig(lessons_dir=str(tmp_path))), MarkdownContentProvider
    )
    assert isinstance(
        get_content_provider(AppConfig(content_url="https://lessons.example")),
        HttpContentProvider,
    )


@pytest.mark.asyncio
async def test_contexts_are_independent(config, scheduler, clock):
    a, b = (
        build_tracking_context(
            config,
            identity=StaticIdentity(user_id),
            scheduler=scheduler,
            store=MemoryKeyValueStore(),
            clock=clock,
        )
        for user_id in (1, 2)
    )

    a.tracker.open_lesson("l1", "some words here")

    assert a.tracker.lesson_key == "l1"
    assert b.tracker.lesson_key is None
    assert len(b.event_log) == 0
    assert isinstance(a.analytics, NullAnalyticsSink)

    await a.aclose()
    await b.aclose()


@pytest.mark.asyncio
async def test_context_restores_events_and_flushes_on_close(config, scheduler, clock):
    store = MemoryKeyValueStore()
    first = build_tracking_context(
        config, identity=StaticIdentity(1), scheduler=scheduler, store=store, clock=clock
    )
    first.tracker.open_lesson("l1", "some words here")

    await first.aclose()

    assert store.get(progress_key("1", "l1")) is not None
    assert scheduler.pending == 0

    second = build_tracking_context(
        config, identity=StaticIdentity(1), scheduler=scheduler, store=store, clock=clock
    )
    kinds = [e.kind for e in second.event_log]
    assert kinds == ["open", "close"]
    assert all(isinstance(e, TrackingEvent) for e in second.event_log)
    assert second.tracker.get_progress("l1").visits == 1
    await second.aclose()
