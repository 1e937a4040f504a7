import asyncio

import pytest

from lessontrack.infrastructure.identity import EnvIdentityProvider, StaticIdentity
from lessontrack.infrastructure.scheduler import AsyncioScheduler


@pytest.mark.asyncio
async def test_asyncio_scheduler_runs_callback():
    scheduler = AsyncioScheduler()
    fired = asyncio.Event()

    scheduler.schedule(10, fired.set)
    assert scheduler.pending_count == 1

    await asyncio.wait_for(fired.wait(), timeout=1)
    assert scheduler.pending_count == 0


@pytest.mark.asyncio
async def test_asyncio_scheduler_cancel():
    scheduler = AsyncioScheduler()
    calls = []

    handle = scheduler.schedule(10, lambda: calls.append(1))
    scheduler.cancel(handle)
    scheduler.cancel(None)
    await asyncio.sleep(0.05)

    assert calls == []
    assert scheduler.pending_count == 0


@pytest.mark.asyncio
async def test_asyncio_scheduler_cancel_all():
    scheduler = AsyncioScheduler()
    calls = []
    for delay in (10, 20, 30):
        scheduler.schedule(delay, lambda: calls.append(1))

    scheduler.cancel_all()
    await asyncio.sleep(0.05)

    assert calls == []


@pytest.mark.asyncio
async def test_asyncio_scheduler_logs_callback_errors(caplog):
    scheduler = AsyncioScheduler()
    done = asyncio.Event()

    def boom():
        done.set()
        raise RuntimeError("boom")

    scheduler.schedule(0, boom)
    await asyncio.wait_for(done.wait(), timeout=1)
    await asyncio.sleep(0)

    assert "Scheduled callback failed" in caplog.text


def test_static_identity():
    assert StaticIdentity(5).get_user_id() == 5
    assert StaticIdentity().get_user_id() is None


@pytest.mark.parametrize(
    "raw,expected",
    [("123", 123), (" 77 ", 77), ("", None), ("abc", None)],
)
def test_env_identity(monkeypatch, raw, expected):
    monkeypatch.setenv("LESSONTRACK_USER_ID", raw)
    assert EnvIdentityProvider().get_user_id() == expected


def test_env_identity_unset(monkeypatch):
    monkeypatch.delenv("LESSONTRACK_USER_ID", raising=False)
    assert EnvIdentityProvider().get_user_id() is None
