from collections.abc import Callable
from itertools import count
from typing import Any

import pytest

from lessontrack.application.tracking.event_log import EventLog
from lessontrack.application.tracking.gateway import ProgressGateway
from lessontrack.application.tracking.session_tracker import SessionTracker
from lessontrack.application.tracking.visibility import ForegroundSignal
from lessontrack.application.write_behind import WriteBehindQueue
from lessontrack.domain.ports import Scheduler
from lessontrack.infrastructure.stores import MemoryKeyValueStore


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ManualScheduler(Scheduler):
    """Deterministic scheduler: timers fire only inside ``advance``."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._ids = count(1)
        self._timers: dict[int, tuple[int, Callable[[], Any]]] = {}

    @property
    def pending(self) -> int:
        return len(self._timers)

    def schedule(self, delay_ms: int, callback: Callable[[], Any]) -> int:
        handle = next(self._ids)
        self._timers[handle] = (self.clock.now + delay_ms, callback)
        return handle

    def cancel(self, handle: object | None) -> None:
        if handle is not None:
            self._timers.pop(handle, None)  # type: ignore[arg-type]

    def advance(self, ms: int) -> None:
        target = self.clock.now + ms
        while True:
            due = [(at, h) for h, (at, _) in self._timers.items() if at <= target]
            if not due:
                break
            at, handle = min(due)
            _, callback = self._timers.pop(handle)
            self.clock.now = at
            callback()
        self.clock.now = target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def queue(store, scheduler):
    return WriteBehindQueue(store, scheduler, flush_delay_ms=500)


@pytest.fixture
def event_log():
    return EventLog(max_events=500)


@pytest.fixture
def gateway(queue, event_log):
    return ProgressGateway(queue, event_log, user_id=42)


@pytest.fixture
def signal():
    return ForegroundSignal()


@pytest.fixture
def tracker(gateway, scheduler, signal, clock):
    return SessionTracker(gateway, scheduler, visibility=signal, clock=clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home
