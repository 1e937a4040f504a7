import pytest

from lessontrack.application.tracking.event_log import EventLog
from lessontrack.domain.models import TrackingEvent


def make_event(i: int, lesson: str = "l1") -> TrackingEvent:
    return TrackingEvent(lesson_key=lesson, kind="scroll", timestamp=i, payload={"n": i})


def test_cap_keeps_most_recent_in_order():
    log = EventLog(max_events=3)
    events = [make_event(i) for i in range(1, 6)]
    for e in events:
        log.record(e)

    assert log.entries() == events[2:]
    assert len(log) == 3


def test_length_never_exceeds_cap():
    log = EventLog(max_events=10)
    for i in range(250):
        log.record(make_event(i))
        assert len(log) <= 10
    assert [e.timestamp for e in log.entries()] == list(range(240, 250))


def test_restored_events_are_trimmed():
    log = EventLog(max_events=2, events=[make_event(i) for i in range(5)])
    assert [e.timestamp for e in log] == [3, 4]


def test_for_lesson_and_tail():
    log = EventLog()
    log.record(make_event(1, "a"))
    log.record(make_event(2, "b"))
    log.record(make_event(3, "a"))

    assert [e.timestamp for e in log.for_lesson("a")] == [1, 3]
    assert [e.timestamp for e in log.tail(2)] == [2, 3]
    assert log.tail(0) == []


def test_entries_returns_a_copy():
    log = EventLog()
    log.record(make_event(1))
    entries = log.entries()
    entries.clear()
    assert len(log) == 1


def test_events_are_immutable():
    event = make_event(1)
    with pytest.raises(Exception):
        event.kind = "open"  # type: ignore[misc]


def test_invalid_cap():
    with pytest.raises(ValueError):
        EventLog(max_events=0)
