from datetime import datetime, timedelta, timezone

import dataclasses
import pytest

from attendance.ledger import AttendanceLedger, latest_per_student, newest_first
from attendance.models import ATTENDANCE, AttendanceMethod, AttendanceStatus
from conftest import FakeClock
from storage.memory_store import MemoryStore

PRESENT = AttendanceStatus.PRESENT
ABSENT = AttendanceStatus.ABSENT
MANUAL = AttendanceMethod.MANUAL
FACE = AttendanceMethod.FACE_MATCH


def test_append_writes_one_row_per_call():
    store = MemoryStore()
    ledger = AttendanceLedger(store, FakeClock())

    first = ledger.append("s-1", "lec-1", ABSENT, MANUAL)
    second = ledger.append("s-1", "lec-1", ABSENT, MANUAL)

    assert first.id != second.id
    assert store.count(ATTENDANCE) == 2
    assert second.sequence > first.sequence
    assert second.timestamp > first.timestamp


def test_events_are_immutable():
    ledger = AttendanceLedger(MemoryStore(), FakeClock())
    event = ledger.append("s-1", "lec-1", PRESENT, FACE)

    with pytest.raises(dataclasses.FrozenInstanceError):
        event.status = ABSENT


def test_equal_timestamps_resolve_by_insertion_order():
    frozen = FakeClock(step=timedelta(0))
    ledger = AttendanceLedger(MemoryStore(), frozen)

    ledger.append("s-1", "lec-1", PRESENT, FACE)
    last = ledger.append("s-1", "lec-1", ABSENT, MANUAL)

    latest = ledger.latest("s-1", "lec-1")
    assert latest.id == last.id
    assert latest.status == ABSENT


def test_latest_uses_timestamp_not_arrival_order():
    times = iter([
        datetime(2024, 1, 2, tzinfo=timezone.utc),
        datetime(2024, 1, 1, tzinfo=timezone.utc),
    ])
    ledger = AttendanceLedger(MemoryStore(), lambda: next(times))

    newer = ledger.append("s-1", "lec-1", PRESENT, MANUAL)
    ledger.append("s-1", "lec-1", ABSENT, MANUAL)

    assert ledger.latest("s-1", "lec-1").id == newer.id


def test_naive_clock_is_treated_as_utc():
    ledger = AttendanceLedger(MemoryStore(), lambda: datetime(2024, 1, 1, 8, 0))
    event = ledger.append("s-1", "lec-1", PRESENT, MANUAL)

    assert event.timestamp.tzinfo is not None


def test_queries_by_student_and_lecture():
    ledger = AttendanceLedger(MemoryStore(), FakeClock())
    ledger.append("s-1", "lec-1", PRESENT, MANUAL)
    ledger.append("s-1", "lec-2", PRESENT, FACE)
    ledger.append("s-2", "lec-1", ABSENT, MANUAL)

    assert len(ledger.events_for_lecture("lec-1")) == 2
    assert len(ledger.events_for_student("s-1")) == 2
    assert len(ledger.events_for("s-1", "lec-2")) == 1
    assert ledger.latest("s-3", "lec-1") is None


def test_latest_per_student_and_newest_first():
    ledger = AttendanceLedger(MemoryStore(), FakeClock())
    a1 = ledger.append("s-1", "lec-1", ABSENT, MANUAL)
    b1 = ledger.append("s-2", "lec-1", PRESENT, FACE)
    a2 = ledger.append("s-1", "lec-1", PRESENT, MANUAL)

    events = ledger.events_for_lecture("lec-1")
    assert latest_per_student(events) == {"s-1": a2, "s-2": b1}
    assert [e.id for e in newest_first(events)] == [a2.id, b1.id, a1.id]
