import pytest

from attendance.service import AttendanceService
from conftest import FakeClock, make_descriptor
from storage.sqlite_store import SQLiteStore


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "attendance.db")


def test_insert_find_update_delete(db_path):
    store = SQLiteStore(db_path)
    first = store.insert("students", {"name": "Alice", "lecture_id": "lec-1"})
    second = store.insert("students", {"name": "Bob", "lecture_id": "lec-2"})

    assert second["_seq"] > first["_seq"]
    assert [d["name"] for d in store.find("students")] == ["Alice", "Bob"]
    assert store.find_one("students", lecture_id="lec-2")["id"] == second["id"]
    assert store.find_by_id("students", first["id"])["name"] == "Alice"
    assert store.find("students", lecture_id="lec-3") == []

    updated = store.update("students", first["id"], {"name": "Alicia", "id": "hijack"})
    assert updated["name"] == "Alicia"
    assert updated["id"] == first["id"]
    assert store.update("students", "missing", {"name": "x"}) is None

    assert store.delete("students", second["id"]) is True
    assert store.delete("students", second["id"]) is False
    assert store.count("students") == 1
    store.close()


def test_duplicate_id_rejected(db_path):
    store = SQLiteStore(db_path)
    store.insert("lectures", {"id": "lec-1", "title": "A"})
    with pytest.raises(ValueError):
        store.insert("lectures", {"id": "lec-1", "title": "B"})
    store.close()


def test_service_state_survives_reopen(db_path):
    service = AttendanceService(store=SQLiteStore(db_path), clock=FakeClock(), threshold=0.6)
    lecture = service.roster.create_lecture("Algorithms", "doctor-1", "14:00", ["Monday"])
    alice = service.roster.add_student("Alice", lecture.id, make_descriptor(1).tolist())
    service.mark_manual_attendance(alice.id, lecture.id, "absent")
    service.mark_attendance_from_match(lecture.id, [make_descriptor(1)])
    service.store.close()

    reopened = AttendanceService(store=SQLiteStore(db_path), threshold=0.6)
    assert reopened.get_current_status(lecture.id) == {alice.id: "present"}
    assert [e.method.value for e in reopened.get_history(alice.id)] == ["face", "manual"]
    assert reopened.get_report(lecture.id)["percentage"] == 100
    reopened.store.close()


def test_field_queries_filter_in_sql(db_path):
    store = SQLiteStore(db_path)
    for lecture_id in ["lec-1", "lec-2", "lec-2"]:
        store.insert("attendance", {"lecture_id": lecture_id, "status": "present", "late": False})
    store.insert("attendance", {"lecture_id": "lec-2", "status": "absent", "late": True})

    statements = []
    store._conn.set_trace_callback(statements.append)
    rows = store.find("attendance", lecture_id="lec-2", status="present")
    store._conn.set_trace_callback(None)

    assert len(rows) == 2
    assert all(r["lecture_id"] == "lec-2" for r in rows)
    assert any("json_extract(body, '$.lecture_id')" in s for s in statements)

    assert [r["status"] for r in store.find("attendance", lecture_id="lec-2", late=True)] == ["absent"]
    assert store.count("attendance", lecture_id="lec-3") == 0
    store.close()
