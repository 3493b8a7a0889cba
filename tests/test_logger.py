from attendance.ledger import AttendanceLedger
from attendance.models import AttendanceMethod, AttendanceStatus
from conftest import FakeClock
from storage.memory_store import MemoryStore
from utils.logger import logger


def test_ledger_writes_reach_attendance_log():
    ledger = AttendanceLedger(MemoryStore(), FakeClock())
    event = ledger.append("log-student", "log-lecture", AttendanceStatus.PRESENT, AttendanceMethod.FACE_MATCH)

    recent = [e for e in logger.get_recent_attendance_events(hours=1) if e["student_id"] == "log-student"]
    assert recent[-1]["method"] == "face"
    assert recent[-1]["details"]["event_id"] == event.id

    summary = logger.get_attendance_summary(hours=1)
    assert summary["method_counts"]["face"] >= 1
    assert summary["unique_lectures"] >= 1
