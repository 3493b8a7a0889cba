"""
Attendance service: the operations exposed to the HTTP layer and the CLI.
"""
from typing import Dict, Iterable, List, Optional

from .ledger import AttendanceLedger, Clock
from .models import AttendanceEvent, AttendanceStatus
from .reconciliation import ReconciliationEngine
from .reports import ReportAggregator
from .roster import Roster
from .session import CaptureSession, FrameOutcome, SessionRegistry
from storage import create_store
from storage.base import DocumentStore


class AttendanceService:
    """Facade over roster, ledger, reconciliation and reports."""

    def __init__(self, store: Optional[DocumentStore] = None, clock: Optional[Clock] = None,
                 threshold: Optional[float] = None, max_open_sessions: Optional[int] = None):
        self.store = store if store is not None else create_store()
        self.roster = Roster(self.store)
        self.ledger = AttendanceLedger(self.store, clock)
        self.engine = ReconciliationEngine(self.roster, self.ledger, threshold)
        self.reports = ReportAggregator()
        self.sessions = SessionRegistry(max_open_sessions)

    def mark_manual_attendance(self, student_id: str, lecture_id: str, status) -> AttendanceEvent:
        return self.engine.mark_manual(student_id, lecture_id, status)

    def recognize(self, lecture_id: str, probe_embeddings: Iterable) -> FrameOutcome:
        """One-shot capture: a fresh session for a single frame."""
        session = CaptureSession.open(self.engine, self.roster, lecture_id)
        try:
            return session.process_frame(probe_embeddings)
        finally:
            session.cancel()

    def mark_attendance_from_match(self, lecture_id: str, probe_embeddings: Iterable) -> List[AttendanceEvent]:
        return self.recognize(lecture_id, probe_embeddings).events

    def open_capture_session(self, lecture_id: str, threshold: Optional[float] = None) -> CaptureSession:
        session = CaptureSession.open(self.engine, self.roster, lecture_id, threshold)
        return self.sessions.add(session)

    def submit_frame(self, session_id: str, probe_embeddings: Iterable) -> FrameOutcome:
        return self.sessions.get(session_id).process_frame(probe_embeddings)

    def close_capture_session(self, session_id: str) -> CaptureSession:
        return self.sessions.close(session_id)

    def get_current_status(self, lecture_id: str) -> Dict[str, str]:
        return {
            student_id: event.status.value
            for student_id, event in self.engine.current_status(lecture_id).items()
        }

    def get_lecture_attendance(self, lecture_id: str) -> List[Dict]:
        """Every enrolled student with their current status; no record reads as absent."""
        students = self.roster.list_students(lecture_id)
        current = self.engine.current_status(lecture_id)
        rows = []
        for student in students:
            event = current.get(student.id)
            rows.append({
                'student_id': student.id,
                'student_name': student.name,
                'status': event.status.value if event else AttendanceStatus.ABSENT.value,
                'method': event.method.value if event else None,
                'timestamp': event.timestamp.isoformat() if event else None,
                'has_record': event is not None
            })
        return rows

    def get_history(self, student_id: str) -> List[AttendanceEvent]:
        return self.engine.history(student_id)

    def get_history_records(self, student_id: str) -> List[Dict]:
        """History rows with the lecture title, newest first."""
        titles: Dict[str, Optional[str]] = {}
        records = []
        for event in self.get_history(student_id):
            if event.lecture_id not in titles:
                lecture = self.roster.find_lecture(event.lecture_id)
                titles[event.lecture_id] = lecture.title if lecture else None
            record = event.to_dict()
            record['lecture_title'] = titles[event.lecture_id] or 'Unknown Lecture'
            records.append(record)
        return records

    def get_report(self, lecture_id: str) -> Dict:
        students = self.roster.list_students(lecture_id)
        current = self.engine.current_status(lecture_id)
        return self.reports.build_report(current, [s.id for s in students])
