"""
Lecture attendance tracking.

This package provides:
- Lecture and student roster management
- Append-only attendance ledger
- Reconciliation of manual and face-recognition marks
- Capture sessions with per-session duplicate suppression
- Latest-event-per-student reports
"""

from .models import AttendanceEvent, AttendanceMethod, AttendanceStatus, Lecture, Student
from .ledger import AttendanceLedger
from .reconciliation import ReconciliationEngine
from .reports import ReportAggregator
from .roster import Roster
from .session import CaptureSession, FrameOutcome, SessionRegistry
from .service import AttendanceService

__version__ = "1.0.0"

__all__ = [
    'AttendanceEvent',
    'AttendanceMethod',
    'AttendanceStatus',
    'Lecture',
    'Student',
    'AttendanceLedger',
    'ReconciliationEngine',
    'ReportAggregator',
    'Roster',
    'CaptureSession',
    'FrameOutcome',
    'SessionRegistry',
    'AttendanceService'
]
