"""
Attendance reconciliation.

Turns marking requests into ledger rows and answers what is true now.
Per (student, lecture) the states are NoRecord -> Absent <-> Present, where
NoRecord reports as absent. Every accepted mark is a new ledger row; the
current status is the latest row by (timestamp, insertion order).
"""
from typing import Dict, Iterable, List, Optional, Set

from .ledger import AttendanceLedger, latest_per_student, newest_first
from .models import AttendanceEvent, AttendanceMethod, AttendanceStatus
from .roster import Roster
from face_matching.face_matcher import MatchResult
from utils.config import config
from utils.logger import logger


class ReconciliationEngine:
    """Applies manual and recognition marks to the ledger.

    The engine takes no locks of its own. Concurrent marks for the same
    student land as separate rows, ordered by the store.
    """

    def __init__(self, roster: Roster, ledger: AttendanceLedger, threshold: Optional[float] = None):
        self.roster = roster
        self.ledger = ledger
        self.threshold = config.face.tolerance if threshold is None else float(threshold)

    def mark_manual(self, student_id: str, lecture_id: str, status) -> AttendanceEvent:
        """Always append a manual event, whatever the prior state.

        Not idempotent: repeated calls keep the full correction history.

        Raises:
            InvalidStatus: ``status`` is not present/absent.
            StudentNotFound, LectureNotFound: checked before the write.
        """
        status = AttendanceStatus.parse(status)
        self.roster.get_student(student_id)
        self.roster.get_lecture(lecture_id)

        event = self.ledger.append(student_id, lecture_id, status, AttendanceMethod.MANUAL)
        logger.info(f"Manual mark: student {student_id} {status.value} in lecture {lecture_id}")
        return event

    def mark_from_recognition(self, lecture_id: str, match_results: Iterable[MatchResult],
                              seen: Optional[Set[str]] = None,
                              threshold: Optional[float] = None) -> List[AttendanceEvent]:
        """Append a present/face event for each newly recognized student.

        Args:
            lecture_id: Lecture being captured.
            match_results: One result per detected face; may repeat identities.
            seen: Students already marked in this capture session. Updated in
                place with every student marked by this call.
            threshold: Distance cut-off, defaults to the engine threshold.

        Returns:
            The events written, one per student not in ``seen``. Matched
            students no longer on the roster are skipped with a warning.
        """
        threshold = self.threshold if threshold is None else float(threshold)
        seen = set() if seen is None else seen

        self.roster.get_lecture(lecture_id)

        candidates: List[str] = []
        for result in match_results:
            if not result.is_known or not result.distance < threshold:
                continue
            if result.label in seen or result.label in candidates:
                logger.debug(f"Student {result.label} already marked in this session, skipping")
                continue
            candidates.append(result.label)

        # Roster lookups all happen before the first write
        removed = [sid for sid in candidates if self.roster.find_student(sid) is None]
        for student_id in removed:
            logger.warning(f"Recognized student {student_id} is no longer enrolled, skipping")
        candidates = [sid for sid in candidates if sid not in removed]

        events = []
        for student_id in candidates:
            event = self.ledger.append(
                student_id, lecture_id, AttendanceStatus.PRESENT, AttendanceMethod.FACE_MATCH
            )
            seen.add(student_id)
            events.append(event)

        if events:
            logger.info(f"Recognition marked {len(events)} students present in lecture {lecture_id}")
        return events

    def current_status(self, lecture_id: str) -> Dict[str, AttendanceEvent]:
        """Latest event per student for the lecture."""
        self.roster.get_lecture(lecture_id)
        return latest_per_student(self.ledger.events_for_lecture(lecture_id))

    def history(self, student_id: str) -> List[AttendanceEvent]:
        """All of a student's events across lectures, newest first."""
        self.roster.get_student(student_id)
        return newest_first(self.ledger.events_for_student(student_id))
