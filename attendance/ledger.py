"""
Append-only attendance ledger.

Events are never updated or deleted. A correction is a new event with a
later timestamp; the current status is resolved on read.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from .models import (
    ATTENDANCE, AttendanceEvent, AttendanceMethod, AttendanceStatus, utc_now,
)
from storage.base import DocumentStore, new_document_id
from utils.logger import logger

Clock = Callable[[], datetime]


def latest_per_student(events: Iterable[AttendanceEvent]) -> Dict[str, AttendanceEvent]:
    """Reduce events to the latest one per student by (timestamp, sequence)."""
    latest: Dict[str, AttendanceEvent] = {}
    for event in events:
        current = latest.get(event.student_id)
        if current is None or event.order_key > current.order_key:
            latest[event.student_id] = event
    return latest


def newest_first(events: Iterable[AttendanceEvent]) -> List[AttendanceEvent]:
    return sorted(events, key=lambda e: e.order_key, reverse=True)


class AttendanceLedger:
    """Append-only store of AttendanceEvents on top of a document store."""

    def __init__(self, store: DocumentStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or utc_now

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def append(self, student_id: str, lecture_id: str, status: AttendanceStatus,
               method: AttendanceMethod) -> AttendanceEvent:
        """Write one event. A single-document insert, so it applies fully or not at all."""
        event = AttendanceEvent(
            id=new_document_id(),
            student_id=student_id,
            lecture_id=lecture_id,
            status=status,
            method=method,
            timestamp=self._now(),
        )
        stored = self.store.insert(ATTENDANCE, event.to_document())
        event = AttendanceEvent.from_document(stored)

        logger.log_attendance_event(
            student_id, lecture_id, status.value, method.value,
            {'event_id': event.id, 'sequence': event.sequence}
        )
        return event

    def events_for_lecture(self, lecture_id: str) -> List[AttendanceEvent]:
        return [AttendanceEvent.from_document(d) for d in self.store.find(ATTENDANCE, lecture_id=lecture_id)]

    def events_for_student(self, student_id: str) -> List[AttendanceEvent]:
        return [AttendanceEvent.from_document(d) for d in self.store.find(ATTENDANCE, student_id=student_id)]

    def events_for(self, student_id: str, lecture_id: str) -> List[AttendanceEvent]:
        docs = self.store.find(ATTENDANCE, student_id=student_id, lecture_id=lecture_id)
        return [AttendanceEvent.from_document(d) for d in docs]

    def latest(self, student_id: str, lecture_id: str) -> Optional[AttendanceEvent]:
        return latest_per_student(self.events_for(student_id, lecture_id)).get(student_id)

    def get(self, event_id: str) -> Optional[AttendanceEvent]:
        doc = self.store.find_by_id(ATTENDANCE, event_id)
        return AttendanceEvent.from_document(doc) if doc else None
