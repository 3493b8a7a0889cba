"""
Typed failures for the attendance core.
Every public operation raises one of these so callers never lose the kind.
"""
from typing import Optional


class AttendanceError(Exception):
    """Base class for all attendance failures."""
    kind = "error"

    def __init__(self, message: str, detail: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "message": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class NotFoundError(AttendanceError):
    kind = "not_found"


class StudentNotFound(NotFoundError):
    kind = "student_not_found"

    def __init__(self, student_id: str):
        super().__init__(f"Student not found: {student_id}", {"student_id": student_id})
        self.student_id = student_id


class LectureNotFound(NotFoundError):
    kind = "lecture_not_found"

    def __init__(self, lecture_id: str):
        super().__init__(f"Lecture not found: {lecture_id}", {"lecture_id": lecture_id})
        self.lecture_id = lecture_id


class SessionNotFound(NotFoundError):
    kind = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(f"Capture session not found: {session_id}", {"session_id": session_id})
        self.session_id = session_id


class InvalidInput(AttendanceError):
    """Malformed input, rejected before any write."""
    kind = "invalid_input"


class InvalidDescriptor(InvalidInput):
    kind = "invalid_descriptor"


class InvalidProbe(InvalidInput):
    kind = "invalid_probe"


class InvalidStatus(InvalidInput):
    kind = "invalid_status"


class LectureHasDependents(InvalidInput):
    kind = "lecture_has_dependents"

    def __init__(self, lecture_id: str, student_count: int):
        super().__init__(
            f"Lecture {lecture_id} still has {student_count} enrolled students",
            {"lecture_id": lecture_id, "student_count": student_count},
        )
        self.lecture_id = lecture_id


class StorageFailure(AttendanceError):
    """Transient storage error. Safe to retry the whole marking operation."""
    kind = "storage_failure"


class SessionClosed(InvalidInput):
    kind = "session_closed"

    def __init__(self, session_id: str):
        super().__init__(f"Capture session {session_id} is closed", {"session_id": session_id})
        self.session_id = session_id
