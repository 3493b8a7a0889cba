"""
Domain records for lectures, students and attendance events.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from face_matching.descriptor import descriptor_to_list, parse_descriptor
from utils.errors import InvalidInput, InvalidStatus

LECTURES = "lectures"
STUDENTS = "students"
ATTENDANCE = "attendance"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AttendanceStatus(Enum):
    """Attendance status of a student in a lecture."""
    PRESENT = "present"
    ABSENT = "absent"

    @classmethod
    def parse(cls, value: Any) -> "AttendanceStatus":
        if isinstance(value, cls):
            return value
        if value is None:
            raise InvalidStatus("Attendance status is required")
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidStatus(
                f"Invalid attendance status: {value!r}",
                {"allowed": [s.value for s in cls]},
            )


class AttendanceMethod(Enum):
    """How an attendance event was produced."""
    MANUAL = "manual"
    FACE_MATCH = "face"


@dataclass(frozen=True)
class Schedule:
    time: str
    days: List[str]


@dataclass
class Lecture:
    id: str
    title: str
    owner_id: str
    schedule: Schedule
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Lecture":
        schedule = doc.get("schedule") or {}
        return cls(
            id=doc["id"],
            title=doc["title"],
            owner_id=doc["owner_id"],
            schedule=Schedule(time=schedule.get("time", ""), days=list(schedule.get("days", []))),
            created_at=datetime.fromisoformat(doc["created_at"]),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "owner_id": self.owner_id,
            "schedule": {"time": self.schedule.time, "days": list(self.schedule.days)},
            "created_at": self.created_at.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.to_document()


@dataclass
class Student:
    id: str
    name: str
    lecture_id: str
    face_descriptor: Optional[np.ndarray] = None
    face_image: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Student":
        descriptor = doc.get("face_descriptor")
        return cls(
            id=doc["id"],
            name=doc["name"],
            lecture_id=doc["lecture_id"],
            face_descriptor=parse_descriptor(descriptor) if descriptor is not None else None,
            face_image=doc.get("face_image"),
            created_at=datetime.fromisoformat(doc["created_at"]),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "lecture_id": self.lecture_id,
            "face_descriptor": (
                descriptor_to_list(self.face_descriptor) if self.face_descriptor is not None else None
            ),
            "face_image": self.face_image,
            "created_at": self.created_at.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.to_document()
        payload.pop("face_descriptor")
        payload["has_descriptor"] = self.face_descriptor is not None
        return payload


@dataclass(frozen=True)
class AttendanceEvent:
    """One immutable ledger row."""
    id: str
    student_id: str
    lecture_id: str
    status: AttendanceStatus
    method: AttendanceMethod
    timestamp: datetime
    sequence: int = 0

    @property
    def order_key(self):
        """Latest wins by timestamp, then by insertion order."""
        return (self.timestamp, self.sequence)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "AttendanceEvent":
        try:
            return cls(
                id=doc["id"],
                student_id=doc["student_id"],
                lecture_id=doc["lecture_id"],
                status=AttendanceStatus(doc["status"]),
                method=AttendanceMethod(doc["method"]),
                timestamp=datetime.fromisoformat(doc["timestamp"]),
                sequence=int(doc.get("_seq", 0)),
            )
        except (KeyError, ValueError) as e:
            raise InvalidInput(f"Malformed attendance document {doc.get('id')}: {e}")

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "lecture_id": self.lecture_id,
            "status": self.status.value,
            "method": self.method.value,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.to_document()
        payload["sequence"] = self.sequence
        return payload
