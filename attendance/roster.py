"""
Lecture and student management on top of the document store.
"""
import os
from typing import Any, List, Optional, Sequence

from .models import LECTURES, STUDENTS, Lecture, Schedule, Student, utc_now
from face_matching.descriptor import descriptor_to_list, parse_descriptor
from face_matching.descriptor_store import DescriptorStore
from storage.base import DocumentStore, new_document_id
from utils.errors import (
    InvalidInput, LectureHasDependents, LectureNotFound, StudentNotFound,
)
from utils.logger import logger


class Roster:
    """Lectures and their enrolled students."""

    def __init__(self, store: DocumentStore):
        self.store = store

    # Lectures

    def create_lecture(self, title: str, owner_id: str, time: str, days: Sequence[str]) -> Lecture:
        if not title or not str(title).strip():
            raise InvalidInput("Lecture title is required")
        if not owner_id:
            raise InvalidInput("Lecture owner is required")
        if not time or not str(time).strip():
            raise InvalidInput("Lecture time is required")
        if not days or isinstance(days, str) or not all(isinstance(d, str) and d.strip() for d in days):
            raise InvalidInput("At least one day must be selected")

        lecture = Lecture(
            id=new_document_id(),
            title=str(title).strip(),
            owner_id=owner_id,
            schedule=Schedule(time=str(time).strip(), days=[d.strip() for d in days]),
        )
        self.store.insert(LECTURES, lecture.to_document())
        logger.info(f"Created lecture {lecture.id} ({lecture.title}) for owner {owner_id}")
        return lecture

    def find_lecture(self, lecture_id: str) -> Optional[Lecture]:
        doc = self.store.find_by_id(LECTURES, lecture_id)
        return Lecture.from_document(doc) if doc else None

    def get_lecture(self, lecture_id: str) -> Lecture:
        lecture = self.find_lecture(lecture_id)
        if lecture is None:
            raise LectureNotFound(lecture_id)
        return lecture

    def list_lectures(self, owner_id: Optional[str] = None) -> List[Lecture]:
        query = {"owner_id": owner_id} if owner_id else {}
        return [Lecture.from_document(d) for d in self.store.find(LECTURES, **query)]

    def delete_lecture(self, lecture_id: str) -> None:
        """Delete a lecture. Forbidden while students are still enrolled in it."""
        self.get_lecture(lecture_id)
        enrolled = self.store.count(STUDENTS, lecture_id=lecture_id)
        if enrolled:
            raise LectureHasDependents(lecture_id, enrolled)
        self.store.delete(LECTURES, lecture_id)
        logger.info(f"Deleted lecture {lecture_id}")

    # Students

    def add_student(self, name: str, lecture_id: str, face_descriptor: Any = None,
                    face_image: Optional[str] = None) -> Student:
        if not name or not str(name).strip():
            raise InvalidInput("Student name is required")
        self.get_lecture(lecture_id)

        student = Student(
            id=new_document_id(),
            name=str(name).strip(),
            lecture_id=lecture_id,
            face_descriptor=parse_descriptor(face_descriptor) if face_descriptor is not None else None,
            face_image=face_image,
            created_at=utc_now(),
        )
        self.store.insert(STUDENTS, student.to_document())
        logger.info(f"Enrolled student {student.id} ({student.name}) in lecture {lecture_id}")
        return student

    def find_student(self, student_id: str) -> Optional[Student]:
        doc = self.store.find_by_id(STUDENTS, student_id)
        return Student.from_document(doc) if doc else None

    def get_student(self, student_id: str) -> Student:
        student = self.find_student(student_id)
        if student is None:
            raise StudentNotFound(student_id)
        return student

    def list_students(self, lecture_id: str) -> List[Student]:
        self.get_lecture(lecture_id)
        return [Student.from_document(d) for d in self.store.find(STUDENTS, lecture_id=lecture_id)]

    def update_descriptor(self, student_id: str, face_descriptor: Any) -> Student:
        """Replace a student's reference descriptor. Validated before the write."""
        vector = parse_descriptor(face_descriptor)
        self.get_student(student_id)
        doc = self.store.update(STUDENTS, student_id, {"face_descriptor": descriptor_to_list(vector)})
        if doc is None:
            raise StudentNotFound(student_id)
        logger.info(f"Updated face descriptor for student {student_id}")
        return Student.from_document(doc)

    def delete_student(self, student_id: str) -> None:
        """Remove a student and the stored face image, if any. Ledger rows are kept."""
        student = self.get_student(student_id)
        if student.face_image and os.path.exists(student.face_image):
            try:
                os.remove(student.face_image)
            except OSError as e:
                logger.warning(f"Could not remove image file {student.face_image}: {e}")
        self.store.delete(STUDENTS, student_id)
        logger.info(f"Removed student {student_id}")

    def descriptor_snapshot(self, lecture_id: str) -> DescriptorStore:
        """Load the lecture's reference descriptors once, for one capture session."""
        return DescriptorStore.from_students(self.list_students(lecture_id))
