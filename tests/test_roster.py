import json

import numpy as np
import pytest

from conftest import make_descriptor
from utils.errors import (
    InvalidDescriptor, InvalidInput, LectureHasDependents, LectureNotFound, StudentNotFound,
)


@pytest.mark.parametrize("title,time,days", [
    ("", "14:00", ["Monday"]),
    ("Algorithms", "", ["Monday"]),
    ("Algorithms", "14:00", []),
    ("Algorithms", "14:00", "Monday"),
])
def test_create_lecture_requires_fields(service, title, time, days):
    with pytest.raises(InvalidInput):
        service.roster.create_lecture(title, "doctor-1", time, days)


def test_lectures_by_owner(service, lecture):
    service.roster.create_lecture("Databases", "doctor-2", "10:00", ["Tuesday"])

    assert [l.title for l in service.roster.list_lectures("doctor-1")] == ["Algorithms"]
    assert len(service.roster.list_lectures()) == 2
    assert service.roster.get_lecture(lecture.id).schedule.days == ["Monday", "Wednesday"]


def test_add_student_accepts_json_descriptor(service, lecture):
    student = service.roster.add_student("Eve", lecture.id, json.dumps(make_descriptor(5).tolist()))

    stored = service.roster.get_student(student.id)
    assert np.allclose(stored.face_descriptor, make_descriptor(5))
    assert stored.to_dict()["has_descriptor"] is True


def test_add_student_validates_before_write(service, store, lecture):
    with pytest.raises(InvalidDescriptor):
        service.roster.add_student("Eve", lecture.id, [0.1] * 100)
    with pytest.raises(LectureNotFound):
        service.roster.add_student("Eve", "nowhere")
    with pytest.raises(InvalidInput):
        service.roster.add_student("  ", lecture.id)
    assert store.count("students") == 0


def test_update_descriptor(service, lecture, enrolled):
    carol = enrolled["carol"]
    updated = service.roster.update_descriptor(carol.id, make_descriptor(6).tolist())

    assert np.allclose(updated.face_descriptor, make_descriptor(6))
    assert set(service.roster.descriptor_snapshot(lecture.id).list_for_lecture(lecture.id)) == {
        enrolled["alice"].id, enrolled["bob"].id, carol.id
    }

    with pytest.raises(InvalidDescriptor):
        service.roster.update_descriptor(carol.id, "[1, 2, 3]")
    with pytest.raises(StudentNotFound):
        service.roster.update_descriptor("ghost", make_descriptor(6).tolist())


def test_delete_student_removes_image_and_keeps_ledger(service, lecture, tmp_path):
    image = tmp_path / "face.jpg"
    image.write_bytes(b"jpeg")
    student = service.roster.add_student("Frank", lecture.id, face_image=str(image))
    service.mark_manual_attendance(student.id, lecture.id, "present")

    service.roster.delete_student(student.id)

    assert not image.exists()
    with pytest.raises(StudentNotFound):
        service.roster.get_student(student.id)
    assert len(service.ledger.events_for_student(student.id)) == 1


def test_lecture_delete_forbidden_with_students(service, lecture, enrolled):
    with pytest.raises(LectureHasDependents):
        service.roster.delete_lecture(lecture.id)

    for student in enrolled.values():
        service.roster.delete_student(student.id)
    service.roster.delete_lecture(lecture.id)

    with pytest.raises(LectureNotFound):
        service.roster.get_lecture(lecture.id)
