import pytest
from fastapi.testclient import TestClient

from api.api_server import create_app
from conftest import make_descriptor, offset


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def lecture_id(client):
    response = client.post("/api/lectures", json={
        "title": "Algorithms", "owner_id": "doctor-1", "time": "14:00 - 16:00", "days": ["Monday"]
    })
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def student_id(client, lecture_id):
    response = client.post("/api/students", json={
        "name": "Alice", "lecture_id": lecture_id, "face_descriptor": make_descriptor(1).tolist()
    })
    assert response.status_code == 201
    return response.json()["id"]


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_manual_marking_flow(client, lecture_id, student_id):
    for status in ["absent", "present"]:
        response = client.post("/api/attendance/manual", json={
            "student_id": student_id, "lecture_id": lecture_id, "status": status
        })
        assert response.status_code == 200
        assert response.json()["method"] == "manual"

    assert client.get(f"/api/attendance/lectures/{lecture_id}/status").json() == {student_id: "present"}

    history = client.get(f"/api/attendance/students/{student_id}/history").json()
    assert [h["status"] for h in history] == ["present", "absent"]
    assert history[0]["lecture_title"] == "Algorithms"


def test_recognition_reports_already_marked(client, lecture_id, student_id):
    probe = offset(make_descriptor(1), 0.3)
    opened = client.post("/api/attendance/sessions", json={"lecture_id": lecture_id})
    assert opened.status_code == 201
    session_id = opened.json()["id"]

    first = client.post(f"/api/attendance/sessions/{session_id}/frames", json={"probes": [probe]}).json()
    second = client.post(f"/api/attendance/sessions/{session_id}/frames", json={"probes": [probe]}).json()

    assert len(first["events"]) == 1
    assert second["events"] == []
    assert second["already_marked"] == [student_id]

    closed = client.delete(f"/api/attendance/sessions/{session_id}").json()
    assert closed["cancelled"] is True
    assert closed["marked"] == [student_id]

    response = client.post(f"/api/attendance/sessions/{session_id}/frames", json={"probes": [probe]})
    assert response.status_code == 404
    assert response.json()["error"] == "session_not_found"


def test_one_shot_recognition_and_report(client, lecture_id, student_id):
    client.post("/api/students", json={"name": "Bob", "lecture_id": lecture_id})
    response = client.post("/api/attendance/recognize", json={
        "lecture_id": lecture_id, "probes": [make_descriptor(1).tolist(), [9.0] * 128]
    })
    assert response.status_code == 200
    assert response.json()["unknown"] == 1

    report = client.get(f"/api/attendance/lectures/{lecture_id}/report").json()
    assert report == {
        "present": 1, "absent": 1, "total": 2, "percentage": 50,
        "by_method": {"manual": 0, "face": 1},
    }

    rows = client.get(f"/api/attendance/lectures/{lecture_id}").json()
    assert {r["student_name"]: r["status"] for r in rows} == {"Alice": "present", "Bob": "absent"}


def test_error_kinds(client, lecture_id, student_id):
    response = client.post("/api/attendance/manual", json={
        "student_id": "ghost", "lecture_id": lecture_id, "status": "present"
    })
    assert response.status_code == 404
    assert response.json()["error"] == "student_not_found"

    response = client.get("/api/attendance/lectures/nowhere/report")
    assert response.status_code == 404
    assert response.json()["error"] == "lecture_not_found"

    response = client.post("/api/attendance/recognize", json={"lecture_id": lecture_id, "probes": [[0.1] * 5]})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_probe"

    response = client.put(f"/api/students/{student_id}/descriptor", json={"face_descriptor": [0.1] * 3})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_descriptor"

    response = client.delete(f"/api/lectures/{lecture_id}")
    assert response.status_code == 409

    response = client.post("/api/attendance/manual", json={
        "student_id": student_id, "lecture_id": lecture_id, "status": "late"
    })
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_status"


def test_status_is_normalized(client, lecture_id, student_id):
    response = client.post("/api/attendance/manual", json={
        "student_id": student_id, "lecture_id": lecture_id, "status": " Present "
    })
    assert response.status_code == 200
    assert response.json()["status"] == "present"

    response = client.post("/api/attendance/manual", json={"student_id": student_id, "lecture_id": lecture_id})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_status"


def test_malformed_bodies_carry_error_kind(client, lecture_id, student_id):
    response = client.post("/api/attendance/recognize", json={
        "lecture_id": lecture_id, "probes": [["a"] * 128]
    })
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_probe"

    response = client.post("/api/attendance/manual", json={"lecture_id": lecture_id, "status": "present"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "invalid_input"
    assert body["detail"]["errors"][0]["loc"] == ["body", "student_id"]

    response = client.post("/api/attendance/recognize", json={"lecture_id": lecture_id, "probes": "nope"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


def test_student_crud(client, lecture_id, student_id):
    assert client.get(f"/api/students/{student_id}").json()["has_descriptor"] is True
    assert len(client.get(f"/api/lectures/{lecture_id}/students").json()) == 1

    response = client.put(f"/api/students/{student_id}/descriptor",
                          json={"face_descriptor": make_descriptor(2).tolist()})
    assert response.status_code == 200

    assert client.delete(f"/api/students/{student_id}").status_code == 200
    assert client.get(f"/api/students/{student_id}").status_code == 404
    assert client.delete(f"/api/lectures/{lecture_id}").status_code == 200


def test_stats(client, lecture_id, student_id):
    body = client.get("/api/stats").json()
    assert body["open_sessions"] == 0
    assert "attendance" in body
