"""
REST API for the lecture attendance system.
Authentication is handled upstream; every caller here is already authorized.
"""
import time
from typing import Any, List, Optional

import uvicorn
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from attendance.service import AttendanceService
from utils.config import config
from utils.errors import (
    AttendanceError, InvalidInput, LectureHasDependents, NotFoundError, StorageFailure,
)
from utils.logger import logger


# Pydantic models for API with validation
class LectureRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    owner_id: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1, description="e.g. 14:00 - 16:00")
    days: List[str] = Field(..., min_length=1)


class StudentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    lecture_id: str = Field(..., min_length=1)
    face_descriptor: Optional[Any] = None
    face_image: Optional[str] = None


class DescriptorRequest(BaseModel):
    face_descriptor: Any = None


class ManualAttendanceRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    lecture_id: str = Field(..., min_length=1)
    status: Optional[str] = Field(None, description="present or absent")


class RecognitionRequest(BaseModel):
    lecture_id: str = Field(..., min_length=1)
    probes: List[Any] = Field(default_factory=list)


class SessionRequest(BaseModel):
    lecture_id: str = Field(..., min_length=1)
    threshold: Optional[float] = Field(None, gt=0.0, le=2.0)


class FrameRequest(BaseModel):
    probes: List[Any] = Field(default_factory=list)


def status_code_for(error: AttendanceError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, LectureHasDependents):
        return 409
    if isinstance(error, InvalidInput):
        return 400
    if isinstance(error, StorageFailure):
        return 503
    return 500


def create_app(service: Optional[AttendanceService] = None) -> FastAPI:
    """Build the FastAPI application around an AttendanceService."""
    service = service or AttendanceService()

    app = FastAPI(
        title="Lecture Attendance API",
        description="Manual and face-recognition attendance for lectures",
        version="1.0.0"
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(request, exc: AttendanceError):
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        logger.info(f"{request.method} {request.url.path} rejected: malformed request body")
        return JSONResponse(status_code=400, content={
            "error": "invalid_input",
            "message": "Request failed validation",
            "detail": {"errors": jsonable_encoder(exc.errors())}
        })

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "timestamp": time.time()}

    # Lectures

    @app.post("/api/lectures", status_code=201)
    def create_lecture(body: LectureRequest):
        lecture = service.roster.create_lecture(body.title, body.owner_id, body.time, body.days)
        return lecture.to_dict()

    @app.get("/api/lectures")
    def list_lectures(owner_id: Optional[str] = Query(None)):
        return [lecture.to_dict() for lecture in service.roster.list_lectures(owner_id)]

    @app.get("/api/lectures/{lecture_id}")
    def get_lecture(lecture_id: str):
        return service.roster.get_lecture(lecture_id).to_dict()

    @app.delete("/api/lectures/{lecture_id}")
    def delete_lecture(lecture_id: str):
        service.roster.delete_lecture(lecture_id)
        return {"message": "Lecture removed"}

    @app.get("/api/lectures/{lecture_id}/students")
    def list_students(lecture_id: str):
        return [student.to_dict() for student in service.roster.list_students(lecture_id)]

    # Students

    @app.post("/api/students", status_code=201)
    def add_student(body: StudentRequest):
        student = service.roster.add_student(
            body.name, body.lecture_id, body.face_descriptor, body.face_image
        )
        return student.to_dict()

    @app.get("/api/students/{student_id}")
    def get_student(student_id: str):
        return service.roster.get_student(student_id).to_dict()

    @app.put("/api/students/{student_id}/descriptor")
    def update_descriptor(student_id: str, body: DescriptorRequest):
        return service.roster.update_descriptor(student_id, body.face_descriptor).to_dict()

    @app.delete("/api/students/{student_id}")
    def delete_student(student_id: str):
        service.roster.delete_student(student_id)
        return {"message": "Student removed"}

    # Attendance

    @app.post("/api/attendance/manual")
    def mark_manual(body: ManualAttendanceRequest):
        event = service.mark_manual_attendance(body.student_id, body.lecture_id, body.status)
        return event.to_dict()

    @app.post("/api/attendance/recognize")
    def recognize(body: RecognitionRequest):
        return service.recognize(body.lecture_id, body.probes).to_dict()

    @app.post("/api/attendance/sessions", status_code=201)
    def open_session(body: SessionRequest):
        return service.open_capture_session(body.lecture_id, body.threshold).to_dict()

    @app.post("/api/attendance/sessions/{session_id}/frames")
    def submit_frame(session_id: str, body: FrameRequest):
        return service.submit_frame(session_id, body.probes).to_dict()

    @app.delete("/api/attendance/sessions/{session_id}")
    def close_session(session_id: str):
        return service.close_capture_session(session_id).to_dict()

    @app.get("/api/attendance/lectures/{lecture_id}")
    def lecture_attendance(lecture_id: str):
        return service.get_lecture_attendance(lecture_id)

    @app.get("/api/attendance/lectures/{lecture_id}/status")
    def current_status(lecture_id: str):
        return service.get_current_status(lecture_id)

    @app.get("/api/attendance/lectures/{lecture_id}/report")
    def attendance_report(lecture_id: str):
        return service.get_report(lecture_id)

    @app.get("/api/attendance/students/{student_id}/history")
    def student_history(student_id: str):
        return service.get_history_records(student_id)

    @app.get("/api/stats")
    def get_stats(hours: int = Query(24, ge=1, le=24 * 30)):
        return {
            'attendance': logger.get_attendance_summary(hours),
            'open_sessions': len(service.sessions),
            'logging': logger.get_log_statistics()
        }

    return app


def run_server(service: Optional[AttendanceService] = None, host: Optional[str] = None,
               port: Optional[int] = None):
    """Run the API with uvicorn (blocking)."""
    host = host or config.api.host
    port = port or config.api.port
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run(create_app(service), host=host, port=port, log_level="info")
