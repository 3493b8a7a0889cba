"""
Logging utilities for the attendance system.
Main application log plus a separate attendance log for ledger events.
"""
import logging
import json
import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional


class AttendanceLogger:
    """Application logger with an attendance event trail."""

    def __init__(self, name: str = "attendance_system"):
        self.logger = logging.getLogger(name)
        self._setup_logger()

        self.attendance_logger = self._setup_attendance_logger()
        self.attendance_events: List[Dict] = []
        self.max_attendance_events = 1000
        self._events_lock = threading.Lock()

        # Async logging queue so request handlers do not block on I/O
        self.log_queue = queue.Queue(maxsize=1000)
        self.log_worker_thread = threading.Thread(target=self._log_worker, daemon=True)
        self.log_worker_thread.start()

        self.logger.debug("Attendance logger initialized")

    def _setup_logger(self):
        """Setup logging handlers."""
        # Imported here to avoid a circular import
        from utils.config import config

        log_level = getattr(logging, config.logging.log_level.upper(), logging.INFO)

        self.logger.handlers.clear()
        self.logger.setLevel(log_level)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        self.logger.addHandler(console_handler)

        if config.logging.log_to_file:
            try:
                log_dir = Path(config.logging.output_dir) / "logs"
                log_dir.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_dir / "attendance_system.log", encoding='utf-8')
                file_handler.setFormatter(formatter)
                file_handler.setLevel(log_level)
                self.logger.addHandler(file_handler)
            except OSError as e:
                self.logger.warning(f"Could not setup file logging: {e}")

        self.logger.propagate = False

    def _setup_attendance_logger(self) -> logging.Logger:
        """Setup separate logger for attendance ledger events."""
        from utils.config import config

        attendance_logger = logging.getLogger("attendance_ledger")
        attendance_logger.handlers.clear()
        attendance_logger.setLevel(logging.INFO)
        attendance_logger.propagate = False

        if config.logging.log_to_file:
            formatter = logging.Formatter(
                '%(asctime)s - ATTENDANCE - %(levelname)s - %(message)s'
            )
            try:
                log_file_path = Path(config.logging.output_dir) / "logs" / "attendance.log"
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                handler = logging.FileHandler(log_file_path, encoding='utf-8')
                handler.setFormatter(formatter)
                attendance_logger.addHandler(handler)
            except OSError as e:
                self.logger.warning(f"Could not setup attendance file logging: {e}")
        else:
            attendance_logger.addHandler(logging.NullHandler())

        self.max_attendance_events = config.logging.max_attendance_events
        return attendance_logger

    def _log_worker(self):
        """Background worker for async logging."""
        while True:
            try:
                log_entry = self.log_queue.get(timeout=1.0)
            except queue.Empty:
                continue
            if log_entry is None:  # Shutdown signal
                break
            level, message, kwargs = log_entry
            getattr(self.logger, level)(message, **kwargs)

    def _async_log(self, level: str, message: str, **kwargs):
        try:
            self.log_queue.put_nowait((level, message, kwargs))
        except queue.Full:
            getattr(self.logger, level)(message, **kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._async_log('debug', message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._async_log('info', message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._async_log('warning', message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message synchronously."""
        self.logger.error(message, **kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message synchronously."""
        self.logger.critical(message, **kwargs)

    def log_event(self, event_type: str, details: dict):
        """Log a system event with structured details."""
        self.info(f"EVENT: {event_type} | {json.dumps(details, default=str)}")

    def log_attendance_event(self, student_id: str, lecture_id: str, status: str,
                             method: str, details: Optional[Dict] = None):
        """Record a ledger write in the attendance log and the recent events buffer."""
        event_details = details or {}
        attendance_event = {
            'timestamp': datetime.now().isoformat(),
            'student_id': student_id,
            'lecture_id': lecture_id,
            'status': status,
            'method': method,
            'details': event_details
        }

        with self._events_lock:
            self.attendance_events.append(attendance_event)
            if len(self.attendance_events) > self.max_attendance_events:
                self.attendance_events = self.attendance_events[-self.max_attendance_events:]

        message = f"Student: {student_id} | Lecture: {lecture_id} | Status: {status} | Method: {method}"
        if event_details:
            message += f" | Details: {json.dumps(event_details, default=str)}"
        self.attendance_logger.info(message)

    def log_recognition_stats(self, lecture_id: str, total_faces: int, matched: int,
                              unknown: int, processing_time: float):
        """Log per-frame recognition statistics."""
        self.debug(
            f"Recognition stats - Lecture: {lecture_id}, Faces: {total_faces}, "
            f"Matched: {matched}, Unknown: {unknown}, Time: {processing_time:.3f}s"
        )

    def get_recent_attendance_events(self, hours: int = 24) -> List[Dict]:
        """Get recent attendance events within specified hours."""
        cutoff_time = datetime.now().timestamp() - (hours * 3600)
        with self._events_lock:
            return [
                event.copy() for event in self.attendance_events
                if datetime.fromisoformat(event['timestamp']).timestamp() >= cutoff_time
            ]

    def get_attendance_summary(self, hours: int = 24) -> Dict:
        """Summarize logged attendance writes for the given time period."""
        recent_events = self.get_recent_attendance_events(hours)

        method_counts: Dict[str, int] = {}
        lectures = set()
        students = set()
        for event in recent_events:
            method_counts[event['method']] = method_counts.get(event['method'], 0) + 1
            lectures.add(event['lecture_id'])
            students.add(event['student_id'])

        return {
            'time_period_hours': hours,
            'total_events': len(recent_events),
            'unique_students': len(students),
            'unique_lectures': len(lectures),
            'method_counts': method_counts,
            'last_updated': datetime.now().isoformat()
        }

    def get_log_statistics(self) -> Dict:
        """Get logging system statistics."""
        with self._events_lock:
            attendance_events_count = len(self.attendance_events)
        return {
            'attendance_events_count': attendance_events_count,
            'log_queue_size': self.log_queue.qsize(),
            'worker_alive': self.log_worker_thread.is_alive()
        }

    def shutdown(self):
        """Flush the async queue and stop the worker."""
        self.log_queue.put(None)
        if self.log_worker_thread.is_alive():
            self.log_worker_thread.join(timeout=5.0)
        for handler in self.logger.handlers + self.attendance_logger.handlers:
            handler.flush()


# Global logger instance
try:
    logger = AttendanceLogger()
except Exception as e:
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger("attendance_fallback")
    logger.error(f"Failed to initialize attendance logger: {e}")
