"""
Face-recognition capture sessions.

A session loads the lecture's descriptors once and keeps the set of students
already marked, so repeated frames do not flood the ledger. Cancelling a
session stops further frames; marks already written stay.
"""
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from .models import utc_now
from .reconciliation import ReconciliationEngine
from .roster import Roster
from face_matching.face_matcher import FaceMatcher, MatchResult
from storage.base import new_document_id
from utils.config import config
from utils.errors import SessionClosed, SessionNotFound
from utils.logger import logger


@dataclass
class FrameOutcome:
    """What one frame of probes produced."""
    matches: List[MatchResult]
    events: list
    already_marked: List[str]
    unknown: int
    removed: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'matches': [m.to_dict() for m in self.matches],
            'events': [e.to_dict() for e in self.events],
            'already_marked': list(self.already_marked),
            'removed': list(self.removed),
            'unknown': self.unknown
        }


@dataclass
class CaptureSession:
    lecture_id: str
    engine: ReconciliationEngine
    matcher: FaceMatcher
    id: str = field(default_factory=new_document_id)
    seen: Set[str] = field(default_factory=set)
    started_at: object = field(default_factory=utc_now)
    frames: int = 0
    cancelled: bool = False
    # Held for the whole of a frame
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def open(cls, engine: ReconciliationEngine, roster: Roster, lecture_id: str,
             threshold: Optional[float] = None) -> "CaptureSession":
        snapshot = roster.descriptor_snapshot(lecture_id)
        threshold = engine.threshold if threshold is None else threshold
        matcher = FaceMatcher.for_lecture(snapshot, lecture_id, threshold)
        session = cls(lecture_id=lecture_id, engine=engine, matcher=matcher)
        logger.info(f"Opened capture session {session.id} for lecture {lecture_id} "
                    f"with {len(matcher)} enrolled descriptors")
        return session

    def process_frame(self, probes: Iterable) -> FrameOutcome:
        """Match every face in the frame and mark newly recognized students present.

        Frames of one session are processed one at a time. Students removed
        from the roster after the session opened are reported in ``removed``
        and never block the rest of the frame.
        """
        with self._lock:
            if self.cancelled:
                raise SessionClosed(self.id)

            start_time = time.time()
            matches = self.matcher.match_all(probes)
            seen_before = set(self.seen)
            events = self.engine.mark_from_recognition(
                self.lecture_id, matches, seen=self.seen, threshold=self.matcher.threshold
            )
            self.frames += 1

        marked_now = {event.student_id for event in events}
        already_marked = []
        removed = []
        unknown = 0
        for match in matches:
            if not match.is_known:
                unknown += 1
            elif match.label in marked_now:
                continue
            elif match.label in seen_before:
                if match.label not in already_marked:
                    already_marked.append(match.label)
            elif match.label not in removed:
                removed.append(match.label)

        logger.log_recognition_stats(
            self.lecture_id, len(matches), len(matches) - unknown, unknown, time.time() - start_time
        )
        return FrameOutcome(matches=matches, events=events, already_marked=already_marked,
                            unknown=unknown, removed=removed)

    def cancel(self):
        self.cancelled = True
        logger.info(f"Capture session {self.id} closed after {self.frames} frames, "
                    f"{len(self.seen)} students marked")

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lecture_id': self.lecture_id,
            'started_at': self.started_at.isoformat(),
            'frames': self.frames,
            'enrolled_descriptors': len(self.matcher),
            'marked': sorted(self.seen),
            'cancelled': self.cancelled
        }


class SessionRegistry:
    """Open capture sessions, oldest evicted first when the limit is reached."""

    def __init__(self, max_open_sessions: Optional[int] = None):
        self.max_open_sessions = max_open_sessions or config.session.max_open_sessions
        self._sessions: "OrderedDict[str, CaptureSession]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: CaptureSession) -> CaptureSession:
        with self._lock:
            while len(self._sessions) >= self.max_open_sessions:
                _, evicted = self._sessions.popitem(last=False)
                evicted.cancel()
                logger.warning(f"Evicted capture session {evicted.id}, session limit reached")
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> CaptureSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def close(self, session_id: str) -> CaptureSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        session.cancel()
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def list(self) -> List[CaptureSession]:
        with self._lock:
            return list(self._sessions.values())
