"""
In-memory store of enrolled reference descriptors, scoped by lecture.
"""
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import numpy as np

from .descriptor import parse_descriptor
from utils.logger import logger


@dataclass(frozen=True)
class Identity:
    """An enrolled student. The same name in another lecture is another identity."""
    student_id: str
    lecture_id: str


class DescriptorStore:
    """One reference descriptor per enrolled identity."""

    def __init__(self):
        self._descriptors: Dict[str, np.ndarray] = {}
        self._identities: Dict[str, Identity] = {}
        self._lock = threading.Lock()

    def add(self, identity: Identity, descriptor: Any) -> np.ndarray:
        """Validate and store ``descriptor`` for ``identity``, replacing any previous one."""
        vector = parse_descriptor(descriptor)
        with self._lock:
            self._descriptors[identity.student_id] = vector
            self._identities[identity.student_id] = identity
        return vector

    def get(self, student_id: str) -> Optional[np.ndarray]:
        with self._lock:
            return self._descriptors.get(student_id)

    def remove(self, student_id: str) -> bool:
        with self._lock:
            self._identities.pop(student_id, None)
            return self._descriptors.pop(student_id, None) is not None

    def list_for_lecture(self, lecture_id: str) -> Dict[str, np.ndarray]:
        """Return ``{student_id: descriptor}`` for every identity enrolled in the lecture."""
        with self._lock:
            return {
                student_id: self._descriptors[student_id]
                for student_id, identity in self._identities.items()
                if identity.lecture_id == lecture_id
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)

    def __contains__(self, student_id: str) -> bool:
        with self._lock:
            return student_id in self._descriptors

    @classmethod
    def from_students(cls, students: Iterable) -> "DescriptorStore":
        """Build a snapshot from stored students, skipping those without a descriptor."""
        store = cls()
        skipped = 0
        for student in students:
            if student.face_descriptor is None:
                skipped += 1
                continue
            store.add(Identity(student.id, student.lecture_id), student.face_descriptor)
        if skipped:
            logger.debug(f"Descriptor snapshot skipped {skipped} students without descriptors")
        return store
