import os

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from attendance.service import AttendanceService
from storage.memory_store import MemoryStore


class FakeClock:
    """Advances by ``step`` on every call so each ledger write gets a later timestamp."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


def make_descriptor(seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(0.0, 0.1, size=128)


def offset(descriptor, distance: float) -> list:
    """A probe exactly ``distance`` away from ``descriptor`` along the first axis."""
    probe = np.array(descriptor, dtype=float)
    probe[0] += distance
    return probe.tolist()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, clock):
    return AttendanceService(store=store, clock=clock, threshold=0.6)


@pytest.fixture
def lecture(service):
    return service.roster.create_lecture("Algorithms", "doctor-1", "14:00 - 16:00", ["Monday", "Wednesday"])


@pytest.fixture
def enrolled(service, lecture):
    """Three students in the lecture, two of them with descriptors."""
    alice = service.roster.add_student("Alice", lecture.id, make_descriptor(1).tolist())
    bob = service.roster.add_student("Bob", lecture.id, make_descriptor(2).tolist())
    carol = service.roster.add_student("Carol", lecture.id)
    return {"alice": alice, "bob": bob, "carol": carol}
