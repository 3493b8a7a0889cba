"""
Face matching module for the attendance system.
Resolves probe embeddings to the closest enrolled student of a lecture.
"""
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np

from .descriptor import parse_descriptor
from .descriptor_store import DescriptorStore
from utils.config import config
from utils.errors import InvalidInput, InvalidProbe

UNKNOWN_LABEL = "unknown"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one recognition attempt."""
    label: str
    distance: float

    @property
    def is_known(self) -> bool:
        return self.label != UNKNOWN_LABEL

    def to_dict(self) -> dict:
        return {
            'label': self.label,
            'distance': self.distance if math.isfinite(self.distance) else None
        }


class FaceMatcher:
    """Nearest-neighbour matcher over a fixed set of reference descriptors.

    The reference set is copied at construction, so a matcher is a snapshot:
    students enrolled afterwards are only seen by a new matcher.
    """

    def __init__(self, references: Dict[str, np.ndarray], threshold: Optional[float] = None):
        self.threshold = config.face.tolerance if threshold is None else float(threshold)
        if not self.threshold > 0:
            raise InvalidInput(f"Match threshold must be positive, got {self.threshold}")

        # Sorted so argmin picks the lowest student id on equal distances
        self.labels: List[str] = sorted(references)
        if self.labels:
            self.reference_matrix = np.vstack([references[label] for label in self.labels])
        else:
            self.reference_matrix = np.empty((0, 0))

    @classmethod
    def for_lecture(cls, store: DescriptorStore, lecture_id: str,
                    threshold: Optional[float] = None) -> "FaceMatcher":
        return cls(store.list_for_lecture(lecture_id), threshold)

    def __len__(self) -> int:
        return len(self.labels)

    def distances(self, probe) -> np.ndarray:
        """Euclidean distance from ``probe`` to every reference, in label order."""
        return self._distances(parse_descriptor(probe, error_cls=InvalidProbe))

    def _distances(self, vector: np.ndarray) -> np.ndarray:
        if not self.labels:
            return np.empty(0)
        return np.linalg.norm(self.reference_matrix - vector, axis=1)

    def match(self, probe) -> MatchResult:
        """Match a single probe embedding.

        Raises:
            InvalidProbe: probe is not a valid 128-d vector.
        """
        return self._match_vector(parse_descriptor(probe, error_cls=InvalidProbe))

    def _match_vector(self, vector: np.ndarray) -> MatchResult:
        face_distances = self._distances(vector)
        if face_distances.size == 0:
            return MatchResult(UNKNOWN_LABEL, math.inf)

        best_match_index = int(np.argmin(face_distances))
        best_distance = float(face_distances[best_match_index])

        if best_distance < self.threshold:
            return MatchResult(self.labels[best_match_index], best_distance)
        return MatchResult(UNKNOWN_LABEL, best_distance)

    def match_all(self, probes: Iterable) -> List[MatchResult]:
        """Match every face of a frame independently.

        All probes are validated before any is matched.
        """
        vectors = [parse_descriptor(probe, error_cls=InvalidProbe) for probe in probes]
        return [self._match_vector(vector) for vector in vectors]
