"""
Face descriptor parsing and distance.

Descriptors arrive as JSON strings, lists or numpy arrays. They are parsed
once at ingestion into a read-only float64 vector of fixed length.
"""
import json
from typing import Any, Type

import numpy as np

from utils.config import DESCRIPTOR_LENGTH
from utils.errors import InvalidDescriptor, InvalidInput


def parse_descriptor(value: Any, error_cls: Type[InvalidInput] = InvalidDescriptor) -> np.ndarray:
    """Validate ``value`` and return it as a read-only 128-d float vector.

    Args:
        value: JSON string, sequence of numbers or numpy array.
        error_cls: Exception raised on failure (``InvalidProbe`` for probes).

    Raises:
        InvalidDescriptor: missing, non-numeric, non-finite or wrong length.
    """
    if value is None:
        raise error_cls("Face descriptor is missing")

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise error_cls(f"Face descriptor is not valid JSON: {e}")

    if isinstance(value, dict) or np.isscalar(value):
        raise error_cls("Face descriptor must be a sequence of numbers")

    if not isinstance(value, np.ndarray):
        if any(isinstance(v, (bool, str, bytes)) or v is None for v in value):
            raise error_cls("Face descriptor must contain only numbers")

    try:
        vector = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise error_cls(f"Face descriptor must contain only numbers: {e}")

    if vector.ndim != 1 or vector.shape[0] != DESCRIPTOR_LENGTH:
        raise error_cls(
            f"Face descriptor must have exactly {DESCRIPTOR_LENGTH} components, got shape {vector.shape}",
            {"expected": DESCRIPTOR_LENGTH, "shape": list(vector.shape)},
        )

    if not np.all(np.isfinite(vector)):
        raise error_cls("Face descriptor contains NaN or infinite values")

    vector = vector.copy()
    vector.setflags(write=False)
    return vector


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance between two descriptors."""
    return float(np.linalg.norm(a - b))


def descriptor_to_list(vector: np.ndarray) -> list:
    """Plain list form used when a descriptor is written to storage."""
    return [float(v) for v in vector]
