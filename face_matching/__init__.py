"""Face descriptor storage and matching for the attendance system."""
from .descriptor import parse_descriptor, euclidean_distance
from .descriptor_store import DescriptorStore, Identity
from .face_matcher import FaceMatcher, MatchResult, UNKNOWN_LABEL
__all__ = ['parse_descriptor', 'euclidean_distance', 'DescriptorStore', 'Identity',
           'FaceMatcher', 'MatchResult', 'UNKNOWN_LABEL']
