"""
Document store interface consumed by the attendance core.

Documents are plain dicts. The store assigns ``id`` (when absent) and
``_seq``, a monotonically increasing insertion counter shared by all
collections. Queries are exact matches on top-level fields. Only single
document writes are atomic.
"""
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


def new_document_id() -> str:
    return uuid.uuid4().hex


class DocumentStore(ABC):
    """Minimal key-value store with query-by-field."""

    @abstractmethod
    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document and return it with ``id`` and ``_seq`` set."""

    @abstractmethod
    def find(self, collection: str, **query: Any) -> List[Dict[str, Any]]:
        """All documents matching ``query``, in insertion order."""

    @abstractmethod
    def update(self, collection: str, document_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge ``fields`` into a document. Returns the new document or None if missing."""

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> bool:
        """Remove a document. Returns False if it did not exist."""

    def find_one(self, collection: str, **query: Any) -> Optional[Dict[str, Any]]:
        results = self.find(collection, **query)
        return results[0] if results else None

    def find_by_id(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        return self.find_one(collection, id=document_id)

    def count(self, collection: str, **query: Any) -> int:
        return len(self.find(collection, **query))

    def close(self):
        """Release backend resources."""
