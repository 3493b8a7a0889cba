"""
In-memory document store. Used for tests and single-process deployments.
"""
import copy
import itertools
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional

from .base import DocumentStore, new_document_id

logger = logging.getLogger(__name__)


class MemoryStore(DocumentStore):
    """Thread-safe dict-of-dicts store. Each write holds the lock for one document."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()

    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(document)
        stored.setdefault("id", new_document_id())
        with self._lock:
            if stored["id"] in self._collections[collection]:
                raise ValueError(f"Duplicate id {stored['id']} in {collection}")
            stored["_seq"] = next(self._sequence)
            self._collections[collection][stored["id"]] = stored
        logger.debug(f"Inserted {collection}/{stored['id']}")
        return copy.deepcopy(stored)

    def find(self, collection: str, **query: Any) -> List[Dict[str, Any]]:
        with self._lock:
            documents = list(self._collections.get(collection, {}).values())
            matches = [
                copy.deepcopy(doc) for doc in documents
                if all(doc.get(key) == value for key, value in query.items())
            ]
        matches.sort(key=lambda doc: doc["_seq"])
        return matches

    def find_by_id(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._collections.get(collection, {}).get(document_id)
            return copy.deepcopy(document) if document is not None else None

    def update(self, collection: str, document_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._collections.get(collection, {}).get(document_id)
            if document is None:
                return None
            document.update(copy.deepcopy({k: v for k, v in fields.items() if k not in ("id", "_seq")}))
            return copy.deepcopy(document)

    def delete(self, collection: str, document_id: str) -> bool:
        with self._lock:
            return self._collections.get(collection, {}).pop(document_id, None) is not None
