"""Document storage backends for the attendance system."""
from .base import DocumentStore
from .memory_store import MemoryStore
from .sqlite_store import SQLiteStore
from utils.config import config


def create_store(backend: str = None, db_path: str = None) -> DocumentStore:
    """Build the configured document store."""
    backend = backend or config.storage.backend
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SQLiteStore(db_path or config.storage.db_path)
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = ['DocumentStore', 'MemoryStore', 'SQLiteStore', 'create_store']
