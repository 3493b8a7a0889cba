"""
SQLite-backed document store.

All collections share one table; documents are stored as JSON text and the
AUTOINCREMENT rowid doubles as the insertion sequence.
"""
import json
import logging
import sqlite3
import threading
from typing import Any, Dict, List, Optional

from .base import DocumentStore, new_document_id
from utils.errors import StorageFailure

logger = logging.getLogger(__name__)

# Fields the attendance queries filter on
INDEXED_FIELDS = ("lecture_id", "student_id")


class SQLiteStore(DocumentStore):
    """Document store on a single SQLite connection guarded by a lock."""

    def __init__(self, db_path: str = "attendance.db"):
        self.db_path = db_path
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not open database {db_path}: {e}")
        self.init_database()

    def init_database(self):
        """Create the documents table."""
        with self._lock:
            try:
                self._conn.execute('''
                    CREATE TABLE IF NOT EXISTS documents (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        collection TEXT NOT NULL,
                        doc_id TEXT NOT NULL,
                        body TEXT NOT NULL,
                        UNIQUE(collection, doc_id)
                    )
                ''')
                self._conn.execute(
                    'CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection)'
                )
                for field in INDEXED_FIELDS:
                    self._conn.execute(
                        f"CREATE INDEX IF NOT EXISTS idx_documents_{field} "
                        f"ON documents(collection, json_extract(body, '$.{field}'))"
                    )
            except sqlite3.Error as e:
                logger.error(f"Error initializing document database: {e}")
                raise StorageFailure(f"Could not initialize database: {e}")
        logger.info(f"Document database ready at {self.db_path}")

    @staticmethod
    def _decode(seq: int, body: str) -> Dict[str, Any]:
        document = json.loads(body)
        document["_seq"] = seq
        return document

    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        stored = {k: v for k, v in document.items() if k != "_seq"}
        stored.setdefault("id", new_document_id())
        body = json.dumps(stored)
        with self._lock:
            try:
                cursor = self._conn.execute(
                    'INSERT INTO documents (collection, doc_id, body) VALUES (?, ?, ?)',
                    (collection, stored["id"], body)
                )
            except sqlite3.IntegrityError:
                raise ValueError(f"Duplicate id {stored['id']} in {collection}")
            except sqlite3.Error as e:
                logger.error(f"Insert into {collection} failed: {e}")
                raise StorageFailure(f"Insert into {collection} failed: {e}")
        stored["_seq"] = cursor.lastrowid
        return stored

    def find(self, collection: str, **query: Any) -> List[Dict[str, Any]]:
        sql = 'SELECT seq, body FROM documents WHERE collection = ?'
        params: list = [collection]
        for key, value in query.items():
            if key == "id":
                sql += ' AND doc_id = ?'
                params.append(value)
            elif key.isidentifier() and isinstance(value, (str, int, float)) and not isinstance(value, bool):
                sql += f" AND json_extract(body, '$.{key}') = ?"
                params.append(value)
        sql += ' ORDER BY seq'

        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error(f"Query on {collection} failed: {e}")
                raise StorageFailure(f"Query on {collection} failed: {e}")

        # Values SQL cannot compare exactly (bools, None, nested) are filtered here
        documents = [self._decode(seq, body) for seq, body in rows]
        return [
            doc for doc in documents
            if all(doc.get(key) == value for key, value in query.items())
        ]

    def update(self, collection: str, document_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            try:
                self._conn.execute('BEGIN IMMEDIATE')
                row = self._conn.execute(
                    'SELECT seq, body FROM documents WHERE collection = ? AND doc_id = ?',
                    (collection, document_id)
                ).fetchone()
                if row is None:
                    self._conn.execute('ROLLBACK')
                    return None
                document = json.loads(row[1])
                document.update({k: v for k, v in fields.items() if k not in ("id", "_seq")})
                self._conn.execute(
                    'UPDATE documents SET body = ? WHERE seq = ?',
                    (json.dumps(document), row[0])
                )
                self._conn.execute('COMMIT')
            except sqlite3.Error as e:
                if self._conn.in_transaction:
                    self._conn.execute('ROLLBACK')
                logger.error(f"Update of {collection}/{document_id} failed: {e}")
                raise StorageFailure(f"Update of {collection}/{document_id} failed: {e}")
        document["_seq"] = row[0]
        return document

    def delete(self, collection: str, document_id: str) -> bool:
        with self._lock:
            try:
                cursor = self._conn.execute(
                    'DELETE FROM documents WHERE collection = ? AND doc_id = ?',
                    (collection, document_id)
                )
            except sqlite3.Error as e:
                logger.error(f"Delete of {collection}/{document_id} failed: {e}")
                raise StorageFailure(f"Delete of {collection}/{document_id} failed: {e}")
        return cursor.rowcount > 0

    def close(self):
        with self._lock:
            self._conn.close()
