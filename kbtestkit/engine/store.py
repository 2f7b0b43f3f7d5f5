"""
SQLite document store backing one engine instance

Writes go through a writer connection whose open transaction holds pending
mutations; queries read through a separate connection and therefore only see
what has been committed.
"""
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

INDEX_FILE = "index.db"


@dataclass
class StoredDocument:
    """A document as held by the store, fields in insertion order"""
    doc_id: int
    fields: List[Tuple[str, str]] = field(default_factory=list)

    def values(self, name: str) -> List[str]:
        """All values of a field, in order"""
        return [value for field_name, value in self.fields if field_name == name]

    def field_names(self) -> List[str]:
        """Distinct field names in order of first appearance"""
        seen = []
        for field_name, _ in self.fields:
            if field_name not in seen:
                seen.append(field_name)
        return seen


class DocumentStore:
    """Stores documents as ordered (name, value) rows"""

    def __init__(self, data_dir: Path):
        self.path = Path(data_dir) / INDEX_FILE
        self.writer: Optional[sqlite3.Connection] = None
        self.reader: Optional[sqlite3.Connection] = None

    def open(self) -> 'DocumentStore':
        """Open connections and create schema"""
        self.writer = self._connect()
        self._create_schema()
        self.reader = self._connect()
        return self

    def _connect(self) -> sqlite3.Connection:
        """Create SQLite connection"""
        conn = sqlite3.connect(str(self.path))
        # WAL lets the reader see the last committed state while writes are pending
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _create_schema(self):
        """Create all required tables"""
        self.writer.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                doc_key TEXT
            )
        """)
        self.writer.execute("""
            CREATE TABLE IF NOT EXISTS fields (
                document_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                value TEXT NOT NULL,
                FOREIGN KEY (document_id)
                    REFERENCES documents(id)
                    ON DELETE CASCADE
            )
        """)
        self.writer.execute(
            "CREATE INDEX IF NOT EXISTS idx_documents_key ON documents(doc_key)"
        )
        self.writer.commit()

    def add(self, fields: Sequence[Tuple[str, str]], key: Optional[str] = None,
            overwrite: bool = True) -> int:
        """Add a pending document, replacing any document with the same key"""
        if key is not None and overwrite:
            self.delete_by_key(key)
        cursor = self.writer.execute(
            "INSERT INTO documents (doc_key) VALUES (?)", (key,)
        )
        doc_id = cursor.lastrowid
        self.writer.executemany(
            "INSERT INTO fields (document_id, position, name, value) VALUES (?, ?, ?, ?)",
            [(doc_id, position, name, value) for position, (name, value) in enumerate(fields)]
        )
        return doc_id

    def delete_by_key(self, key: str) -> int:
        """Delete documents by unique key, returns count deleted"""
        cursor = self.writer.execute("DELETE FROM documents WHERE doc_key = ?", (key,))
        return cursor.rowcount

    def delete_ids(self, doc_ids: Iterable[int]) -> int:
        """Delete documents by internal id, returns count deleted"""
        ids = [(doc_id,) for doc_id in doc_ids]
        if not ids:
            return 0
        self.writer.executemany("DELETE FROM documents WHERE id = ?", ids)
        return len(ids)

    def load_documents(self, include_pending: bool = False) -> List[StoredDocument]:
        """Load every document in insertion order.

        include_pending reads through the writer connection, so uncommitted
        mutations are visible (used by delete-by-query).
        """
        conn = self.writer if include_pending else self.reader
        rows = conn.execute("""
            SELECT d.id, f.name, f.value
            FROM documents d
            LEFT JOIN fields f ON f.document_id = d.id
            ORDER BY d.id, f.position
        """)
        documents: List[StoredDocument] = []
        for doc_id, name, value in rows:
            if not documents or documents[-1].doc_id != doc_id:
                documents.append(StoredDocument(doc_id=doc_id))
            if name is not None:
                documents[-1].fields.append((name, value))
        return documents

    def commit(self):
        """Make pending mutations visible to readers"""
        self.writer.commit()

    def rollback(self):
        """Discard pending mutations"""
        self.writer.rollback()

    def optimize(self):
        """Commit and compact the database file"""
        self.writer.commit()
        self.writer.execute("VACUUM")

    def close(self):
        """Close connections. Pending mutations are discarded."""
        for conn in (self.reader, self.writer):
            if conn is not None:
                conn.close()
        self.reader = None
        self.writer = None
        logger.debug(f"Closed document store {self.path}")
