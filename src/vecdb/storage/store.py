"""SQLite-backed metadata store: documents, statistics and import records."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from vecdb.errors import NotInitializedError
from vecdb.models import (
    ChunkMetadata,
    DatabaseStats,
    Document,
    DocumentVectorStats,
    ImportOperation,
    ImportSettings,
)
from vecdb.models.statistics import COMPLETED, FAILED, RUNNING
from vecdb.storage.schema import SCHEMA

logger = logging.getLogger(__name__)


def now() -> str:
    return datetime.now().isoformat()


class MetadataStore:
    """Durable source of truth for documents and corpus statistics.

    Holds one connection for its lifetime. Mutating methods join an
    enclosing :meth:`transaction` when there is one, so a caller can commit
    several statements (or a statement plus an index insert) as a unit.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotInitializedError("Metadata store is not open")
        return self._conn

    def initialize(self) -> None:
        """Open the database and create the schema if needed."""
        if self._conn is not None:
            return
        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.executescript(SCHEMA)
        self._conn = conn
        logger.info(f"Opened metadata store {self.path}")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Metadata store closed")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error. Nested calls join the outer one."""
        conn = self.connection
        if self._depth:
            self._depth += 1
            try:
                yield conn
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._depth = 0

    # Documents

    def find_document_by_hash(self, content_hash: str) -> Optional[Document]:
        row = self.connection.execute(
            "SELECT * FROM documents WHERE content_hash = ?", (content_hash,)
        ).fetchone()
        return Document.from_row(row) if row else None

    def insert_document(self, content: str, meta: ChunkMetadata, content_hash: str) -> int:
        """Insert a document row and return its id."""
        timestamp = now()
        with self.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO documents
                   (content, source, type, title, category, content_hash, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    content,
                    meta.source,
                    meta.type,
                    meta.title,
                    meta.category,
                    content_hash,
                    timestamp,
                    timestamp,
                ),
            )
            return cursor.lastrowid

    def update_document(self, doc_id: int, meta: ChunkMetadata) -> None:
        """Refresh descriptive metadata of an existing document."""
        with self.transaction() as conn:
            conn.execute(
                """UPDATE documents
                   SET source = ?, type = ?, title = ?, category = ?, updated_at = ?
                   WHERE id = ?""",
                (meta.source, meta.type, meta.title, meta.category, now(), doc_id),
            )

    def get_document(self, doc_id: int) -> Optional[Document]:
        row = self.connection.execute(
            "SELECT * FROM documents WHERE id = ?", (doc_id,)
        ).fetchone()
        return Document.from_row(row) if row else None

    def document_ids(self) -> list[int]:
        return [row["id"] for row in self.connection.execute("SELECT id FROM documents ORDER BY id")]

    def count_documents(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def clear_documents(self) -> None:
        """Delete every document and reset corpus statistics to zero."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM document_vectors")
            conn.execute("DELETE FROM documents")
            conn.execute("DELETE FROM sqlite_sequence WHERE name = 'documents'")
            conn.execute(
                """UPDATE database_stats
                   SET total_documents = 0, total_vectors = 0, total_tokens = 0,
                       total_chunks = 0, average_vectors_per_doc = 0,
                       total_content_size = 0, last_updated = ?
                   WHERE id = 1""",
                (now(),),
            )

    # Statistics

    def upsert_document_vector_stats(self, stats: DocumentVectorStats) -> None:
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO document_vectors (
                       document_id, vector_count, average_vector_length,
                       total_tokens, chunks_count, last_updated
                   ) VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(document_id) DO UPDATE SET
                       vector_count = excluded.vector_count,
                       average_vector_length = excluded.average_vector_length,
                       total_tokens = excluded.total_tokens,
                       chunks_count = excluded.chunks_count,
                       last_updated = excluded.last_updated""",
                (
                    stats.document_id,
                    stats.vector_count,
                    stats.average_vector_length,
                    stats.total_tokens,
                    stats.chunks_count,
                    stats.last_updated or now(),
                ),
            )

    def recompute_database_stats(self, last_import_at: Optional[str] = None) -> DatabaseStats:
        """Recompute the corpus totals from scratch (full scan).

        Args:
            last_import_at: Timestamp of the import being finalized; defaults
                to the most recent completed import operation.
        """
        conn = self.connection
        vectors = conn.execute(
            """SELECT COALESCE(SUM(vector_count), 0) AS total_vectors,
                      COALESCE(SUM(total_tokens), 0) AS total_tokens,
                      COALESCE(SUM(chunks_count), 0) AS total_chunks,
                      COALESCE(AVG(vector_count), 0) AS avg_vectors_per_doc
               FROM document_vectors"""
        ).fetchone()
        documents = conn.execute(
            """SELECT COUNT(*) AS total_documents,
                      COALESCE(SUM(LENGTH(content)), 0) AS total_size
               FROM documents"""
        ).fetchone()
        if last_import_at is None:
            last_import_at = conn.execute(
                "SELECT MAX(completed_at) FROM import_operations WHERE status = ?",
                (COMPLETED,),
            ).fetchone()[0]

        with self.transaction():
            conn.execute(
                """INSERT INTO database_stats (
                       id, total_documents, total_vectors, total_tokens,
                       total_chunks, average_vectors_per_doc, total_content_size,
                       last_import_at, last_updated
                   ) VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                       total_documents = excluded.total_documents,
                       total_vectors = excluded.total_vectors,
                       total_tokens = excluded.total_tokens,
                       total_chunks = excluded.total_chunks,
                       average_vectors_per_doc = excluded.average_vectors_per_doc,
                       total_content_size = excluded.total_content_size,
                       last_import_at = excluded.last_import_at,
                       last_updated = excluded.last_updated""",
                (
                    documents["total_documents"],
                    vectors["total_vectors"],
                    vectors["total_tokens"],
                    vectors["total_chunks"],
                    vectors["avg_vectors_per_doc"],
                    documents["total_size"],
                    last_import_at,
                    now(),
                ),
            )
        return self.get_database_stats()

    def get_database_stats(self) -> DatabaseStats:
        row = self.connection.execute("SELECT * FROM database_stats WHERE id = 1").fetchone()
        return DatabaseStats.from_row(row)

    # Import operations

    def start_import_operation(self, configuration: dict) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO import_operations (started_at, status, configuration)
                   VALUES (?, ?, ?)""",
                (now(), RUNNING, json.dumps(configuration)),
            )
            return cursor.lastrowid

    def update_import_operation(
        self,
        op_id: int,
        status: Optional[str] = None,
        files_processed: Optional[int] = None,
        files_failed: Optional[int] = None,
        total_processing_time: Optional[float] = None,
        error_details: Optional[str] = None,
    ) -> None:
        """Update the given fields; a terminal status also stamps completed_at."""
        sets: list[str] = []
        values: list = []

        if status is not None:
            sets.append("status = ?")
            values.append(status)
        if files_processed is not None:
            sets.append("files_processed = ?")
            values.append(files_processed)
        if files_failed is not None:
            sets.append("files_failed = ?")
            values.append(files_failed)
        if total_processing_time is not None:
            sets.append("total_processing_time = ?")
            values.append(total_processing_time)
        if error_details is not None:
            sets.append("error_details = ?")
            values.append(error_details)
        if status in (COMPLETED, FAILED):
            sets.append("completed_at = ?")
            values.append(now())

        if not sets:
            return
        with self.transaction() as conn:
            conn.execute(
                f"UPDATE import_operations SET {', '.join(sets)} WHERE id = ?",
                (*values, op_id),
            )

    def get_import_operation(self, op_id: int) -> Optional[ImportOperation]:
        row = self.connection.execute(
            "SELECT * FROM import_operations WHERE id = ?", (op_id,)
        ).fetchone()
        return ImportOperation.from_row(row) if row else None

    def get_current_operation(self) -> Optional[ImportOperation]:
        row = self.connection.execute(
            """SELECT * FROM import_operations WHERE status = ?
               ORDER BY started_at DESC, id DESC LIMIT 1""",
            (RUNNING,),
        ).fetchone()
        return ImportOperation.from_row(row) if row else None

    def get_recent_operations(self, limit: int = 5) -> list[ImportOperation]:
        rows = self.connection.execute(
            """SELECT * FROM import_operations WHERE status != ?
               ORDER BY started_at DESC, id DESC LIMIT ?""",
            (RUNNING, limit),
        )
        return [ImportOperation.from_row(row) for row in rows]

    # Import settings

    def get_import_settings(self) -> Optional[ImportSettings]:
        row = self.connection.execute("SELECT * FROM import_settings WHERE id = 1").fetchone()
        return ImportSettings.from_row(row) if row else None

    def save_import_settings(self, settings: ImportSettings) -> None:
        with self.transaction() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO import_settings
                   (id, chunk_size, overlap_size, batch_size, parsing_strategy, file_types)
                   VALUES (1, ?, ?, ?, ?, ?)""",
                (
                    settings.chunk_size,
                    settings.overlap_size,
                    settings.batch_size,
                    settings.parsing_strategy,
                    json.dumps(settings.file_types),
                ),
            )

    # Store metadata

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        row = self.connection.execute(
            "SELECT value FROM metadata WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None
