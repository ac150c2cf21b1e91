"""Statistics models: per-document, corpus-wide and import bookkeeping."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"


@dataclass
class DocumentVectorStats:
    document_id: int
    vector_count: int
    average_vector_length: float
    total_tokens: int
    chunks_count: int
    last_updated: Optional[str] = None


@dataclass
class DatabaseStats:
    total_documents: int = 0
    total_vectors: int = 0
    total_tokens: int = 0
    total_chunks: int = 0
    average_vectors_per_doc: float = 0.0
    total_content_size: int = 0
    last_import_at: Optional[str] = None
    last_updated: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "DatabaseStats":
        if row is None:
            return cls()
        return cls(
            total_documents=row["total_documents"] or 0,
            total_vectors=row["total_vectors"] or 0,
            total_tokens=row["total_tokens"] or 0,
            total_chunks=row["total_chunks"] or 0,
            average_vectors_per_doc=row["average_vectors_per_doc"] or 0.0,
            total_content_size=row["total_content_size"] or 0,
            last_import_at=row["last_import_at"],
            last_updated=row["last_updated"],
        )


@dataclass
class ImportOperation:
    id: int
    started_at: str
    status: str
    completed_at: Optional[str] = None
    files_processed: int = 0
    files_failed: int = 0
    total_processing_time: float = 0.0
    error_details: Optional[str] = None
    configuration: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row) -> "ImportOperation":
        return cls(
            id=row["id"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            status=row["status"],
            files_processed=row["files_processed"] or 0,
            files_failed=row["files_failed"] or 0,
            total_processing_time=row["total_processing_time"] or 0.0,
            error_details=row["error_details"],
            configuration=json.loads(row["configuration"]) if row["configuration"] else {},
        )


@dataclass
class ImportSettings:
    chunk_size: int = 1000
    overlap_size: int = 200
    batch_size: int = 10
    parsing_strategy: str = "paragraph"
    file_types: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> "ImportSettings":
        if row is None:
            return cls()
        return cls(
            chunk_size=row["chunk_size"],
            overlap_size=row["overlap_size"],
            batch_size=row["batch_size"],
            parsing_strategy=row["parsing_strategy"],
            file_types=json.loads(row["file_types"]) if row["file_types"] else [],
        )


@dataclass
class VectorDBStatistics:
    """Full statistics snapshot pushed to subscribers."""

    database_stats: DatabaseStats
    import_settings: ImportSettings
    recent_operations: list[ImportOperation] = field(default_factory=list)
    current_operation: Optional[ImportOperation] = None

    def to_dict(self) -> dict:
        return asdict(self)
