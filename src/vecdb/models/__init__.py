"""Data models for VecDB."""

from vecdb.models.document import (
    Chunk,
    ChunkMetadata,
    Document,
    ProcessedFile,
    SearchResult,
)
from vecdb.models.operations import (
    ConsistencyReport,
    FileError,
    FileOutcome,
    ImportOptions,
    ImportProgress,
    ImportStats,
    SearchOptions,
)
from vecdb.models.statistics import (
    DatabaseStats,
    DocumentVectorStats,
    ImportOperation,
    ImportSettings,
    VectorDBStatistics,
)

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "ConsistencyReport",
    "DatabaseStats",
    "Document",
    "DocumentVectorStats",
    "FileError",
    "FileOutcome",
    "ImportOperation",
    "ImportOptions",
    "ImportProgress",
    "ImportSettings",
    "ImportStats",
    "ProcessedFile",
    "SearchOptions",
    "SearchResult",
    "VectorDBStatistics",
]
