"""Core data models for documents, chunks and search hits."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Chunk:
    """A chunk of text with its position in the source."""

    text: str
    file_path: str
    chunk_index: int
    start_char: int
    end_char: int


@dataclass(frozen=True)
class ChunkMetadata:
    """Per-chunk metadata reported by a document processor."""

    source: str
    type: str
    title: Optional[str] = None
    category: Optional[str] = None


@dataclass
class ProcessedFile:
    """Output of a processor: parallel lists of chunk texts and metadata."""

    contents: list[str] = field(default_factory=list)
    metadata: list[ChunkMetadata] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.contents) != len(self.metadata):
            raise ValueError(
                f"contents ({len(self.contents)}) and metadata "
                f"({len(self.metadata)}) must have the same length"
            )


@dataclass
class Document:
    """A stored content unit. Its id is also the similarity index key."""

    id: int
    content: str
    source: str
    type: str
    content_hash: str
    title: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Document":
        return cls(
            id=row["id"],
            content=row["content"],
            source=row["source"],
            type=row["type"],
            content_hash=row["content_hash"],
            title=row["title"],
            category=row["category"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class SearchResult:
    """A hydrated search hit. ``score`` is ``1 - cosine distance``."""

    document_id: int
    content: str
    score: float
    file_type: str
    source: str
    title: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[str] = None
