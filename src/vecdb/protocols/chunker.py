"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable

from vecdb.models import Chunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Splits extracted text into sized, possibly overlapping chunks."""

    def chunk(self, text: str, file_path: str) -> list[Chunk]:
        """Split text into chunks with position metadata."""
        ...
