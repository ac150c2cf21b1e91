"""Text chunking strategies."""

from vecdb.chunkers.overlap_chunker import OverlapChunker

__all__ = ["OverlapChunker"]
