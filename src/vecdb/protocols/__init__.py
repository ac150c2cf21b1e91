"""Protocol definitions for pluggable collaborators."""

from vecdb.protocols.chunker import ChunkingStrategy
from vecdb.protocols.embedder import EmbeddingProvider
from vecdb.protocols.generator import TextGenerator
from vecdb.protocols.processor import DocumentProcessor

__all__ = ["ChunkingStrategy", "DocumentProcessor", "EmbeddingProvider", "TextGenerator"]
