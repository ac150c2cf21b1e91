"""VecDB - local semantic search and RAG over your documents."""

from vecdb.config import Settings
from vecdb.errors import VectorDBError
from vecdb.vector_store import StoreState, VectorStore

__version__ = "0.1.0"

__all__ = ["Settings", "StoreState", "VectorDBError", "VectorStore"]
