"""SQLite storage for document metadata and statistics."""

from vecdb.storage.store import MetadataStore

__all__ = ["MetadataStore"]
