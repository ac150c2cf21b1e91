"""Protocol for file-type specific document processors."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from vecdb.models import ImportOptions, ProcessedFile


@runtime_checkable
class DocumentProcessor(Protocol):
    """Extracts chunked text plus per-chunk metadata from one file.

    Uses structural subtyping - no inheritance required.
    """

    @property
    def extensions(self) -> tuple[str, ...]:
        """Lower-case file extensions handled, including the dot."""
        ...

    def process_file(self, path: Path, options: ImportOptions) -> ProcessedFile:
        """Read ``path`` and return its chunks sized per ``options``."""
        ...
