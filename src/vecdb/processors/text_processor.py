"""Processors for plain-text family files (text, code, markdown)."""

import logging
import re
from pathlib import Path
from typing import Optional

from vecdb.chunkers import OverlapChunker
from vecdb.errors import VectorDBError
from vecdb.models import ChunkMetadata, ImportOptions, ProcessedFile
from vecdb.protocols import ChunkingStrategy
from vecdb.utils.binary import detect_binary

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".txt", ".text", ".log", ".rst", ".csv", ".tsv", ".org")
CODE_EXTENSIONS = (
    ".py", ".js", ".ts", ".java", ".c", ".h", ".cpp", ".go", ".rs", ".rb",
    ".sh", ".sql", ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg",
    ".html", ".htm", ".xml", ".css",
    # Clarion sources
    ".clw", ".inc", ".equ",
)
MARKDOWN_EXTENSIONS = (".md", ".markdown")

_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)


class TextProcessor:
    """Reads a UTF-8 text file and chunks it with an overlap window."""

    def __init__(self, extensions: tuple[str, ...] = TEXT_EXTENSIONS, category: str = "text"):
        self._extensions = tuple(ext.lower() for ext in extensions)
        self.category = category

    @property
    def extensions(self) -> tuple[str, ...]:
        return self._extensions

    def process_file(self, path: Path, options: ImportOptions) -> ProcessedFile:
        """Chunk one file.

        Raises:
            OSError: the file could not be read
            VectorDBError: the file holds binary content (not retryable)
        """
        path = Path(path)
        raw = path.read_bytes()
        if detect_binary(path, raw):
            raise VectorDBError(f"File appears to be binary: {path.name}", retryable=False)

        text = raw.decode("utf-8", errors="replace")
        chunker: ChunkingStrategy = OverlapChunker(options.chunk_size, options.overlap_size)
        chunks = chunker.chunk(text, str(path))

        meta = ChunkMetadata(
            source=str(path),
            type=path.suffix.lower().lstrip("."),
            title=self.extract_title(text, path),
            category=self.category,
        )
        logger.debug(f"{path}: {len(chunks)} chunks")
        return ProcessedFile(
            contents=[c.text for c in chunks],
            metadata=[meta] * len(chunks),
        )

    def extract_title(self, text: str, path: Path) -> Optional[str]:
        return path.stem


class MarkdownProcessor(TextProcessor):
    """Text processor that titles documents by their first heading."""

    def __init__(self):
        super().__init__(MARKDOWN_EXTENSIONS, category="markdown")

    def extract_title(self, text: str, path: Path) -> Optional[str]:
        match = _HEADING.search(text)
        return match.group(1) if match else path.stem
