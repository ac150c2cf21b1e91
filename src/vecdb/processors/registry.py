"""Registry mapping file extensions to document processors."""

from pathlib import Path
from typing import Iterable, Optional

from vecdb.processors.text_processor import (
    CODE_EXTENSIONS,
    MarkdownProcessor,
    TextProcessor,
)
from vecdb.protocols import DocumentProcessor


class ProcessorRegistry:
    """Selects a processor by file extension. Later registrations win."""

    def __init__(self, processors: Optional[Iterable[DocumentProcessor]] = None):
        self._by_extension: dict[str, DocumentProcessor] = {}
        for processor in processors or ():
            self.register(processor)

    @classmethod
    def default(cls) -> "ProcessorRegistry":
        """Registry with the bundled text, code and markdown processors."""
        return cls(
            [
                TextProcessor(),
                TextProcessor(CODE_EXTENSIONS, category="code"),
                MarkdownProcessor(),
            ]
        )

    def register(self, processor: DocumentProcessor) -> None:
        """Register a processor (for plugins/extensions).

        Args:
            processor: An object implementing the DocumentProcessor protocol
        """
        for ext in processor.extensions:
            self._by_extension[ext.lower()] = processor

    def get_processor(self, file_path: str | Path) -> Optional[DocumentProcessor]:
        """Find the processor for a file, or None if its type is unknown."""
        return self._by_extension.get(Path(file_path).suffix.lower())

    def get_supported_extensions(self) -> list[str]:
        return sorted(self._by_extension)
