"""Document processors and their registry."""

from vecdb.processors.discovery import expand_paths
from vecdb.processors.registry import ProcessorRegistry
from vecdb.processors.text_processor import MarkdownProcessor, TextProcessor

__all__ = ["MarkdownProcessor", "ProcessorRegistry", "TextProcessor", "expand_paths"]
