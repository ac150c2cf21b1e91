"""Sliding-window chunking with paragraph/sentence boundary detection."""

from vecdb.models import Chunk

_SENTENCE_BREAKS = (". ", ".\n", "? ", "?\n", "! ", "!\n")


class OverlapChunker:
    """Split text into windows of at most ``chunk_size`` characters.

    Consecutive windows share ``overlap`` characters. A window end is pulled
    back to the last paragraph break, or failing that the last sentence
    break, as long as that keeps the window at least half full.
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, text: str, file_path: str) -> list[Chunk]:
        """Split text into chunks with metadata.

        Args:
            text: The text content to chunk
            file_path: Path to the source file (for metadata)

        Returns:
            List of Chunk objects with position information
        """
        if not text or not text.strip():
            return []

        chunks: list[Chunk] = []
        length = len(text)
        start = 0

        while start < length:
            end = min(start + self.chunk_size, length)
            if end < length:
                end = self._find_break(text, start, end)

            window = text[start:end]
            stripped = window.strip()
            if stripped:
                offset = start + (len(window) - len(window.lstrip()))
                chunks.append(
                    Chunk(
                        text=stripped,
                        file_path=file_path,
                        chunk_index=len(chunks),
                        start_char=offset,
                        end_char=offset + len(stripped),
                    )
                )

            if end >= length:
                break
            # Always advance, even when the overlap would swallow the window
            start = max(end - self.overlap, start + 1)

        return chunks

    def _find_break(self, text: str, start: int, end: int) -> int:
        floor = start + self.chunk_size // 2

        para_break = text.rfind("\n\n", start, end)
        if para_break > floor:
            return para_break + 2

        for sep in _SENTENCE_BREAKS:
            sent_break = text.rfind(sep, start, end)
            if sent_break > floor:
                return sent_break + len(sep)

        return end
