"""Binary content detection for document processors."""

from pathlib import Path

# Extensions that never hold extractable plain text
BINARY_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff",
    ".zip", ".tar", ".gz", ".rar", ".7z", ".bz2", ".xz",
    ".exe", ".dll", ".so", ".dylib", ".bin",
    ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac", ".mkv", ".webm",
    ".pyc", ".pyo", ".class", ".o", ".obj", ".wasm",
    ".db", ".sqlite", ".sqlite3", ".index",
}

# Printable ASCII + tab, LF, CR
_TEXT_BYTES = frozenset(range(32, 127)) | {9, 10, 13}


def is_binary_extension(path: str | Path) -> bool:
    """Check if file extension indicates binary content."""
    return Path(path).suffix.lower() in BINARY_EXTENSIONS


def is_binary_content(content: bytes, sample_size: int = 8192) -> bool:
    """Detect binary content from null bytes and the share of control bytes.

    Bytes >= 0x80 are accepted as text so UTF-8 documents are not rejected.

    Args:
        content: Raw file content
        sample_size: Number of bytes to sample from the start

    Returns:
        True if content appears to be binary
    """
    if not content:
        return False

    sample = content[:sample_size]
    if b"\x00" in sample:
        return True

    control = sum(1 for byte in sample if byte < 128 and byte not in _TEXT_BYTES)
    return (control / len(sample)) > 0.30


def detect_binary(path: str | Path, content: bytes) -> bool:
    """Detect binary files by extension first, then by content."""
    if is_binary_extension(path):
        return True
    return is_binary_content(content)
