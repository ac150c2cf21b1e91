"""Content addressing and token counting helpers."""

import hashlib


def content_hash(content: str) -> str:
    """SHA-256 hex digest of chunk text, used as the deduplication key."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_tokens(content: str) -> int:
    """Whitespace token count, a model-independent size estimate."""
    return len(content.split())
