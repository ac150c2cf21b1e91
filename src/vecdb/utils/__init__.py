"""Utility functions for VecDB."""

from vecdb.utils.binary import detect_binary, is_binary_content, is_binary_extension
from vecdb.utils.hashing import content_hash, count_tokens

__all__ = [
    "content_hash",
    "count_tokens",
    "detect_binary",
    "is_binary_content",
    "is_binary_extension",
]
