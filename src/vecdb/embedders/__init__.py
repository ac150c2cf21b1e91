"""Embedding providers for vector generation."""

from vecdb.embedders.sentence_transformer import SentenceTransformerEmbedder

__all__ = ["SentenceTransformerEmbedder"]
