"""Similarity index implementations."""

from vecdb.index.hnsw_index import SimilarityIndex

__all__ = ["SimilarityIndex"]
