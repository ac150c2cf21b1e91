"""Retrieval-augmented generation."""

from vecdb.rag.orchestrator import RagAnswer, RagOrchestrator, categorize_error
from vecdb.rag.prompt import build_prompt

__all__ = ["RagAnswer", "RagOrchestrator", "build_prompt", "categorize_error"]
