"""Retrieval-augmented generation over the vector store."""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Optional

from vecdb.errors import (
    GeneratorConnectionError,
    GeneratorTimeoutError,
    ModelNotFoundError,
    VectorDBError,
)
from vecdb.models import SearchOptions, SearchResult
from vecdb.protocols import TextGenerator
from vecdb.rag.prompt import build_prompt
from vecdb.vector_store import VectorStore

logger = logging.getLogger(__name__)

CONNECTION = "connection"
TIMEOUT = "timeout"
MODEL_NOT_FOUND = "model_not_found"
NO_CONTEXT = "no_context"
UNKNOWN = "unknown"


@dataclass
class RagAnswer:
    success: bool
    response: Optional[str] = None
    prompt: Optional[str] = None
    sources: list[SearchResult] = field(default_factory=list)
    error: Optional[str] = None
    error_category: Optional[str] = None
    retryable: bool = False
    execution_time: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def categorize_error(error: Exception) -> tuple[str, str, bool]:
    """Map a failure to ``(category, user-facing message, retryable)``."""
    if isinstance(error, GeneratorTimeoutError):
        return (
            TIMEOUT,
            "Request timed out: the LLM provider took too long to respond. Please try again later.",
            True,
        )
    if isinstance(error, GeneratorConnectionError):
        return (
            CONNECTION,
            "Connection error: could not connect to the LLM provider. "
            "Please check that the service is running.",
            True,
        )
    if isinstance(error, ModelNotFoundError):
        return (
            MODEL_NOT_FOUND,
            f"Model error: the selected model may not be available. {error}",
            False,
        )
    retryable = error.retryable if isinstance(error, VectorDBError) else False
    return UNKNOWN, f"An unexpected error occurred: {error}", retryable


class RagOrchestrator:
    """Answers questions from retrieved context with a text generator."""

    def __init__(self, vector_store: VectorStore, generator: TextGenerator):
        self.vector_store = vector_store
        self.generator = generator

    def ask(self, question: str, max_results: int = 5, min_score: float = 0.4) -> RagAnswer:
        """Retrieve context for ``question`` and generate an answer.

        Never raises for retrieval or generator failures; they come back as
        an unsuccessful :class:`RagAnswer` with an error category.
        """
        started = time.monotonic()
        if not question or not question.strip():
            return RagAnswer(
                success=False,
                error="Please enter a question.",
                error_category=UNKNOWN,
                execution_time=time.monotonic() - started,
            )

        prompt = None
        sources: list[SearchResult] = []
        try:
            sources = self.vector_store.search(
                question, SearchOptions(limit=max_results, min_score=min_score)
            )
            if not sources:
                logger.info(f"No documents matched: {question[:80]}")
                return RagAnswer(
                    success=False,
                    error="No relevant documents were found for this question.",
                    error_category=NO_CONTEXT,
                    execution_time=time.monotonic() - started,
                )

            prompt = build_prompt(question, sources)
            logger.debug(f"RAG prompt: {prompt[:100]}...")
            response = self.generator.generate(prompt)
        except Exception as e:
            category, message, retryable = categorize_error(e)
            logger.error(f"Error answering with {self.generator.name}: {e}")
            return RagAnswer(
                success=False,
                prompt=prompt,
                sources=sources,
                error=message,
                error_category=category,
                retryable=retryable,
                execution_time=time.monotonic() - started,
            )

        elapsed = time.monotonic() - started
        logger.info(f"Answered with {self.generator.name} from {len(sources)} sources in {elapsed:.2f}s")
        return RagAnswer(
            success=True,
            response=response,
            prompt=prompt,
            sources=sources,
            execution_time=elapsed,
        )
