"""FastMCP server exposing a vector store as tools."""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from vecdb.models import SearchOptions
from vecdb.rag import RagOrchestrator
from vecdb.vector_store import VectorStore


def _snippet(text: str, width: int = 200) -> str:
    snippet = text[:width].replace("\n", " ")
    if len(text) > width:
        snippet += "..."
    return snippet


def create_mcp_server(vector_store: VectorStore, rag: Optional[RagOrchestrator] = None) -> FastMCP:
    """Create an MCP server over an already built vector store.

    Args:
        vector_store: Store to search; initialized on first use
        rag: When given, an ``ask`` tool answers questions with it

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(name="vecdb")

    @mcp.tool()
    def search(query: str, limit: int = 10, min_score: float = 0.4) -> str:
        """Semantic search across the imported documents.

        Finds passages by meaning, not just keyword: "authentication logic"
        can match a login handler that never uses the word.

        Args:
            query: Natural language description of what you're looking for
            limit: Maximum number of results to return (default: 10)
            min_score: Minimum similarity in [0, 1] (default: 0.4)

        Returns:
            Ranked list of matching passages with similarity scores
        """
        results = vector_store.search(query, SearchOptions(limit=limit, min_score=min_score))

        if not results:
            return f"No results found for: {query}"

        lines = []
        for i, r in enumerate(results, 1):
            lines.append(f"{i}. [{r.score:.3f}] {r.source}")
            lines.append(f"   {_snippet(r.content)}")
            lines.append("")

        return "\n".join(lines)

    @mcp.tool()
    def stats() -> str:
        """Corpus statistics and the most recent import runs."""
        snapshot = vector_store.get_statistics()
        db = snapshot.database_stats

        lines = [
            f"Documents: {db.total_documents}",
            f"Vectors: {db.total_vectors}",
            f"Tokens: {db.total_tokens}",
            f"Content size: {db.total_content_size} chars",
            f"Last import: {db.last_import_at or 'never'}",
        ]
        if snapshot.recent_operations:
            lines.append("")
            lines.append("Recent imports:")
            for op in snapshot.recent_operations:
                lines.append(
                    f"  {op.started_at}  {op.status:<9} {op.files_processed} ok, {op.files_failed} failed"
                )
        return "\n".join(lines)

    if rag is not None:

        @mcp.tool()
        def ask(question: str, max_results: int = 5) -> str:
            """Answer a question from the imported documents with an LLM.

            Args:
                question: The question to answer
                max_results: Number of passages given to the model as context

            Returns:
                The answer followed by its sources, or an error message
            """
            answer = rag.ask(question, max_results=max_results)
            if not answer.success:
                return f"Error ({answer.error_category}): {answer.error}"

            sources = "\n".join(f"- {s.source} [{s.score:.3f}]" for s in answer.sources)
            return f"{answer.response}\n\nSources:\n{sources}"

    return mcp
