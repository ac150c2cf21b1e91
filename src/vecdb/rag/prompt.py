"""Prompt assembly for retrieval-augmented answers."""

import textwrap

from vecdb.models import SearchResult

PROMPT_TEMPLATE = textwrap.dedent("""
    You are a helpful assistant answering questions about the user's documents.

    Answer the question using only the context below. If the context does not
    contain the answer, say that you could not find it in the documents.
    Mention the source file when you rely on a passage.

    ### CONTEXT:
    {context}

    ### QUESTION:
    {question}

    ### ANSWER:
    """).strip()


def format_context(results: list[SearchResult]) -> str:
    blocks = []
    for i, r in enumerate(results, 1):
        header = f"[{i}] {r.source}"
        if r.title:
            header += f" ({r.title})"
        blocks.append(f"{header}\n{r.content.strip()}")
    return "\n\n".join(blocks)


def build_prompt(question: str, results: list[SearchResult]) -> str:
    return PROMPT_TEMPLATE.format(context=format_context(results), question=question.strip())
