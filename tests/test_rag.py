"""Tests for the RAG orchestrator and its error categories."""

import pytest

from tests.conftest import FakeGenerator
from vecdb.errors import (
    GeneratorConnectionError,
    GeneratorTimeoutError,
    ModelNotFoundError,
)
from vecdb.rag import RagOrchestrator, build_prompt


@pytest.fixture
def indexed(store, docs):
    (docs / "space.txt").write_text("rocket planet orbit launch")
    (docs / "fruit.txt").write_text("apple banana cherry")
    store.import_files([docs / "space.txt", docs / "fruit.txt"])
    return store


def test_answer_includes_sources_and_prompt(indexed):
    generator = FakeGenerator("Rockets reach orbit.")

    answer = RagOrchestrator(indexed, generator).ask("rocket planet orbit")

    assert answer.success
    assert answer.response == "Rockets reach orbit."
    assert answer.sources[0].source.endswith("space.txt")
    assert "rocket planet orbit launch" in generator.prompts[0]
    assert answer.prompt == generator.prompts[0]
    assert answer.execution_time >= 0


def test_no_matching_documents(indexed):
    generator = FakeGenerator()

    answer = RagOrchestrator(indexed, generator).ask("zebra giraffe", min_score=0.99)

    assert not answer.success
    assert answer.error_category == "no_context"
    assert generator.prompts == []


def test_empty_question(indexed):
    answer = RagOrchestrator(indexed, FakeGenerator()).ask("   ")

    assert not answer.success


@pytest.mark.parametrize(
    "error,category,retryable",
    [
        (GeneratorTimeoutError("slow"), "timeout", True),
        (GeneratorConnectionError("refused"), "connection", True),
        (ModelNotFoundError("no llama"), "model_not_found", False),
        (RuntimeError("boom"), "unknown", False),
    ],
)
def test_generator_errors_are_categorized(indexed, error, category, retryable):
    answer = RagOrchestrator(indexed, FakeGenerator(error=error)).ask("rocket planet orbit")

    assert not answer.success
    assert answer.error_category == category
    assert answer.retryable is retryable
    assert answer.error
    assert answer.sources


def test_prompt_lists_numbered_sources(indexed):
    results = indexed.search("rocket planet orbit")

    prompt = build_prompt("What launches?", results)

    assert "[1] " in prompt
    assert "What launches?" in prompt
