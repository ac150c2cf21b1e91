"""Shared fixtures: deterministic embedder, temporary data directory, fake generators."""

import hashlib
import re
from pathlib import Path

import numpy as np
import pytest

from vecdb.config import Settings
from vecdb.models import ChunkMetadata, ProcessedFile
from vecdb.vector_store import StoreState, VectorStore

DIM = 64


class HashingEmbedder:
    """Bag-of-words embedder: each word lands in an md5-chosen bucket."""

    model_name = "hashing-test"

    def __init__(self, dimension: int = DIM, poison: str | None = None):
        self.dimension = dimension
        self.poison = poison
        self.calls: list[list[str]] = []

    def embed(self, texts: list[str]) -> np.ndarray:
        self.calls.append(list(texts))
        if self.poison and any(self.poison in t for t in texts):
            raise RuntimeError("backend exploded")

        vectors = np.zeros((len(texts), self.dimension), dtype=np.float32)
        for row, text in enumerate(texts):
            for word in re.findall(r"\w+", text.lower()):
                bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
                vectors[row, bucket] += 1.0
        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return vectors / norms


class StaticProcessor:
    """Processor for ``.fake`` files that returns fixed chunks."""

    extensions = (".fake",)

    def __init__(self, contents: list[str]):
        self.contents = contents

    def process_file(self, path, options) -> ProcessedFile:
        meta = ChunkMetadata(source=str(path), type="fake", title=Path(path).stem)
        return ProcessedFile(contents=list(self.contents), metadata=[meta] * len(self.contents))


class FakeGenerator:
    def __init__(self, response: str = "The answer.", error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return "fake:test"

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


def paragraph(word: str, length: int = 700) -> str:
    return " ".join([word] * length)[:length]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path / "data", dimension=DIM, index_capacity=4)


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def docs(tmp_path) -> Path:
    path = tmp_path / "docs"
    path.mkdir()
    return path


@pytest.fixture
def store(settings, embedder):
    vector_store = VectorStore(settings, embedder=embedder).initialize()
    yield vector_store
    if vector_store.state is not StoreState.CLOSED:
        vector_store.close()


@pytest.fixture
def three_chunk_file(docs) -> Path:
    """Three 700-character paragraphs: 3 chunks at size 1000, overlap 200."""
    path = docs / "notes.txt"
    path.write_text("\n\n".join(paragraph(w) for w in ("alpha", "bravo", "charlie")))
    return path
