"""Tests for the SQLite metadata store."""

import sqlite3

import pytest

from vecdb.errors import NotInitializedError
from vecdb.models import ChunkMetadata, DocumentVectorStats, ImportSettings
from vecdb.storage import MetadataStore
from vecdb.utils import content_hash

META = ChunkMetadata(source="/docs/a.txt", type="txt", title="a", category="text")


@pytest.fixture
def metadata(tmp_path):
    store = MetadataStore(tmp_path / "db" / "vectordb.sqlite")
    store.initialize()
    yield store
    store.close()


def add(store, text):
    return store.insert_document(text, META, content_hash(text))


def test_insert_and_find_by_hash(metadata):
    doc_id = add(metadata, "hello world")

    found = metadata.find_document_by_hash(content_hash("hello world"))

    assert found.id == doc_id
    assert found.content == "hello world"
    assert found.source == "/docs/a.txt"
    assert metadata.find_document_by_hash(content_hash("other")) is None


def test_content_hash_is_unique(metadata):
    add(metadata, "same")

    with pytest.raises(sqlite3.IntegrityError):
        add(metadata, "same")


def test_transaction_rolls_back_on_error(metadata):
    with pytest.raises(RuntimeError):
        with metadata.transaction():
            add(metadata, "first")
            raise RuntimeError("index add failed")

    assert metadata.count_documents() == 0


def test_nested_transaction_commits_once(metadata):
    with metadata.transaction():
        add(metadata, "one")
        with metadata.transaction():
            add(metadata, "two")

    assert metadata.count_documents() == 2


def test_update_document_refreshes_metadata(metadata):
    doc_id = add(metadata, "text")

    metadata.update_document(doc_id, ChunkMetadata(source="/docs/b.md", type="md", title="B"))

    doc = metadata.get_document(doc_id)
    assert doc.source == "/docs/b.md"
    assert doc.title == "B"


def test_recompute_database_stats(metadata):
    ids = [add(metadata, text) for text in ("one two", "three four five")]
    for doc_id, tokens in zip(ids, (2, 3)):
        metadata.upsert_document_vector_stats(
            DocumentVectorStats(doc_id, vector_count=1, average_vector_length=64.0, total_tokens=tokens, chunks_count=1)
        )

    stats = metadata.recompute_database_stats(last_import_at="2026-01-01T00:00:00")

    assert stats.total_documents == 2
    assert stats.total_vectors == 2
    assert stats.total_tokens == 5
    assert stats.total_content_size == len("one two") + len("three four five")
    assert stats.last_import_at == "2026-01-01T00:00:00"


def test_clear_documents_resets_everything(metadata):
    doc_id = add(metadata, "gone soon")
    metadata.upsert_document_vector_stats(DocumentVectorStats(doc_id, 1, 64.0, 2, 1))
    metadata.recompute_database_stats()

    metadata.clear_documents()

    assert metadata.count_documents() == 0
    assert metadata.get_database_stats().total_documents == 0
    assert add(metadata, "fresh start") == 1


def test_import_operation_lifecycle(metadata):
    op_id = metadata.start_import_operation({"chunk_size": 1000})
    assert metadata.get_current_operation().id == op_id

    metadata.update_import_operation(op_id, status="completed", files_processed=2, files_failed=1)

    op = metadata.get_import_operation(op_id)
    assert op.status == "completed"
    assert op.completed_at is not None
    assert op.files_processed == 2
    assert op.configuration == {"chunk_size": 1000}
    assert metadata.get_current_operation() is None


def test_recent_operations_newest_first(metadata):
    ids = []
    for _ in range(7):
        op_id = metadata.start_import_operation({})
        metadata.update_import_operation(op_id, status="completed")
        ids.append(op_id)
    metadata.start_import_operation({})

    recent = metadata.get_recent_operations(5)

    assert [op.id for op in recent] == ids[::-1][:5]


def test_import_settings_round_trip(metadata):
    assert metadata.get_import_settings() is None

    metadata.save_import_settings(ImportSettings(chunk_size=500, overlap_size=50, file_types=[".txt"]))

    settings = metadata.get_import_settings()
    assert settings.chunk_size == 500
    assert settings.file_types == [".txt"]


def test_metadata_key_values(metadata):
    metadata.set_metadata("embedding_model", "model-a")
    metadata.set_metadata("embedding_model", "model-b")

    assert metadata.get_metadata("embedding_model") == "model-b"
    assert metadata.get_metadata("missing") is None


def test_closed_store_raises(tmp_path):
    store = MetadataStore(tmp_path / "x.sqlite")

    with pytest.raises(NotInitializedError):
        store.count_documents()
