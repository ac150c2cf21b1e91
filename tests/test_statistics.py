"""Tests for the statistics aggregator and its subscribers."""

import pytest

from vecdb.models import ChunkMetadata, DocumentVectorStats, ImportSettings
from vecdb.stats import StatisticsAggregator
from vecdb.storage import MetadataStore
from vecdb.utils import content_hash


@pytest.fixture
def aggregator(tmp_path):
    store = MetadataStore(tmp_path / "stats.sqlite")
    store.initialize()
    yield StatisticsAggregator(store, ImportSettings(file_types=[".txt"]))
    store.close()


def test_listener_receives_snapshot(aggregator):
    received = []
    aggregator.on_update(received.append)

    op_id = aggregator.start_import_operation({})

    assert received[-1].current_operation.id == op_id


def test_failing_listener_is_isolated(aggregator):
    received = []

    def broken(snapshot):
        raise RuntimeError("listener bug")

    aggregator.on_update(broken)
    aggregator.on_update(received.append)

    aggregator.update_database_stats()

    assert len(received) == 1


def test_disposer_unsubscribes_and_is_idempotent(aggregator):
    received = []
    dispose = aggregator.on_update(received.append)

    dispose()
    dispose()
    aggregator.update_database_stats()

    assert received == []
    assert aggregator.listener_count == 0


def test_import_settings_fall_back_to_defaults(aggregator):
    assert aggregator.get_import_settings().file_types == [".txt"]

    aggregator.store.save_import_settings(ImportSettings(chunk_size=400, overlap_size=40))

    assert aggregator.get_import_settings().chunk_size == 400


def test_recent_operations_limited_to_five(aggregator):
    for _ in range(7):
        op_id = aggregator.start_import_operation({})
        aggregator.update_import_operation(op_id, status="failed")

    snapshot = aggregator.get_statistics()

    assert len(snapshot.recent_operations) == 5
    assert snapshot.current_operation is None
    assert snapshot.to_dict()["recent_operations"][0]["status"] == "failed"


def test_statistics_after_import(store, three_chunk_file):
    snapshots = []
    store.on_statistics_update(snapshots.append)

    store.import_files([three_chunk_file])

    stats = store.get_statistics().database_stats
    assert stats.total_documents == 3
    assert stats.total_vectors == 3
    assert stats.total_chunks == 3
    assert stats.last_import_at is not None
    assert snapshots[-1].recent_operations[0].status == "completed"


def test_reset_pushes_zeroed_snapshot(aggregator):
    doc_id = aggregator.store.insert_document(
        "some text", ChunkMetadata(source="a.txt", type="txt"), content_hash("some text")
    )
    aggregator.update_document_vector_stats([DocumentVectorStats(doc_id, 1, 64.0, 2, 1)])
    aggregator.update_database_stats()
    received = []
    aggregator.on_update(received.append)

    aggregator.reset()

    stats = received[-1].database_stats
    assert stats.total_documents == 0
    assert stats.total_vectors == 0
    assert stats.total_tokens == 0
    assert aggregator.store.count_documents() == 0
