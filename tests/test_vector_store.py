"""End-to-end tests for the vector store with real hnswlib and SQLite."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from tests.conftest import HashingEmbedder, StaticProcessor
from vecdb.errors import ConfigurationError, EmbeddingError, IndexPersistError, NotInitializedError
from vecdb.models import ImportOptions, SearchOptions
from vecdb.processors import ProcessorRegistry
from vecdb.vector_store import StoreState, VectorStore

OPTIONS = ImportOptions(chunk_size=1000, overlap_size=200)


def make_store(settings, embedder, contents):
    registry = ProcessorRegistry.default()
    registry.register(StaticProcessor(contents))
    return VectorStore(settings, embedder=embedder, registry=registry).initialize()


def test_fresh_import_yields_three_vectors(store, three_chunk_file):
    events = []

    stats = store.import_files([three_chunk_file], OPTIONS, on_progress=events.append)

    assert stats.success
    assert stats.files_processed == 1
    assert stats.vector_count == 3
    assert stats.errors == []
    assert store.index.count() == 3
    assert events[-1].status == "completed"
    assert events[0].current_file == str(three_chunk_file)


def test_reimport_skips_duplicates(store, three_chunk_file):
    store.import_files([three_chunk_file], OPTIONS)

    again = store.import_files([three_chunk_file], OPTIONS)

    assert again.vector_count == 0
    assert again.files_processed == 1
    assert store.index.count() == 3
    assert store.get_statistics().database_stats.total_documents == 3


def test_force_update_reuses_document_ids(store, three_chunk_file):
    store.import_files([three_chunk_file], OPTIONS)
    ids = store.store.document_ids()

    forced = store.import_files([three_chunk_file], ImportOptions(force_update=True))

    assert forced.vector_count == 3
    assert store.store.document_ids() == ids
    assert store.index.count() == 3


def test_missing_processor_is_reported_not_raised(store, docs):
    path = docs / "data.xyz"
    path.write_text("whatever")

    stats = store.import_files([path])

    assert stats.success
    assert stats.files_processed == 0
    assert len(stats.errors) == 1
    assert stats.errors[0].file == str(path)
    assert stats.errors[0].error.startswith("No processor found")
    assert stats.errors[0].retryable is False


def test_one_bad_file_does_not_stop_the_batch(store, docs, three_chunk_file):
    bad = docs / "image.xyz"
    bad.write_text("?")

    stats = store.import_files([bad, three_chunk_file], OPTIONS)

    assert stats.files_processed == 1
    assert stats.vector_count == 3
    assert [e.file for e in stats.errors] == [str(bad)]


def test_missing_file_is_retryable(store, docs):
    stats = store.import_files([docs / "gone.txt"])

    assert stats.errors[0].retryable is True


def test_invalid_options_rejected_before_work(store, three_chunk_file):
    with pytest.raises(ConfigurationError):
        store.import_files([three_chunk_file], ImportOptions(chunk_size=100, overlap_size=100))

    assert store.get_statistics().recent_operations == []


def test_directory_import(store, docs):
    (docs / "a.txt").write_text("apple banana cherry")
    (docs / "sub").mkdir()
    (docs / "sub" / "b.md").write_text("# Space\n\nrocket planet orbit")
    (docs / "skip.xyz").write_text("ignored")

    stats = store.import_files([docs], ImportOptions(is_directory=True))

    assert stats.files_processed == 2
    assert stats.errors == []


def test_search_ranks_best_match_first(store, docs):
    (docs / "fruit.txt").write_text("apple banana cherry")
    (docs / "space.txt").write_text("rocket planet orbit")
    store.import_files([docs / "fruit.txt", docs / "space.txt"])

    results = store.search("rocket planet orbit", SearchOptions(min_score=0.0))

    assert results[0].source.endswith("space.txt")
    assert results[0].score == pytest.approx(1.0, abs=1e-4)
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)


def test_search_respects_threshold_and_limit(store, docs):
    for i in range(6):
        (docs / f"doc{i}.txt").write_text(f"shared words here plus unique{i}")
    store.import_files(sorted(docs.iterdir()))

    results = store.search("shared words here", SearchOptions(limit=3, min_score=0.5))

    assert len(results) <= 3
    assert all(r.score >= 0.5 for r in results)


def test_threshold_excludes_partial_matches(store, docs):
    (docs / "a.txt").write_text("rocket planet orbit")
    store.import_files([docs / "a.txt"])

    assert store.search("rocket", SearchOptions(min_score=0.99)) == []


def test_search_filters_by_file_type(store, docs):
    (docs / "a.txt").write_text("rocket planet orbit")
    (docs / "b.md").write_text("rocket planet orbit launch")
    store.import_files([docs / "a.txt", docs / "b.md"])

    results = store.search("rocket planet", SearchOptions(min_score=0.0, file_types=[".md"]))

    assert [r.file_type for r in results] == ["md"]


def test_empty_index_search_returns_empty(store):
    assert store.search("anything at all") == []


def test_invalid_search_options(store):
    with pytest.raises(ConfigurationError):
        store.search("query", SearchOptions(limit=0))


def test_clear_then_search(store, docs):
    (docs / "a.txt").write_text("rocket planet orbit")
    store.import_files([docs / "a.txt"])

    store.clear_database()

    assert store.search("rocket planet orbit", SearchOptions(min_score=0.0)) == []
    assert store.get_statistics().database_stats.total_documents == 0
    assert store.index.count() == 0


def test_clear_removes_index_file(settings, embedder, docs):
    (docs / "a.txt").write_text("rocket planet orbit")
    with VectorStore(settings, embedder=embedder) as store:
        store.import_files([docs / "a.txt"])
        assert settings.index_path.exists()

        store.clear_database()

        assert not settings.index_path.exists()

    with VectorStore(settings, embedder=embedder) as reopened:
        assert reopened.index.count() == 0
        assert reopened.check_consistency().consistent


def test_search_filters_by_creation_date(store, docs):
    (docs / "a.txt").write_text("rocket planet orbit")
    store.import_files([docs / "a.txt"])
    hour = timedelta(hours=1)
    utc_now = datetime.now(timezone.utc)

    def search(**filters):
        return store.search("rocket planet orbit", SearchOptions(min_score=0.0, **filters))

    assert len(search(created_after=utc_now - hour)) == 1
    assert len(search(created_before=datetime.now() + hour)) == 1
    assert search(created_after=datetime.now() + hour) == []
    assert search(created_before=utc_now - hour) == []


def test_search_racing_clear_sees_whole_states(store, docs):
    paths = []
    for i in range(20):
        path = docs / f"doc{i}.txt"
        path.write_text(f"shared topic unique{i}")
        paths.append(path)
    store.import_files(paths)
    options = SearchOptions(limit=50, min_score=0.0)
    assert len(store.search("shared topic", options)) == 20

    counts = []
    cleared = threading.Event()

    def searcher():
        while not cleared.is_set():
            counts.append(len(store.search("shared topic", options)))
        counts.append(len(store.search("shared topic", options)))

    thread = threading.Thread(target=searcher)
    thread.start()
    store.clear_database()
    cleared.set()
    thread.join(timeout=30)

    assert not thread.is_alive()
    assert counts[-1] == 0
    assert all(count in (0, 20) for count in counts)


def test_persistence_across_restart(settings, embedder, docs):
    (docs / "a.txt").write_text("rocket planet orbit")
    with VectorStore(settings, embedder=embedder) as first:
        first.import_files([docs / "a.txt"])

    with VectorStore(settings, embedder=embedder) as second:
        assert second.index.count() == 1
        results = second.search("rocket planet orbit")
        assert results[0].source == str(docs / "a.txt")
        assert second.check_consistency().consistent


def test_corrupt_index_file_starts_empty(settings, embedder):
    settings.index_path.parent.mkdir(parents=True, exist_ok=True)
    settings.index_path.write_bytes(b"\x00garbage" * 3)

    store = VectorStore(settings, embedder=embedder).initialize()

    assert store.state is StoreState.READY
    assert store.index.count() == 0
    assert settings.index_path.with_name("vectors.index.corrupt").exists()
    store.close()


def test_truncated_index_is_repairable(settings, embedder, three_chunk_file):
    with VectorStore(settings, embedder=embedder) as store:
        store.import_files([three_chunk_file], OPTIONS)
    data = settings.index_path.read_bytes()
    settings.index_path.write_bytes(data[: len(data) // 2])

    with VectorStore(settings, embedder=embedder) as store:
        assert store.index.count() == 0
        report = store.repair()

        assert len(report.missing_vectors) == 3
        assert store.index.count() == 3
        assert store.check_consistency().consistent


def test_repair_drops_orphan_vectors(store, three_chunk_file):
    store.import_files([three_chunk_file], OPTIONS)
    store.index.add(999, store.embed_text("orphan vector"))

    report = store.repair()

    assert report.orphan_vectors == [999]
    assert 999 not in store.index.ids()
    assert store.index.count() == 3


def test_cancellation_between_files(store, docs):
    paths = []
    for i in range(3):
        path = docs / f"doc{i}.txt"
        path.write_text(f"document number {i}")
        paths.append(path)
    cancel = threading.Event()

    stats = store.import_files(paths, on_progress=lambda p: cancel.set(), cancel_event=cancel)

    assert stats.cancelled
    assert stats.files_processed == 1
    assert store.get_statistics().recent_operations[0].status == "completed"


def test_failing_chunk_is_skipped_alone(settings, docs):
    store = make_store(settings, HashingEmbedder(poison="poison"), ["good one", "poison two", "good three"])
    path = docs / "chunks.fake"
    path.write_text("")

    stats = store.import_files([path])

    assert stats.files_processed == 1
    assert stats.vector_count == 2
    assert store.index.count() == 2
    store.close()


def test_file_with_no_embeddable_chunk_is_an_error(settings, docs):
    store = make_store(settings, HashingEmbedder(poison="poison"), ["poison one", "poison two"])
    path = docs / "chunks.fake"
    path.write_text("")

    stats = store.import_files([path])

    assert stats.files_processed == 0
    assert stats.errors[0].retryable is True
    assert store.store.count_documents() == 0
    store.close()


def test_duplicate_chunks_within_a_file(settings, embedder, docs):
    store = make_store(settings, embedder, ["same text", "same text", "other text"])
    path = docs / "chunks.fake"
    path.write_text("")

    stats = store.import_files([path])

    assert stats.vector_count == 2
    store.close()


def test_capacity_growth_during_import(settings, embedder, docs):
    store = make_store(settings, embedder, [f"chunk number {i}" for i in range(10)])
    path = docs / "chunks.fake"
    path.write_text("")

    stats = store.import_files([path], ImportOptions(batch_size=3))

    assert stats.vector_count == 10
    assert store.index.count() == 10
    assert store.index.capacity >= 10
    store.close()


def test_index_save_failure_fails_the_batch(store, three_chunk_file, monkeypatch):
    def broken_save(path):
        raise IndexPersistError("disk full")

    monkeypatch.setattr(store.index, "save", broken_save)

    stats = store.import_files([three_chunk_file], OPTIONS)

    assert stats.success is False
    assert stats.errors[0].file == "batch"
    assert stats.errors[0].retryable is True
    assert store.get_statistics().recent_operations[0].status == "failed"


def test_embed_text_rejects_empty(store):
    with pytest.raises(EmbeddingError):
        store.embed_text("   ")


def test_embedder_dimension_mismatch(settings):
    with pytest.raises(ConfigurationError):
        VectorStore(settings, embedder=HashingEmbedder(dimension=32)).initialize()


def test_closed_store_rejects_calls(store):
    store.close()

    with pytest.raises(NotInitializedError):
        store.search("anything")
    store.close()


def test_lazy_initialization(settings, embedder):
    store = VectorStore(settings, embedder=embedder)

    assert store.search("nothing yet") == []
    assert store.state is StoreState.READY
    store.close()


def test_supported_extensions(store):
    extensions = store.get_supported_extensions()

    assert ".txt" in extensions
    assert ".md" in extensions
    assert ".xyz" not in extensions
