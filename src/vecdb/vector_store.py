"""Vector store: import, search and lifecycle over index + metadata store."""

import json
import logging
import os
import sqlite3
import threading
import time
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence

import numpy as np

from vecdb.config import Settings
from vecdb.errors import (
    ConfigurationError,
    EmbeddingError,
    IndexCorruptionError,
    IndexPersistError,
    NotInitializedError,
    ProcessorNotFoundError,
    VectorDBError,
)
from vecdb.index import SimilarityIndex
from vecdb.models import (
    ChunkMetadata,
    ConsistencyReport,
    Document,
    DocumentVectorStats,
    FileError,
    FileOutcome,
    ImportOptions,
    ImportProgress,
    ImportSettings,
    ImportStats,
    ProcessedFile,
    SearchOptions,
    SearchResult,
    VectorDBStatistics,
)
from vecdb.models.statistics import COMPLETED, FAILED
from vecdb.processors import ProcessorRegistry, expand_paths
from vecdb.protocols import EmbeddingProvider
from vecdb.stats import StatisticsAggregator, StatisticsListener
from vecdb.storage import MetadataStore
from vecdb.storage.store import now
from vecdb.utils import content_hash, count_tokens

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportProgress], None]

# (content, metadata, content hash, id of the existing row or None)
_PendingChunk = tuple[str, ChunkMetadata, str, Optional[int]]


class StoreState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


def _batched(items: Sequence, size: int) -> Iterator[Sequence]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _naive(value: datetime) -> datetime:
    """Local naive datetime, comparable with stored timestamps."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class VectorStore:
    """Keeps a similarity index and a metadata store in step.

    Collaborators are injected; anything left out is built from
    ``settings`` during :meth:`initialize`. One coarse lock serializes
    import, search, clear and repair, so readers never observe the index
    and the metadata store out of step.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        embedder: Optional[EmbeddingProvider] = None,
        registry: Optional[ProcessorRegistry] = None,
        store: Optional[MetadataStore] = None,
        index: Optional[SimilarityIndex] = None,
        statistics: Optional[StatisticsAggregator] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.registry = registry or ProcessorRegistry.default()
        self.store = store or MetadataStore(self.settings.database_path)
        self.index = index or SimilarityIndex(
            self.settings.dimension, self.settings.index_capacity
        )
        self.statistics = statistics or StatisticsAggregator(
            self.store,
            ImportSettings(file_types=self.registry.get_supported_extensions()),
        )
        self._embedder = embedder
        self._lock = threading.RLock()
        self.state = StoreState.UNINITIALIZED

    def __enter__(self) -> "VectorStore":
        return self.initialize()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Lifecycle

    def initialize(self) -> "VectorStore":
        """Open the metadata store, load the embedder and the index.

        Idempotent: returns immediately once ready.

        Raises:
            NotInitializedError: the store has been closed
        """
        with self._lock:
            if self.state in (StoreState.READY, StoreState.INITIALIZING):
                return self
            if self.state is StoreState.CLOSED:
                raise NotInitializedError("Vector store is closed")

            self.state = StoreState.INITIALIZING
            try:
                self.store.initialize()
                if self._embedder is None:
                    self._embedder = self._create_embedder()
                if self._embedder.dimension != self.index.dimension:
                    raise ConfigurationError(
                        f"Embedder {self._embedder.model_name} produces "
                        f"{self._embedder.dimension}-dimensional vectors, "
                        f"index expects {self.index.dimension}"
                    )
                self._check_model_metadata()
                self._load_index()
                if self.store.get_import_settings() is None:
                    self.store.save_import_settings(self.statistics.default_settings)
            except Exception:
                logger.error("Failed to initialize vector store")
                self.store.close()
                self.state = StoreState.UNINITIALIZED
                raise

            self.state = StoreState.READY
            self._check_consistency()
            logger.info(
                f"Vector store ready: {self.store.count_documents()} documents, "
                f"{self.index.count()} vectors"
            )
            return self

    def _create_embedder(self) -> EmbeddingProvider:
        # Imported here to avoid loading torch unless needed
        from vecdb.embedders import SentenceTransformerEmbedder

        return SentenceTransformerEmbedder(self.settings.embedding_model)

    def _check_model_metadata(self) -> None:
        model = self.store.get_metadata("embedding_model")
        dimension = self.store.get_metadata("dimension")
        if model is None:
            self.store.set_metadata("embedding_model", self._embedder.model_name)
            self.store.set_metadata("dimension", str(self._embedder.dimension))
        elif model != self._embedder.model_name or dimension != str(self._embedder.dimension):
            logger.warning(
                f"Stored vectors were built with {model} ({dimension} dims), "
                f"now using {self._embedder.model_name}; search quality may suffer"
            )

    def _load_index(self) -> None:
        path = self.settings.index_path
        try:
            loaded = self.index.load(path)
        except IndexCorruptionError as e:
            self._recover_corrupt_index(path, e)
            return
        if not loaded:
            self.index.initialize(self.settings.index_capacity)
            logger.info("Created new vector index")

    def _recover_corrupt_index(self, path: Path, error: IndexCorruptionError) -> None:
        """Set the unreadable index file aside and start from an empty index."""
        logger.warning(f"Failed to load vector index, creating a new one: {error}")
        backup = path.with_name(path.name + ".corrupt")
        try:
            os.replace(path, backup)
            logger.warning(f"Moved unreadable index to {backup}")
        except OSError as e:
            logger.warning(f"Could not move unreadable index aside: {e}")
        self.index.initialize(self.settings.index_capacity)

    def _ensure_ready(self) -> None:
        if self.state is StoreState.CLOSED:
            raise NotInitializedError("Vector store is closed")
        if self.state is not StoreState.READY:
            self.initialize()

    def close(self) -> None:
        """Persist a non-empty index and close the metadata store.

        Raises:
            IndexPersistError: the index could not be saved (the metadata
                store is closed regardless)
        """
        with self._lock:
            if self.state is StoreState.CLOSED:
                return
            if self.state is StoreState.UNINITIALIZED:
                self.state = StoreState.CLOSED
                return
            try:
                if self.index.count() > 0:
                    self.index.save(self.settings.index_path)
                    logger.info("Vector index saved successfully")
            finally:
                self.store.close()
                self.state = StoreState.CLOSED

    # Embedding

    def embed_text(self, text: str) -> np.ndarray:
        """Embed one text into a unit-length vector.

        Raises:
            EmbeddingError: the text is empty or the backend failed
        """
        text = text.strip() if text else ""
        if not text:
            raise EmbeddingError("Cannot embed empty text", retryable=False)
        return self._embed_batch([text])[0]

    def _embed_batch(self, texts: list[str]) -> np.ndarray:
        try:
            vectors = np.asarray(self._embedder.embed(texts), dtype=np.float32)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding failed: {e}") from e

        expected = (len(texts), self.index.dimension)
        if vectors.shape != expected:
            raise EmbeddingError(f"Embedder returned shape {vectors.shape}, expected {expected}")
        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        if np.any(norms == 0):
            raise EmbeddingError("Embedder returned a zero vector")
        return vectors / norms

    # Import

    def import_files(
        self,
        paths: Iterable[str | Path],
        options: Optional[ImportOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportStats:
        """Import files (or directories) into the store.

        Per-file failures are collected in ``errors`` and never raised. The
        result has ``success=False`` only when the batch itself failed, e.g.
        the index could not be persisted.

        Args:
            paths: Files, or directories when ``options.is_directory`` is set
            options: Chunking and duplicate handling; unset sizes come from
                the stored import settings
            on_progress: Called after every file, including failed ones
            cancel_event: When set, no further files are started

        Raises:
            ConfigurationError: invalid options, before any work starts
        """
        paths = list(paths)
        options = options or ImportOptions()

        with self._lock:
            self._ensure_ready()
            resolved = options.resolve(self.statistics.get_import_settings())
            if resolved.is_directory:
                files = expand_paths(paths, self.registry.get_supported_extensions())
            else:
                files = [Path(p) for p in paths]

            configuration = resolved.to_dict()
            configuration["paths"] = [str(p) for p in paths]
            op_id = self.statistics.start_import_operation(configuration)
            started = time.monotonic()
            logger.info(f"Importing {len(files)} files")

            outcomes: list[FileOutcome] = []
            cancelled = False
            try:
                for path in files:
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        logger.info(f"Import cancelled after {len(outcomes)} of {len(files)} files")
                        break
                    outcome = self._import_file(path, resolved)
                    outcomes.append(outcome)
                    self._report(
                        on_progress,
                        ImportProgress(
                            files_processed=len(outcomes),
                            total_files=len(files),
                            current_file=str(path),
                            chunks_created=sum(o.vectors_added for o in outcomes),
                            status="processing" if outcome.ok else "error",
                            error=outcome.error.error if outcome.error else None,
                        ),
                    )

                stats = ImportStats.from_outcomes(outcomes, cancelled=cancelled)
                self._finalize_import(outcomes)
            except IndexPersistError as e:
                logger.error(f"Error importing files: {e}")
                partial = ImportStats.from_outcomes(outcomes, cancelled=cancelled)
                self._finish_operation(op_id, FAILED, partial, started, batch_error=str(e))
                return ImportStats(
                    success=False,
                    files_processed=partial.files_processed,
                    vector_count=partial.vector_count,
                    errors=[FileError(file="batch", error=str(e), retryable=e.retryable)],
                    cancelled=cancelled,
                )
            except Exception as e:
                logger.error(f"Import aborted: {e}")
                self._abandon_operation(op_id, str(e))
                raise

            self._finish_operation(op_id, COMPLETED, stats, started)
            self._report(
                on_progress,
                ImportProgress(
                    files_processed=len(outcomes),
                    total_files=len(files),
                    current_file=None,
                    chunks_created=stats.vector_count,
                    status="cancelled" if cancelled else "completed",
                ),
            )
            logger.info(
                f"Imported {stats.files_processed} files, {stats.vector_count} vectors, "
                f"{len(stats.errors)} errors"
            )
            return stats

    def _import_file(self, path: Path, options: ImportOptions) -> FileOutcome:
        """Import one file. Failures come back as the outcome's error."""
        processor = self.registry.get_processor(path)
        if processor is None:
            error = ProcessorNotFoundError(str(path))
            logger.warning(f"{error}: {path}")
            return FileOutcome(
                str(path), error=FileError(str(path), str(error), error.retryable)
            )

        try:
            processed = processor.process_file(path, options)
            outcome = self._store_chunks(path, processed, options)
        except (sqlite3.Error, NotInitializedError):
            raise
        except Exception as e:
            retryable = e.retryable if isinstance(e, VectorDBError) else True
            logger.error(f"Error processing {path}: {e}")
            return FileOutcome(
                str(path), error=FileError(str(path), str(e) or type(e).__name__, retryable)
            )

        logger.info(
            f"  {path}: {outcome.vectors_added} vectors, "
            f"{outcome.chunks_skipped} skipped, {outcome.chunks_failed} failed"
        )
        return outcome

    def _store_chunks(self, path: Path, processed: ProcessedFile, options: ImportOptions) -> FileOutcome:
        outcome = FileOutcome(str(path))
        pending: list[_PendingChunk] = []
        seen: set[str] = set()

        for content, meta in zip(processed.contents, processed.metadata):
            if not content.strip():
                outcome.chunks_skipped += 1
                continue
            digest = content_hash(content)
            if digest in seen:
                outcome.chunks_skipped += 1
                continue
            seen.add(digest)

            existing = self.store.find_document_by_hash(digest)
            if existing is not None and options.skip_duplicates and not options.force_update:
                outcome.chunks_skipped += 1
                continue
            pending.append((content, meta, digest, existing.id if existing else None))

        for batch in _batched(pending, options.batch_size or len(pending) or 1):
            vectors = self._embed_chunks([item[0] for item in batch], path)
            for item, vector in zip(batch, vectors):
                doc_id = self._write_chunk(item, vector) if vector is not None else None
                if doc_id is None:
                    outcome.chunks_failed += 1
                    continue
                outcome.vectors_added += 1
                outcome.document_ids.add(doc_id)

        if pending and outcome.vectors_added == 0:
            outcome.error = FileError(
                str(path), f"All {len(pending)} chunks failed to embed", retryable=True
            )
        return outcome

    def _embed_chunks(self, texts: list[str], path: Path) -> list[Optional[np.ndarray]]:
        """Embed a batch, falling back to one-by-one so one bad chunk is skipped alone."""
        try:
            return list(self._embed_batch(texts))
        except EmbeddingError as e:
            if len(texts) == 1:
                logger.error(f"Error embedding chunk from {path}: {e}")
                return [None]
            logger.warning(f"Batch embedding failed for {path}, retrying chunk by chunk: {e}")

        vectors: list[Optional[np.ndarray]] = []
        for position, text in enumerate(texts):
            try:
                vectors.append(self._embed_batch([text])[0])
            except EmbeddingError as e:
                logger.error(f"Error embedding chunk {position} from {path}: {e}")
                vectors.append(None)
        return vectors

    def _write_chunk(self, item: _PendingChunk, vector: np.ndarray) -> Optional[int]:
        """Commit the document row and its index point as a pair."""
        content, meta, digest, existing_id = item
        try:
            with self.store.transaction():
                if existing_id is None:
                    doc_id = self.store.insert_document(content, meta, digest)
                else:
                    doc_id = existing_id
                    self.store.update_document(doc_id, meta)
                self.index.add(doc_id, vector)
        except (RuntimeError, ValueError, MemoryError) as e:
            logger.error(f"Error indexing chunk from {meta.source}: {e}")
            return None
        return doc_id

    def _finalize_import(self, outcomes: list[FileOutcome]) -> None:
        touched = sorted(set().union(*(o.document_ids for o in outcomes)))
        if touched:
            self.statistics.update_document_vector_stats(
                [self._document_vector_stats(doc_id) for doc_id in touched]
            )
        self.statistics.update_database_stats(last_import_at=now())
        self.index.save(self.settings.index_path)

    def _document_vector_stats(self, doc_id: int) -> DocumentVectorStats:
        doc = self.store.get_document(doc_id)
        return DocumentVectorStats(
            document_id=doc_id,
            vector_count=1,
            average_vector_length=float(self.index.dimension),
            total_tokens=count_tokens(doc.content) if doc else 0,
            chunks_count=1,
        )

    def _finish_operation(
        self,
        op_id: int,
        status: str,
        stats: ImportStats,
        started: float,
        batch_error: Optional[str] = None,
    ) -> None:
        details = [asdict(e) for e in stats.errors]
        if batch_error:
            details.append({"file": "batch", "error": batch_error, "retryable": True})
        self.statistics.update_import_operation(
            op_id,
            status=status,
            files_processed=stats.files_processed,
            files_failed=len(stats.errors),
            total_processing_time=time.monotonic() - started,
            error_details=json.dumps(details) if details else None,
        )

    def _abandon_operation(self, op_id: int, error: str) -> None:
        try:
            self.statistics.update_import_operation(
                op_id, status=FAILED, error_details=json.dumps([{"file": "batch", "error": error}])
            )
        except Exception:
            logger.exception(f"Could not mark import operation {op_id} as failed")

    @staticmethod
    def _report(on_progress: Optional[ProgressCallback], progress: ImportProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception:
            logger.exception("Import progress callback failed")

    # Search

    def search(self, query: str, options: Optional[SearchOptions] = None) -> list[SearchResult]:
        """Semantic search, best match first.

        Raises:
            ConfigurationError: invalid options
            EmbeddingError: the query could not be embedded
        """
        options = options or SearchOptions()
        options.validate()

        with self._lock:
            self._ensure_ready()
            count = self.index.count()
            if count == 0:
                return []

            query_vector = self.embed_text(query)
            k = min(options.limit * self.settings.overfetch_factor, count)
            neighbours = self.index.search(query_vector, k)

            results: list[SearchResult] = []
            for doc_id, distance in neighbours:
                score = 1.0 - distance
                if score < options.min_score:
                    continue
                doc = self.store.get_document(doc_id)
                if doc is None:
                    logger.debug(f"Index point {doc_id} has no document row")
                    continue
                if not self._matches_filters(doc, options):
                    continue
                results.append(
                    SearchResult(
                        document_id=doc.id,
                        content=doc.content,
                        score=score,
                        file_type=doc.type,
                        source=doc.source,
                        title=doc.title,
                        category=doc.category,
                        created_at=doc.created_at,
                    )
                )
                if len(results) >= options.limit:
                    break

            logger.debug(f"Search returned {len(results)} of {len(neighbours)} neighbours")
            return results

    @staticmethod
    def _matches_filters(doc: Document, options: SearchOptions) -> bool:
        if options.file_types:
            wanted = {t.lower().lstrip(".") for t in options.file_types}
            if doc.type.lower().lstrip(".") not in wanted:
                return False
        if options.created_after or options.created_before:
            created = datetime.fromisoformat(doc.created_at)
            if options.created_after and created < _naive(options.created_after):
                return False
            if options.created_before and created > _naive(options.created_before):
                return False
        return True

    # Maintenance

    def clear_database(self) -> None:
        """Delete every document, reset the index and remove its file.

        Raises:
            IndexPersistError: the index file could not be removed
        """
        with self._lock:
            self._ensure_ready()
            try:
                self.settings.index_path.unlink(missing_ok=True)
            except OSError as e:
                raise IndexPersistError(
                    f"Failed to remove vector index {self.settings.index_path}: {e}"
                ) from e
            self.index.reset()
            self.statistics.reset()
            logger.info("Database cleared")

    def check_consistency(self) -> ConsistencyReport:
        with self._lock:
            self._ensure_ready()
            return self._check_consistency()

    def _check_consistency(self) -> ConsistencyReport:
        doc_ids = set(self.store.document_ids())
        index_ids = set(self.index.ids())
        report = ConsistencyReport(
            missing_vectors=sorted(doc_ids - index_ids),
            orphan_vectors=sorted(index_ids - doc_ids),
        )
        if not report.consistent:
            logger.warning(
                f"Index and metadata disagree: {len(report.missing_vectors)} documents "
                f"without vectors, {len(report.orphan_vectors)} vectors without documents; "
                f"run repair to fix"
            )
        return report

    def repair(self) -> ConsistencyReport:
        """Bring the index back in line with the metadata store.

        Documents missing from the index are re-embedded from their stored
        content; index points without a document are dropped.

        Returns:
            The inconsistencies found before repairing
        """
        with self._lock:
            self._ensure_ready()
            report = self._check_consistency()
            if report.consistent:
                logger.info("Index and metadata are consistent, nothing to repair")
                return report

            if report.orphan_vectors:
                self._rebuild_index(exclude=set(report.orphan_vectors))

            restored = []
            for doc_id in report.missing_vectors:
                doc = self.store.get_document(doc_id)
                try:
                    vector = self.embed_text(doc.content)
                except EmbeddingError as e:
                    logger.error(f"Could not re-embed document {doc_id}: {e}")
                    continue
                self.index.add(doc_id, vector)
                restored.append(doc_id)

            if restored:
                self.statistics.update_document_vector_stats(
                    [self._document_vector_stats(doc_id) for doc_id in restored]
                )
            self.statistics.update_database_stats()
            self.index.save(self.settings.index_path)
            logger.info(
                f"Repaired index: {len(restored)} vectors restored, "
                f"{len(report.orphan_vectors)} orphans dropped"
            )
            return report

    def _rebuild_index(self, exclude: set[int]) -> None:
        keep = [doc_id for doc_id in self.index.ids() if doc_id not in exclude]
        vectors = self.index.get_vectors(keep)
        self.index.initialize(max(self.settings.index_capacity, len(keep)))
        for doc_id, vector in zip(keep, vectors):
            self.index.add(doc_id, vector)

    # Statistics and capabilities

    def get_statistics(self) -> VectorDBStatistics:
        with self._lock:
            self._ensure_ready()
            return self.statistics.get_statistics()

    def on_statistics_update(self, listener: StatisticsListener) -> Callable[[], None]:
        return self.statistics.on_update(listener)

    def get_supported_extensions(self) -> list[str]:
        return self.registry.get_supported_extensions()
