"""Corpus statistics and their subscriber fan-out."""

import logging
from typing import Callable, Optional

from vecdb.models import (
    DatabaseStats,
    DocumentVectorStats,
    ImportSettings,
    VectorDBStatistics,
)
from vecdb.storage import MetadataStore

logger = logging.getLogger(__name__)

StatisticsListener = Callable[[VectorDBStatistics], None]

RECENT_OPERATIONS = 5


class StatisticsAggregator:
    """Derives statistics from the metadata store and notifies subscribers.

    Every mutating method ends with :meth:`notify`. A failing listener is
    logged and skipped; it never stops the others or the caller.
    """

    def __init__(self, store: MetadataStore, default_settings: Optional[ImportSettings] = None):
        self.store = store
        self.default_settings = default_settings or ImportSettings()
        self._listeners: list[StatisticsListener] = []

    def get_statistics(self) -> VectorDBStatistics:
        return VectorDBStatistics(
            current_operation=self.store.get_current_operation(),
            recent_operations=self.store.get_recent_operations(RECENT_OPERATIONS),
            database_stats=self.store.get_database_stats(),
            import_settings=self.get_import_settings(),
        )

    def get_import_settings(self) -> ImportSettings:
        return self.store.get_import_settings() or self.default_settings

    def on_update(self, listener: StatisticsListener) -> Callable[[], None]:
        """Subscribe to statistics snapshots.

        Returns:
            A disposer that unsubscribes the listener; safe to call twice.
        """
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def notify(self) -> None:
        if not self._listeners:
            return
        try:
            snapshot = self.get_statistics()
        except Exception:
            logger.exception("Error building statistics snapshot for subscribers")
            return

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Statistics listener {listener!r} failed")

    # Mutations

    def start_import_operation(self, configuration: dict) -> int:
        op_id = self.store.start_import_operation(configuration)
        self.notify()
        return op_id

    def update_import_operation(self, op_id: int, **fields) -> None:
        self.store.update_import_operation(op_id, **fields)
        self.notify()

    def update_document_vector_stats(self, stats: list[DocumentVectorStats]) -> None:
        """Upsert per-document stats in one transaction, then notify once."""
        with self.store.transaction():
            for entry in stats:
                self.store.upsert_document_vector_stats(entry)
        self.notify()

    def reset(self) -> None:
        """Delete every document and zero the corpus statistics."""
        self.store.clear_documents()
        self.notify()

    def update_database_stats(self, last_import_at: Optional[str] = None) -> DatabaseStats:
        stats = self.store.recompute_database_stats(last_import_at)
        logger.debug(
            f"Database stats: {stats.total_documents} documents, {stats.total_vectors} vectors"
        )
        self.notify()
        return stats
