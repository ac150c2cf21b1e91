"""HNSW similarity index over unit vectors (hnswlib, cosine space)."""

import logging
import os
import struct
from pathlib import Path
from typing import Iterable, Optional

import hnswlib
import numpy as np

from vecdb.errors import IndexCorruptionError, IndexPersistError

logger = logging.getLogger(__name__)

# Layout of the header hnswlib writes in saveIndex():
# offsetLevel0, max_elements, cur_element_count, size_data_per_element,
# label_offset, offsetData (size_t), maxlevel (int), enterpoint_node (uint32),
# maxM, maxM0, M (size_t), mult (double), ef_construction (size_t)
_HEADER = struct.Struct("<6QiI3QdQ")
_LABEL_SIZE = 8
_FLOAT_SIZE = 4


class SimilarityIndex:
    """Approximate k-NN over D-dimensional vectors keyed by integer ids.

    Distances are cosine distances (``1 - cosine similarity``). Capacity is
    pre-allocated and doubled in one resize when exhausted, so inserts never
    rebuild the graph.
    """

    SPACE = "cosine"

    def __init__(
        self,
        dimension: int,
        initial_capacity: int = 1000,
        m: int = 16,
        ef_construction: int = 200,
        ef_search: int = 50,
    ):
        self.dimension = dimension
        self.initial_capacity = initial_capacity
        self.m = m
        self.ef_construction = ef_construction
        self.ef_search = ef_search
        self._index: Optional[hnswlib.Index] = None

    @property
    def ready(self) -> bool:
        return self._index is not None

    @property
    def capacity(self) -> int:
        return self._require().get_max_elements()

    def _require(self) -> hnswlib.Index:
        if self._index is None:
            raise RuntimeError("Similarity index is not initialized")
        return self._index

    def initialize(self, capacity: Optional[int] = None) -> None:
        """Allocate an empty index for at least ``capacity`` points."""
        capacity = max(capacity or self.initial_capacity, 1)
        index = hnswlib.Index(space=self.SPACE, dim=self.dimension)
        index.init_index(max_elements=capacity, ef_construction=self.ef_construction, M=self.m)
        index.set_ef(self.ef_search)
        self._index = index
        logger.debug(f"Created empty vector index (capacity {capacity})")

    def reset(self) -> None:
        """Drop every point and start over with the initial capacity."""
        self.initialize(self.initial_capacity)

    def load(self, path: str | Path) -> bool:
        """Load a persisted index.

        Returns:
            False if no index file exists at ``path``

        Raises:
            IndexCorruptionError: the file exists but cannot be deserialized
        """
        path = Path(path)
        if not path.exists():
            return False

        self._check_header(path)

        index = hnswlib.Index(space=self.SPACE, dim=self.dimension)
        try:
            index.load_index(str(path))
        except (RuntimeError, MemoryError, ValueError) as e:
            raise IndexCorruptionError(f"Cannot load vector index {path}: {e}") from e

        index.set_ef(self.ef_search)
        self._index = index
        logger.info(f"Loaded vector index from {path} ({self.count()} points)")
        return True

    def _check_header(self, path: Path) -> None:
        """Reject files whose header does not describe a loadable index."""
        try:
            file_size = path.stat().st_size
            with path.open("rb") as f:
                header = f.read(_HEADER.size)
            (
                offset_level0,
                max_elements,
                element_count,
                size_per_element,
                label_offset,
                offset_data,
                max_level,
                _enterpoint,
                _max_m,
                _max_m0,
                _m,
                _mult,
                _ef_construction,
            ) = _HEADER.unpack(header)
        except (OSError, struct.error) as e:
            raise IndexCorruptionError(f"Unreadable vector index header in {path}: {e}") from e

        problems = []
        if offset_level0 != 0:
            problems.append("bad level-0 offset")
        if label_offset - offset_data != self.dimension * _FLOAT_SIZE:
            problems.append(f"vector width does not match dimension {self.dimension}")
        if label_offset + _LABEL_SIZE != size_per_element:
            problems.append("inconsistent element size")
        if element_count > max_elements:
            problems.append("element count exceeds capacity")
        if element_count and max_level < 0:
            problems.append("missing entry point")
        # level-0 block plus one link-list length field per element
        if _HEADER.size + element_count * (size_per_element + 4) > file_size:
            problems.append("file is truncated")

        if problems:
            raise IndexCorruptionError(f"Corrupt vector index {path}: {', '.join(problems)}")

    def save(self, path: str | Path) -> None:
        """Write the index atomically (temp file, then rename).

        Raises:
            IndexPersistError: the index could not be written
        """
        index = self._require()
        path = Path(path)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            index.save_index(str(tmp_path))
            os.replace(tmp_path, path)
        except (OSError, RuntimeError) as e:
            raise IndexPersistError(f"Failed to save vector index to {path}: {e}") from e
        logger.debug(f"Saved vector index to {path} ({self.count()} points)")

    def add(self, doc_id: int, vector: np.ndarray) -> None:
        """Insert a point, replacing any existing point with the same id."""
        index = self._require()
        data = np.asarray(vector, dtype=np.float32).reshape(1, -1)
        if data.shape[1] != self.dimension:
            raise ValueError(
                f"Vector has dimension {data.shape[1]}, index expects {self.dimension}"
            )
        self._ensure_capacity(1)
        index.add_items(data, np.array([doc_id], dtype=np.int64), num_threads=1)

    def _ensure_capacity(self, extra: int) -> None:
        index = self._require()
        needed = index.get_current_count() + extra
        capacity = index.get_max_elements()
        if needed <= capacity:
            return
        new_capacity = max(capacity * 2, needed)
        index.resize_index(new_capacity)
        logger.info(f"Grew vector index capacity {capacity} -> {new_capacity}")

    def search(self, query: np.ndarray, k: int) -> list[tuple[int, float]]:
        """Return up to ``k`` ``(id, distance)`` pairs, nearest first."""
        count = self.count()
        if count == 0 or k <= 0:
            return []

        index = self._require()
        k = min(k, count)
        index.set_ef(max(self.ef_search, k))
        data = np.asarray(query, dtype=np.float32).reshape(1, -1)
        labels, distances = index.knn_query(data, k=k, num_threads=1)
        return [(int(label), float(dist)) for label, dist in zip(labels[0], distances[0])]

    def count(self) -> int:
        if self._index is None:
            return 0
        return self._index.get_current_count()

    def ids(self) -> list[int]:
        if self._index is None:
            return []
        return [int(i) for i in self._index.get_ids_list()]

    def get_vectors(self, ids: Iterable[int]) -> np.ndarray:
        ids = list(ids)
        if not ids:
            return np.empty((0, self.dimension), dtype=np.float32)
        return np.asarray(self._require().get_items(ids), dtype=np.float32)
