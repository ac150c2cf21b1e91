"""Options and results for import, search and repair operations."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from vecdb.errors import ConfigurationError
from vecdb.models.statistics import ImportSettings


@dataclass
class ImportOptions:
    """Options for one import run.

    ``chunk_size``, ``overlap_size`` and ``batch_size`` left as ``None`` are
    filled from the stored import settings by :meth:`resolve`.
    """

    chunk_size: Optional[int] = None
    overlap_size: Optional[int] = None
    batch_size: Optional[int] = None
    skip_duplicates: bool = True
    force_update: bool = False
    is_directory: bool = False

    def resolve(self, settings: ImportSettings) -> "ImportOptions":
        """Return a copy with unset sizes taken from ``settings``, validated."""
        resolved = ImportOptions(
            chunk_size=self.chunk_size if self.chunk_size is not None else settings.chunk_size,
            overlap_size=(
                self.overlap_size if self.overlap_size is not None else settings.overlap_size
            ),
            batch_size=self.batch_size if self.batch_size is not None else settings.batch_size,
            skip_duplicates=self.skip_duplicates,
            force_update=self.force_update,
            is_directory=self.is_directory,
        )
        resolved.validate()
        return resolved

    def validate(self) -> None:
        if self.chunk_size is None or self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap_size is None or self.overlap_size < 0:
            raise ConfigurationError(
                f"overlap_size must be non-negative, got {self.overlap_size}"
            )
        if self.overlap_size >= self.chunk_size:
            raise ConfigurationError(
                f"overlap_size ({self.overlap_size}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        if self.batch_size is not None and self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ImportProgress:
    """Progress snapshot reported after every file."""

    files_processed: int
    total_files: int
    current_file: Optional[str]
    chunks_created: int
    status: str
    error: Optional[str] = None


@dataclass(frozen=True)
class FileError:
    """A per-file import failure."""

    file: str
    error: str
    retryable: bool


@dataclass
class FileOutcome:
    """Result of importing one file: either vectors added or an error."""

    path: str
    vectors_added: int = 0
    chunks_skipped: int = 0
    chunks_failed: int = 0
    document_ids: set[int] = field(default_factory=set)
    error: Optional[FileError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ImportStats:
    """Result of an import run."""

    success: bool
    files_processed: int = 0
    vector_count: int = 0
    errors: list[FileError] = field(default_factory=list)
    cancelled: bool = False

    @classmethod
    def from_outcomes(cls, outcomes: list[FileOutcome], cancelled: bool = False) -> "ImportStats":
        """Fold per-file outcomes into batch totals."""
        return cls(
            success=True,
            files_processed=sum(1 for o in outcomes if o.ok),
            vector_count=sum(o.vectors_added for o in outcomes),
            errors=[o.error for o in outcomes if o.error is not None],
            cancelled=cancelled,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SearchOptions:
    """Options for a semantic search.

    File type and date filters are applied to hydrated metadata after the
    nearest-neighbour query.
    """

    limit: int = 10
    min_score: float = 0.4
    file_types: Optional[list[str]] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None

    def validate(self) -> None:
        if self.limit <= 0:
            raise ConfigurationError(f"limit must be positive, got {self.limit}")
        if not 0.0 <= self.min_score <= 1.0:
            raise ConfigurationError(f"min_score must be within [0, 1], got {self.min_score}")


@dataclass
class ConsistencyReport:
    """Mismatch between metadata rows and index points."""

    missing_vectors: list[int] = field(default_factory=list)
    orphan_vectors: list[int] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.missing_vectors and not self.orphan_vectors
