"""Runtime settings, read from ``VECDB_*`` environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from vecdb.errors import ConfigurationError

DEFAULT_DATA_DIR = Path.home() / ".vecdb"
DEFAULT_EMBEDDING_MODEL = "all-MiniLM-L6-v2"
DEFAULT_DIMENSION = 384  # all-MiniLM-L6-v2


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class Settings:
    """Settings for one data directory (database + index file)."""

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    dimension: int = DEFAULT_DIMENSION
    index_capacity: int = 1000
    overfetch_factor: int = 2
    generator_timeout: float = 30.0
    ollama_endpoint: str = "http://localhost:11434"
    ollama_model: str = "llama2"
    anthropic_model: str = "claude-3-haiku-20240307"
    anthropic_api_key: str | None = None

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).expanduser()
        if self.dimension <= 0:
            raise ConfigurationError("dimension must be positive")
        if self.index_capacity <= 0:
            raise ConfigurationError("index_capacity must be positive")
        if self.overfetch_factor < 1:
            raise ConfigurationError("overfetch_factor must be at least 1")
        if self.generator_timeout <= 0:
            raise ConfigurationError("generator_timeout must be positive")

    @property
    def database_path(self) -> Path:
        return self.data_dir / "db" / "vectordb.sqlite"

    @property
    def index_path(self) -> Path:
        return self.data_dir / "vectors.index"

    @classmethod
    def from_env(cls, data_dir: str | Path | None = None) -> "Settings":
        """Build settings from the environment.

        Args:
            data_dir: Overrides ``VECDB_DATA_DIR`` when given.
        """
        return cls(
            data_dir=Path(data_dir or os.getenv("VECDB_DATA_DIR") or DEFAULT_DATA_DIR),
            embedding_model=os.getenv("VECDB_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            dimension=_env_int("VECDB_DIMENSION", DEFAULT_DIMENSION),
            index_capacity=_env_int("VECDB_INDEX_CAPACITY", 1000),
            overfetch_factor=_env_int("VECDB_OVERFETCH_FACTOR", 2),
            generator_timeout=_env_float("VECDB_GENERATOR_TIMEOUT", 30.0),
            ollama_endpoint=os.getenv("VECDB_OLLAMA_ENDPOINT", "http://localhost:11434"),
            ollama_model=os.getenv("VECDB_OLLAMA_MODEL", "llama2"),
            anthropic_model=os.getenv("VECDB_ANTHROPIC_MODEL", "claude-3-haiku-20240307"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        )
