"""Exception hierarchy for VecDB.

Every error carries a ``retryable`` hint so callers (import result, RAG
answers) can decide whether offering a retry makes sense.
"""


class VectorDBError(Exception):
    """Base class for all VecDB errors."""

    retryable: bool = False

    def __init__(self, message: str, *, retryable: bool | None = None):
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable


class ConfigurationError(VectorDBError):
    """Invalid settings or options, rejected before any work starts."""


class NotInitializedError(VectorDBError):
    """Operation invoked on a closed (or never initialized) store."""


class ProcessorNotFoundError(VectorDBError):
    """No document processor handles the file's extension."""

    def __init__(self, path: str):
        super().__init__("No processor found for file type")
        self.path = path


class EmbeddingError(VectorDBError):
    """The embedding backend failed or the input was empty."""

    retryable = True


class IndexCorruptionError(VectorDBError):
    """A persisted similarity index could not be deserialized."""


class IndexPersistError(VectorDBError):
    """The similarity index could not be written to disk."""

    retryable = True


class GeneratorError(VectorDBError):
    """Base class for text generator (LLM provider) failures."""


class GeneratorConnectionError(GeneratorError, ConnectionError):
    """The generator service could not be reached."""

    retryable = True


class GeneratorTimeoutError(GeneratorError, TimeoutError):
    """The generator service did not answer within the request timeout."""

    retryable = True


class ModelNotFoundError(GeneratorError):
    """The requested model is not available on the provider."""
