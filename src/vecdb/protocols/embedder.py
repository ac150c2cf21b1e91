"""Protocol for embedding model providers."""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into fixed-dimension vectors.

    Implementations are expensive to construct (they hold a model) and cheap
    to call: build once, reuse for every import and search.
    """

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        ...

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        ...

    def embed(self, texts: list[str]) -> np.ndarray:
        """Embed a batch of texts.

        Returns: numpy array of shape (len(texts), dimension)
        """
        ...
