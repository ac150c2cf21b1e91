"""Protocol for text generators used to compose RAG answers."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that turns a prompt into text.

    Implementations raise ``GeneratorConnectionError``,
    ``GeneratorTimeoutError`` or ``ModelNotFoundError`` so callers can tell
    the failure modes apart.
    """

    @property
    def name(self) -> str:
        """Return a human readable provider/model identifier."""
        ...

    def generate(self, prompt: str) -> str:
        """Generate a completion for ``prompt``."""
        ...
