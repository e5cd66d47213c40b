"""Corpus source protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class CorpusSourceProtocol(Protocol):
    """Supplies raw corpus documents in the ``# Title`` / ``Source:`` convention."""

    name: str

    def load(self) -> list[tuple[str, str]]:
        """Return ``(origin, text)`` pairs, one per document.

        Raises:
            Exception: When the source cannot be read.
        """
        ...
