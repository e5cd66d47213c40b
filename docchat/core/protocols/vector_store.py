"""Vector store protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import Chunk, RetrievalResult


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for vector storage.

    Every call is scoped to a snapshot: one complete, immutable build of the
    corpus. A snapshot is written once by :meth:`upsert_all` and is only read
    afterwards.
    """

    def upsert_all(self, snapshot: str, chunks: list[Chunk]) -> None:
        """Write every chunk (with its vector) into a fresh snapshot.

        Args:
            snapshot: Snapshot version; any previous content under it is reset.
            chunks: Chunks with vectors attached.
        """
        ...

    def query(self, snapshot: str, vector: list[float], k: int = 8) -> list[RetrievalResult]:
        """Nearest chunks by similarity in [0, 1], best first."""
        ...

    def get_chunks(self, snapshot: str, ids: list[str]) -> dict[str, Chunk]:
        """Chunk data (without vectors) for the given ids; unknown ids are absent."""
        ...

    def count(self, snapshot: str) -> int:
        """Get chunk count."""
        ...

    def drop(self, snapshot: str) -> None:
        """Delete a snapshot. Missing snapshots are ignored."""
        ...
