"""Rerank backend protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class RerankerProtocol(Protocol):
    """Protocol for a cross-encoder style relevance scorer."""

    def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        """Score documents against the query.

        Args:
            query: User query.
            documents: Candidate texts.
            top_n: Number of results to return.

        Returns:
            ``(document_index, relevance_score)`` pairs, most relevant first.

        Raises:
            Exception: Any failure; callers apply their own fallback.
        """
        ...
