"""Semantic retriever - embedding service plus vector store."""

import logging

from ..errors import DocChatError, UpstreamServiceError
from ..models.document import RetrievalResult
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol

logger = logging.getLogger(__name__)

QUERY_PREFIX = "query: "
PASSAGE_PREFIX = "passage: "


class SemanticRetriever:
    """Uniform ``retrieve(query, k)`` over the external embedding and ANN services."""

    def __init__(self, embedder: EmbedderProtocol, vector_store: VectorStoreProtocol):
        self._embedder = embedder
        self._vector_store = vector_store

    def retrieve(self, snapshot: str, query: str, k: int = 20) -> list[RetrievalResult]:
        """Nearest chunks for a query.

        Args:
            snapshot: Published index snapshot to search.
            query: Query text (usually the synonym-expanded form).
            k: Number of results.

        Returns:
            Results by descending similarity.

        Raises:
            UpstreamServiceError: Embedding or vector store failure.
        """
        try:
            vector = self._embedder.encode(f"{QUERY_PREFIX}{query}").tolist()
        except DocChatError:
            raise
        except Exception as e:
            raise UpstreamServiceError("embedding", str(e)) from e

        results = self._vector_store.query(snapshot, vector, k)
        logger.debug(f"Semantic: {len(results)} hits for '{query[:50]}'")
        return results
