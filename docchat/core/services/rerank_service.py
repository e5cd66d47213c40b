"""Rerank service - cross-encoder reranking with a rank-preserving fallback."""

import logging
from typing import Optional

from ..models.document import RerankDocument, RerankResponse, RerankResult, RerankStatus
from ..protocols.reranker import RerankerProtocol

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 8


class RerankService:
    """Rerank a shortlist; never propagates a backend failure.

    Without a backend, or when the backend fails, the first ``top_n``
    documents come back in input order with strictly decreasing synthetic
    scores ``1 - index / total``, and the response status says so.
    """

    def __init__(self, backend: Optional[RerankerProtocol] = None):
        self._backend = backend

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    def rerank(
        self, query: str, documents: list[RerankDocument], top_n: int = DEFAULT_TOP_N
    ) -> RerankResponse:
        """Order documents by relevance to the query.

        Args:
            query: Original user query.
            documents: Candidates, best first.
            top_n: Number of results to keep.

        Returns:
            At most ``top_n`` results by descending relevance, and how they were produced.
        """
        if not documents:
            return RerankResponse(results=[], status=RerankStatus.SKIPPED)

        effective_top_n = min(top_n, len(documents))

        if self._backend is None:
            return RerankResponse(
                results=self._passthrough(documents, effective_top_n),
                status=RerankStatus.DISABLED,
            )

        try:
            scored = self._backend.rerank(query, [d.content for d in documents], effective_top_n)
            results = self._map_results(documents, scored, effective_top_n)
        except Exception as e:
            logger.warning(f"Reranking failed, keeping fused order: {e}")
            return RerankResponse(
                results=self._passthrough(documents, effective_top_n),
                status=RerankStatus.FALLBACK,
            )

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{r.relevance_score:.2f}" for r in results[:3])
            logger.debug(f"Reranker top-3 scores: [{top_scores}]")

        return RerankResponse(results=results, status=RerankStatus.APPLIED)

    @staticmethod
    def _map_results(
        documents: list[RerankDocument], scored: list[tuple[int, float]], top_n: int
    ) -> list[RerankResult]:
        results = []
        for index, score in scored[:top_n]:
            if not 0 <= index < len(documents):
                raise ValueError(f"Reranker returned out-of-range index {index}")
            doc = documents[index]
            results.append(
                RerankResult(
                    id=doc.id,
                    content=doc.content,
                    relevance_score=float(score),
                    original_rank=index,
                )
            )
        results.sort(key=lambda r: r.relevance_score, reverse=True)
        return results

    @staticmethod
    def _passthrough(documents: list[RerankDocument], top_n: int) -> list[RerankResult]:
        total = len(documents)
        return [
            RerankResult(
                id=doc.id,
                content=doc.content,
                relevance_score=1 - index / total,
                original_rank=index,
            )
            for index, doc in enumerate(documents[:top_n])
        ]
