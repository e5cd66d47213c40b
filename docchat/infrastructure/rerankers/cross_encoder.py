import logging

from sentence_transformers import CrossEncoder

logger = logging.getLogger(__name__)


class CrossEncoderReranker:
    """Reranker using a local CrossEncoder model."""

    def __init__(self, model_name: str = "BAAI/bge-reranker-v2-m3"):
        """Initialize reranker.

        Args:
            model_name: HuggingFace model name.
        """
        logger.info(f"Loading reranker: {model_name}")
        self._model = CrossEncoder(model_name)
        logger.info("Reranker loaded")

    def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        """Score documents by relevance.

        Args:
            query: User query.
            documents: Candidate texts.
            top_n: Number of results to return.

        Returns:
            ``(document_index, score)`` pairs sorted by score (descending).
        """
        if not documents:
            return []

        pairs = [[query, doc] for doc in documents]
        # single-label models apply a sigmoid, so scores land in [0, 1]
        scores = self._model.predict(pairs)

        ranked = sorted(
            ((i, float(score)) for i, score in enumerate(scores)),
            key=lambda x: x[1],
            reverse=True,
        )[:top_n]

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{s:.2f}" for _, s in ranked[:3])
            logger.debug(f"Reranker top-3 scores: [{top_scores}]")

        return ranked

