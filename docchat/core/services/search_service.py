"""Search service - the hybrid retrieval pipeline.

Each call runs classify -> retrieve -> fuse -> rerank -> confidence gate,
once and in that order. Any failure before the gate propagates, except a
rerank failure, which degrades to the fused order.
"""

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from ..errors import InvalidQueryError
from ..lexical.bm25 import DEFAULT_B, DEFAULT_K1, BM25Searcher
from ..models.document import (
    BM25Result,
    Chunk,
    FusedResult,
    RerankDocument,
    RerankResponse,
    RerankStatus,
    RetrievalResult,
)
from ..models.query import ClassifiedQuery, RetrievalStrategy
from ..models.retrieval import Confidence, GateSource, Passage, RetrievalOutcome
from ..protocols.vector_store import VectorStoreProtocol
from ..strategies.fusion import FusionStrategy, ReciprocalRankFusion, single_source_results
from .index_registry import IndexRegistry
from .query_classifier import QueryClassifier
from .rerank_service import RerankService
from .semantic_retriever import SemanticRetriever

logger = logging.getLogger(__name__)

AUTO_STRATEGY = "auto"
_QUOTED_PHRASE = re.compile(r'"([^"]+)"')


class SearchService:
    """Hybrid search with fusion, reranking and a confidence gate."""

    def __init__(
        self,
        retriever: SemanticRetriever,
        vector_store: VectorStoreProtocol,
        registry: IndexRegistry,
        reranker: RerankService,
        fusion: Optional[FusionStrategy] = None,
        classifier: Optional[QueryClassifier] = None,
        fetch_k: int = 20,
        rerank_candidates: int = 25,
        top_n: int = 8,
        confidence_threshold: float = 0.3,
        bm25_k1: float = DEFAULT_K1,
        bm25_b: float = DEFAULT_B,
    ):
        """Initialize search service.

        Args:
            retriever: Semantic retriever.
            vector_store: Vector store, for chunk data of keyword-only hits.
            registry: Published snapshot and term index lookup.
            reranker: Rerank service with fallback.
            fusion: Fusion strategy, RRF by default.
            classifier: Query classifier.
            fetch_k: Candidates fetched from each retriever.
            rerank_candidates: Fused candidates sent to the reranker.
            top_n: Number of passages returned.
            confidence_threshold: Minimum gate score for high confidence.
            bm25_k1: BM25 term frequency saturation.
            bm25_b: BM25 length normalization.
        """
        self._retriever = retriever
        self._vector_store = vector_store
        self._registry = registry
        self._reranker = reranker
        self._fusion = fusion or ReciprocalRankFusion()
        self._classifier = classifier or QueryClassifier()
        self._fetch_k = fetch_k
        self._rerank_candidates = rerank_candidates
        self._top_n = top_n
        self._confidence_threshold = confidence_threshold
        self._bm25_k1 = bm25_k1
        self._bm25_b = bm25_b
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="retrieve")

    def search(
        self,
        query: str,
        strategy: str | RetrievalStrategy = AUTO_STRATEGY,
        confidence_threshold: Optional[float] = None,
    ) -> RetrievalOutcome:
        """Retrieve supporting passages for a query.

        Args:
            query: User query.
            strategy: ``auto`` to use the classifier, or a forced strategy.
            confidence_threshold: Override the configured gate threshold.

        Returns:
            Passages plus the confidence decision and degradation flags.

        Raises:
            InvalidQueryError: Unknown strategy.
            UpstreamServiceError: Embedding or vector store failure.
        """
        threshold = self._confidence_threshold if confidence_threshold is None else confidence_threshold

        classified = self._classifier.classify(query)
        requested = self._resolve_strategy(classified, strategy)

        snapshot = self._registry.current_snapshot()
        if snapshot is None:
            logger.warning("No index snapshot published yet")
            return self._empty_outcome(classified, requested, requested, note="no index published")

        searcher = self._keyword_searcher(snapshot)
        resolved = requested
        if requested.uses_keyword and searcher is None:
            logger.warning(f"Keyword index missing for {snapshot}, using semantic retrieval only")
            resolved = RetrievalStrategy.SEMANTIC

        retrieval_start = time.monotonic()
        semantic, keyword = self._retrieve(snapshot, classified, resolved, searcher)
        fused = self._fuse(snapshot, semantic, keyword)
        retrieval_ms = (time.monotonic() - retrieval_start) * 1000

        candidates = fused[: self._rerank_candidates]
        rerank_start = time.monotonic()
        reranked = self._reranker.rerank(
            classified.original,
            [RerankDocument(id=c.id, content=c.chunk.content) for c in candidates],
            self._top_n,
        )
        rerank_ms = (time.monotonic() - rerank_start) * 1000

        passages = self._passages(candidates, reranked)
        gate_score, gate_source = self._gate_score(
            passages, reranked, semantic, searcher, classified
        )
        confidence = Confidence.HIGH if passages and gate_score >= threshold else Confidence.LOW

        notes = []
        if resolved is not requested:
            notes.append("keyword index missing, semantic only")
        if reranked.status is RerankStatus.FALLBACK:
            notes.append("reranker unavailable, fused order kept")

        logger.info(
            f"Search: {len(passages)} passages for '{query[:50]}' "
            f"(strategy={resolved.value}, rerank={reranked.status.value}, "
            f"gate={gate_source.value}:{gate_score:.2f}, confidence={confidence.value})"
        )

        return RetrievalOutcome(
            query=classified,
            requested_strategy=requested,
            strategy=resolved,
            passages=passages,
            confidence=confidence,
            gate_score=gate_score,
            gate_source=gate_source,
            rerank_status=reranked.status,
            keyword_index_available=searcher is not None,
            snapshot=snapshot,
            retrieval_ms=retrieval_ms,
            rerank_ms=rerank_ms,
            notes=notes,
        )

    def _resolve_strategy(
        self, classified: ClassifiedQuery, strategy: str | RetrievalStrategy
    ) -> RetrievalStrategy:
        if isinstance(strategy, RetrievalStrategy):
            return strategy
        if strategy == AUTO_STRATEGY:
            return classified.strategy
        try:
            return RetrievalStrategy(strategy)
        except ValueError:
            allowed = ", ".join([AUTO_STRATEGY] + [s.value for s in RetrievalStrategy])
            raise InvalidQueryError(f"Unknown retrieval strategy '{strategy}' (allowed: {allowed})")

    def _keyword_searcher(self, snapshot: str) -> Optional[BM25Searcher]:
        index = self._registry.load_term_index(snapshot)
        if index is None:
            return None
        return BM25Searcher(index, self._bm25_k1, self._bm25_b)

    def _retrieve(
        self,
        snapshot: str,
        classified: ClassifiedQuery,
        strategy: RetrievalStrategy,
        searcher: Optional[BM25Searcher],
    ) -> tuple[list[RetrievalResult], list[BM25Result]]:
        semantic_future = None
        if strategy.uses_semantic:
            semantic_future = self._executor.submit(
                self._retriever.retrieve, snapshot, classified.expanded, self._fetch_k
            )

        keyword: list[BM25Result] = []
        if strategy.uses_keyword and searcher is not None:
            keyword = self._keyword_search(searcher, classified)

        semantic = semantic_future.result() if semantic_future is not None else []
        return semantic, keyword

    def _keyword_search(self, searcher: BM25Searcher, classified: ClassifiedQuery) -> list[BM25Result]:
        phrase = _QUOTED_PHRASE.search(classified.original)
        if phrase:
            return searcher.search_phrase(phrase.group(1), self._fetch_k)
        return searcher.search(classified.keyword_query, self._fetch_k)

    def _fuse(
        self,
        snapshot: str,
        semantic: list[RetrievalResult],
        keyword: list[BM25Result],
    ) -> list[FusedResult]:
        chunks: dict[str, Chunk] = {}
        semantic_ids = {r.chunk_id for r in semantic}
        missing = [r.chunk_id for r in keyword if r.chunk_id not in semantic_ids]
        if missing:
            chunks = self._vector_store.get_chunks(snapshot, missing)

        if semantic and keyword:
            return self._fusion.fuse(semantic, keyword, chunks)
        return single_source_results(semantic, keyword, chunks)

    @staticmethod
    def _passages(candidates: list[FusedResult], reranked: RerankResponse) -> list[Passage]:
        by_id = {c.id: c.chunk for c in candidates}
        passages = []
        for result in reranked.results:
            chunk = by_id[result.id]
            passages.append(
                Passage(
                    id=chunk.id,
                    title=chunk.title,
                    url=chunk.url,
                    content=chunk.content,
                    score=result.relevance_score,
                )
            )
        return passages

    @staticmethod
    def _gate_score(
        passages: list[Passage],
        reranked: RerankResponse,
        semantic: list[RetrievalResult],
        searcher: Optional[BM25Searcher],
        classified: ClassifiedQuery,
    ) -> tuple[float, GateSource]:
        """Top score on a [0, 1] scale that matches how the ranking was produced.

        Live reranker scores are used as is. Synthetic fallback scores carry no
        relevance signal, so the gate then reads the top passage's semantic
        similarity, or its keyword coverage for keyword-only hits.
        """
        if not passages:
            return 0.0, GateSource.NONE

        if reranked.status is RerankStatus.APPLIED:
            return passages[0].score, GateSource.RERANK

        top_id = passages[0].id
        similarities = {r.chunk_id: r.score for r in semantic}
        if top_id in similarities:
            return similarities[top_id], GateSource.SEMANTIC

        if searcher is not None:
            query = classified.keyword_query or classified.original
            return searcher.term_coverage(query, top_id), GateSource.KEYWORD_COVERAGE

        return 0.0, GateSource.NONE

    def _empty_outcome(
        self,
        classified: ClassifiedQuery,
        requested: RetrievalStrategy,
        resolved: RetrievalStrategy,
        note: str,
    ) -> RetrievalOutcome:
        return RetrievalOutcome(
            query=classified,
            requested_strategy=requested,
            strategy=resolved,
            passages=[],
            confidence=Confidence.LOW,
            gate_score=0.0,
            gate_source=GateSource.NONE,
            rerank_status=RerankStatus.SKIPPED,
            keyword_index_available=False,
            notes=[note],
        )


def unique_sources(passages: list[Passage]) -> list[str]:
    """Source URLs in passage order, without repeats."""
    seen = set()
    sources = []
    for p in passages:
        if p.url not in seen:
            seen.add(p.url)
            sources.append(p.url)
    return sources
