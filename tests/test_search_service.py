"""Tests for the hybrid retrieval pipeline."""

import threading

import pytest

from docchat.core.errors import InvalidQueryError, UpstreamServiceError
from docchat.core.lexical.bm25 import BM25Searcher
from docchat.core.models.document import RerankStatus
from docchat.core.models.query import RetrievalStrategy
from docchat.core.models.retrieval import Confidence, GateSource
from docchat.core.services.index_registry import IndexRegistry
from docchat.core.services.rerank_service import RerankService
from docchat.core.services.search_service import SearchService, unique_sources
from docchat.core.services.semantic_retriever import SemanticRetriever
from docchat.core.models.retrieval import Passage

from conftest import FailingReranker, ReversingReranker


def _service(embedder, vector_store, registry, backend=None, **kwargs):
    return SearchService(
        retriever=SemanticRetriever(embedder, vector_store),
        vector_store=vector_store,
        registry=registry,
        reranker=RerankService(backend),
        **kwargs,
    )


def test_keyword_search_finds_rate_limiting_page(indexed, search_service):
    outcome = search_service.search("rate limit", strategy="keyword")

    assert outcome.strategy is RetrievalStrategy.KEYWORD
    assert outcome.passages[0].title == "Rate Limiting"
    assert outcome.passages[0].url == "https://docs.example.com/gateway/rate-limiting"
    assert outcome.confidence is Confidence.HIGH
    assert outcome.gate_source is GateSource.KEYWORD_COVERAGE
    assert outcome.snapshot == indexed.snapshot


def test_unrelated_query_is_low_confidence(indexed, search_service):
    outcome = search_service.search("kubernetes helm chart", strategy="keyword")

    assert outcome.is_empty
    assert outcome.confidence is Confidence.LOW
    assert outcome.gate_score == 0.0


def test_low_confidence_keeps_passages(indexed, search_service):
    outcome = search_service.search("rate limit", strategy="keyword", confidence_threshold=0.99)

    assert outcome.confidence is Confidence.LOW
    assert outcome.passages
    assert outcome.passages[0].title == "Rate Limiting"


def test_hybrid_search_fuses_both_retrievers(indexed, search_service):
    outcome = search_service.search("sliding window Redis counter", strategy="hybrid")

    assert outcome.strategy is RetrievalStrategy.HYBRID
    assert outcome.passages[0].title == "Rate Limiting"
    assert outcome.gate_source is GateSource.SEMANTIC
    assert 0.0 < outcome.gate_score <= 1.0
    assert len(outcome.passages) <= 8


def test_auto_strategy_uses_classifier(indexed, search_service):
    outcome = search_service.search("How do I configure auth?")

    assert outcome.requested_strategy is RetrievalStrategy.SEMANTIC
    assert outcome.strategy is RetrievalStrategy.SEMANTIC
    assert outcome.query.expanded.endswith("authentication")


def test_quoted_phrase_uses_phrase_search(indexed, search_service):
    outcome = search_service.search('"sliding window"', strategy="keyword")
    assert outcome.passages[0].title == "Rate Limiting"


def test_unknown_strategy_is_rejected(indexed, search_service):
    with pytest.raises(InvalidQueryError):
        search_service.search("rate limit", strategy="fuzzy")


def test_no_published_index_returns_empty(search_service):
    outcome = search_service.search("rate limit")

    assert outcome.is_empty
    assert outcome.confidence is Confidence.LOW
    assert outcome.snapshot is None
    assert outcome.rerank_status is RerankStatus.SKIPPED


def test_no_published_index_skips_enabled_reranker(embedder, vector_store, registry):
    service = _service(embedder, vector_store, registry, ReversingReranker())

    outcome = service.search("rate limit")

    assert outcome.rerank_status is RerankStatus.SKIPPED
    assert not outcome.degraded


def test_missing_keyword_index_degrades_to_semantic(indexed, embedder, vector_store, kv_store):
    registry = IndexRegistry(kv_store)
    registry.delete_term_index(indexed.snapshot)
    service = _service(embedder, vector_store, registry)

    outcome = service.search("sliding window Redis counter", strategy="keyword")

    assert outcome.requested_strategy is RetrievalStrategy.KEYWORD
    assert outcome.strategy is RetrievalStrategy.SEMANTIC
    assert not outcome.keyword_index_available
    assert outcome.degraded
    assert outcome.notes
    assert outcome.passages[0].title == "Rate Limiting"


def test_rerank_failure_degrades_without_failing(indexed, embedder, vector_store, registry):
    service = _service(embedder, vector_store, registry, FailingReranker())

    outcome = service.search("rate limit", strategy="keyword")

    assert outcome.rerank_status is RerankStatus.FALLBACK
    assert outcome.degraded
    assert outcome.passages[0].title == "Rate Limiting"
    # synthetic fallback scores are not used for the gate
    assert outcome.gate_source is GateSource.KEYWORD_COVERAGE


def test_applied_reranker_drives_gate(indexed, embedder, vector_store, registry):
    service = _service(embedder, vector_store, registry, ReversingReranker())

    outcome = service.search("gateway", strategy="keyword")

    assert outcome.rerank_status is RerankStatus.APPLIED
    assert not outcome.degraded
    assert outcome.gate_source is GateSource.RERANK
    assert outcome.gate_score == outcome.passages[0].score
    scores = [p.score for p in outcome.passages]
    assert scores == sorted(scores, reverse=True)


def test_embedding_failure_propagates(indexed, vector_store, registry):
    class BrokenEmbedder:
        def warmup(self):
            pass

        def encode(self, texts):
            raise ConnectionError("embedding service down")

    service = _service(BrokenEmbedder(), vector_store, registry)

    with pytest.raises(UpstreamServiceError):
        service.search("sliding window", strategy="semantic")


def test_unique_sources_keeps_first_occurrence():
    passages = [
        Passage(id="1", title="A", url="https://x/a", content="", score=1.0),
        Passage(id="2", title="A (Part 2)", url="https://x/a", content="", score=0.9),
        Passage(id="3", title="B", url="https://x/b", content="", score=0.8),
    ]
    assert unique_sources(passages) == ["https://x/a", "https://x/b"]


class BarrierRetriever(SemanticRetriever):
    def __init__(self, embedder, vector_store, barrier):
        super().__init__(embedder, vector_store)
        self._barrier = barrier

    def retrieve(self, snapshot, query, k=20):
        self._barrier.wait()
        return super().retrieve(snapshot, query, k)


def test_semantic_and_keyword_retrieval_run_concurrently(
    indexed, embedder, vector_store, registry, monkeypatch
):
    # each side blocks until the other has started; sequential retrieval breaks the barrier
    barrier = threading.Barrier(2, timeout=5)
    keyword_search = BM25Searcher.search

    def search_at_barrier(self, query, limit=20):
        barrier.wait()
        return keyword_search(self, query, limit)

    monkeypatch.setattr(BM25Searcher, "search", search_at_barrier)
    service = SearchService(
        retriever=BarrierRetriever(embedder, vector_store, barrier),
        vector_store=vector_store,
        registry=registry,
        reranker=RerankService(None),
    )

    outcome = service.search("sliding window Redis counter", strategy="hybrid")

    assert not barrier.broken
    assert outcome.passages[0].title == "Rate Limiting"
    assert outcome.gate_source is GateSource.SEMANTIC
