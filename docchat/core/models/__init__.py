"""Domain models."""
from .document import (
    BM25Result,
    Chunk,
    DocPage,
    FusedResult,
    RerankDocument,
    RerankResponse,
    RerankResult,
    RerankStatus,
    RetrievalResult,
    RetrievalSource,
)
from .indexing import IndexResult
from .observability import CoverageGap, FeedbackEntry, FeedbackRating, QueryLog, generate_query_id
from .query import ClassifiedQuery, QueryIntent, RetrievalStrategy
from .retrieval import Confidence, GateSource, Passage, RetrievalOutcome

__all__ = [
    "BM25Result",
    "Chunk",
    "DocPage",
    "FusedResult",
    "RerankDocument",
    "RerankResponse",
    "RerankResult",
    "RerankStatus",
    "RetrievalResult",
    "RetrievalSource",
    "IndexResult",
    "CoverageGap",
    "FeedbackEntry",
    "FeedbackRating",
    "QueryLog",
    "generate_query_id",
    "ClassifiedQuery",
    "QueryIntent",
    "RetrievalStrategy",
    "Confidence",
    "GateSource",
    "Passage",
    "RetrievalOutcome",
]
