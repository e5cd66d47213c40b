"""Document domain models."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class DocPage:
    """Source documentation page, discarded after chunking."""
    url: str
    path: str
    title: str
    content: str


@dataclass
class Chunk:
    """Atomic retrievable unit of a page."""
    id: str
    path: str
    title: str
    content: str
    url: str
    vector: Optional[list[float]] = None

    def without_vector(self) -> "Chunk":
        return replace(self, vector=None)

    def to_metadata(self) -> dict:
        return {
            "path": self.path,
            "title": self.title,
            "url": self.url,
        }


class RetrievalSource(Enum):
    SEMANTIC = "semantic"
    KEYWORD = "keyword"


@dataclass
class RetrievalResult:
    """Semantic hit from the vector store; score is a similarity in [0, 1]."""
    chunk: Chunk
    score: float
    source: RetrievalSource = field(default=RetrievalSource.SEMANTIC, init=False)

    @property
    def chunk_id(self) -> str:
        return self.chunk.id


@dataclass
class BM25Result:
    """Keyword hit from the BM25 searcher."""
    chunk_id: str
    score: float
    source: RetrievalSource = field(default=RetrievalSource.KEYWORD, init=False)


@dataclass
class FusedResult:
    """Candidate after fusion. The side a chunk is missing from stays None."""
    id: str
    chunk: Chunk
    semantic_rank: Optional[int]
    semantic_score: Optional[float]
    keyword_rank: Optional[int]
    keyword_score: Optional[float]
    fused_score: float


@dataclass(frozen=True)
class RerankDocument:
    id: str
    content: str


@dataclass
class RerankResult:
    id: str
    content: str
    relevance_score: float
    original_rank: int


class RerankStatus(Enum):
    """How the final ordering was produced."""
    APPLIED = "applied"
    FALLBACK = "fallback"  # backend failed, order preserved
    DISABLED = "disabled"  # no backend configured, order preserved
    SKIPPED = "skipped"  # nothing to rerank

    @property
    def degraded(self) -> bool:
        return self is RerankStatus.FALLBACK


@dataclass
class RerankResponse:
    results: list[RerankResult]
    status: RerankStatus

    @property
    def degraded(self) -> bool:
        return self.status.degraded
