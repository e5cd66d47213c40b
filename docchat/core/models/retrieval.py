"""Retrieval outcome models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .document import RerankStatus
from .query import ClassifiedQuery, RetrievalStrategy


class Confidence(Enum):
    """Disposition of a result set for answer generation."""
    HIGH = "high"  # answer strictly from passages
    LOW = "low"    # broader, less strictly grounded answer


class GateSource(Enum):
    """Which score scale the confidence gate compared against."""
    RERANK = "rerank"
    SEMANTIC = "semantic"
    KEYWORD_COVERAGE = "keyword_coverage"
    NONE = "none"


@dataclass
class Passage:
    """Final passage handed to answer generation."""
    id: str
    title: str
    url: str
    content: str
    score: float


@dataclass
class RetrievalOutcome:
    """Result of one orchestrator run."""
    query: ClassifiedQuery
    requested_strategy: RetrievalStrategy
    strategy: RetrievalStrategy
    passages: list[Passage]
    confidence: Confidence
    gate_score: float
    gate_source: GateSource
    rerank_status: RerankStatus
    keyword_index_available: bool
    snapshot: Optional[str] = None
    retrieval_ms: float = 0.0
    rerank_ms: float = 0.0
    notes: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.passages

    @property
    def low_confidence(self) -> bool:
        return self.confidence is Confidence.LOW

    @property
    def degraded(self) -> bool:
        """True when any stage ran in a fallback mode."""
        if self.rerank_status.degraded:
            return True
        return self.requested_strategy.uses_keyword and not self.keyword_index_available

    @property
    def top_scores(self) -> list[float]:
        return [p.score for p in self.passages]
