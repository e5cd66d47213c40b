"""Query log and feedback models."""
import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


class FeedbackRating(Enum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"
    PARTIAL = "partial"


@dataclass
class QueryLog:
    """One answered (or unanswered) query."""
    id: str
    timestamp: float
    query: str
    intent: str
    strategy: str
    retrieval_ms: float
    rerank_ms: float
    total_ms: float
    result_count: int
    top_chunk_ids: list[str] = field(default_factory=list)
    top_scores: list[float] = field(default_factory=list)
    confidence: str = "low"
    rerank_status: str = "disabled"
    model: str = ""
    success: bool = True
    error_message: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FeedbackEntry:
    query_id: str
    rating: FeedbackRating
    comment: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["rating"] = self.rating.value
        return data


def generate_query_id() -> str:
    """Sortable unique query id: millisecond timestamp plus random suffix."""
    return f"{int(time.time() * 1000):x}-{uuid.uuid4().hex[:8]}"


@dataclass
class CoverageGap:
    """A normalized query that keeps returning weak results."""
    query: str
    count: int
    last_seen: float
    avg_score: float
