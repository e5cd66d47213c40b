"""Query domain models."""
from dataclasses import dataclass
from enum import Enum


class QueryIntent(Enum):
    LOOKUP = "lookup"
    CONCEPTUAL = "conceptual"
    TROUBLESHOOTING = "troubleshooting"
    COMPARISON = "comparison"


class RetrievalStrategy(Enum):
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"

    @property
    def uses_semantic(self) -> bool:
        return self is not RetrievalStrategy.KEYWORD

    @property
    def uses_keyword(self) -> bool:
        return self is not RetrievalStrategy.SEMANTIC


@dataclass(frozen=True)
class ClassifiedQuery:
    """Query after intent detection, expansion and keyword extraction."""
    original: str
    expanded: str
    intent: QueryIntent
    strategy: RetrievalStrategy
    keywords: tuple[str, ...]

    @property
    def keyword_query(self) -> str:
        return " ".join(self.keywords)
