"""Indexing run models."""
from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class IndexResult:
    """Structured report of one re-index run."""
    success: bool
    pages_processed: int = 0
    chunks_created: int = 0
    unique_terms: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: float = 0.0
    snapshot: Optional[str] = None
    skipped: bool = False
    finished_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "IndexResult":
        return cls(**data)
