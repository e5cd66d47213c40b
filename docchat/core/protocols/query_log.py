"""Query log protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.observability import FeedbackEntry, QueryLog


@runtime_checkable
class QueryLogProtocol(Protocol):
    """Best-effort query and feedback sink. Implementations never raise."""

    def log_query(self, log: QueryLog) -> None:
        ...

    def record_feedback(self, feedback: FeedbackEntry) -> None:
        ...
