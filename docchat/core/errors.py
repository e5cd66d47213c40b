"""Error taxonomy for the retrieval core."""

from typing import Optional


class DocChatError(Exception):
    """Base class for all docchat errors."""


class ConfigurationError(DocChatError):
    """Required credential or endpoint is missing. Fatal, never retried."""


class UpstreamServiceError(DocChatError):
    """An external service (embedding, vector store, LLM) failed."""

    def __init__(self, service: str, message: str, status: Optional[int] = None):
        self.service = service
        self.status = status
        detail = f" (status {status})" if status is not None else ""
        super().__init__(f"{service}: {message}{detail}")


class InvalidQueryError(DocChatError):
    """Malformed input, rejected before any retrieval work."""


class IndexingInProgressError(DocChatError):
    """Another re-index holds the lease."""
