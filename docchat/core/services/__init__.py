"""Core business services."""
from .chat_service import ChatService
from .chunker import Chunker
from .index_registry import IndexRegistry
from .ingest_service import IngestService
from .query_classifier import QueryClassifier, classify_query
from .rerank_service import RerankService
from .search_service import SearchService
from .semantic_retriever import SemanticRetriever
from .webhook_service import WebhookService

__all__ = [
    "ChatService",
    "Chunker",
    "IndexRegistry",
    "IngestService",
    "QueryClassifier",
    "classify_query",
    "RerankService",
    "SearchService",
    "SemanticRetriever",
    "WebhookService",
]
