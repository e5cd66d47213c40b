"""Protocol interfaces for dependency injection."""
from .corpus_source import CorpusSourceProtocol
from .embedder import EmbedderProtocol
from .kv_store import KeyValueStoreProtocol
from .llm import LLMProtocol
from .query_log import QueryLogProtocol
from .reranker import RerankerProtocol
from .vector_store import VectorStoreProtocol

__all__ = [
    "CorpusSourceProtocol",
    "EmbedderProtocol",
    "KeyValueStoreProtocol",
    "LLMProtocol",
    "QueryLogProtocol",
    "RerankerProtocol",
    "VectorStoreProtocol",
]
