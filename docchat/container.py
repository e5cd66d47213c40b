import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings
from .core.errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RERANK_BACKENDS = ("cross_encoder", "cohere", "none")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def build_rerank_backend(settings: Settings):
    """Rerank backend selected by ``rerank_backend``, or None when disabled.

    Raises:
        ConfigurationError: Unknown backend or missing Cohere key.
    """
    backend = settings.rerank_backend.lower()
    if backend not in RERANK_BACKENDS:
        raise ConfigurationError(
            f"Unknown rerank backend '{settings.rerank_backend}' "
            f"(allowed: {', '.join(RERANK_BACKENDS)})"
        )
    if backend == "none":
        return None
    if backend == "cohere":
        if not settings.cohere_api_key:
            raise ConfigurationError("COHERE_API_KEY is required for the cohere rerank backend")
        from .infrastructure.rerankers.cohere import CohereReranker

        return CohereReranker(settings.cohere_api_key, settings.cohere_rerank_model)

    from .infrastructure.rerankers.cross_encoder import CrossEncoderReranker

    return CrossEncoderReranker(settings.reranker_model)


def build_llm(settings: Settings):
    """OpenAI-compatible chat client.

    Raises:
        ConfigurationError: No API key for the hosted OpenAI endpoint.
    """
    from .infrastructure.llm.openai_client import OpenAIChatClient

    if not settings.llm_api_key and not settings.llm_base_url:
        raise ConfigurationError("LLM_API_KEY is required when LLM_BASE_URL is not set")

    return OpenAIChatClient(
        base_url=settings.llm_base_url,
        # local OpenAI-compatible servers accept any key
        api_key=settings.llm_api_key or "unused",
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.kv_store import KeyValueStoreProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.query_log import QueryLogProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.chat_service import ChatService
    from .core.services.index_registry import IndexRegistry
    from .core.services.ingest_service import IngestService
    from .core.services.rerank_service import RerankService
    from .core.services.search_service import SearchService
    from .core.services.semantic_retriever import SemanticRetriever
    from .core.services.webhook_service import WebhookService
    from .core.strategies.fusion import create_fusion_strategy
    from .infrastructure.document_loaders import HttpCorpusSource, MarkdownDirectorySource
    from .infrastructure.embeddings.sentence_transformer import (
        SentenceTransformerEmbedder,
    )
    from .infrastructure.observability.redis_query_log import RedisQueryLogService
    from .infrastructure.storage.redis_store import RedisKeyValueStore
    from .infrastructure.vector_stores.chroma_store import ChromaVectorStore

    container.register(
        EmbedderProtocol,
        lambda: SentenceTransformerEmbedder(settings.embedding_model),
        singleton=True,
    )

    container.register(
        VectorStoreProtocol,
        lambda: ChromaVectorStore(
            host=settings.chroma_host,
            port=settings.chroma_port,
            collection_prefix=settings.chroma_collection_prefix,
        ),
        singleton=True,
    )

    container.register(
        KeyValueStoreProtocol,
        lambda: RedisKeyValueStore(settings.redis_url),
        singleton=True,
    )

    container.register(
        IndexRegistry,
        lambda: IndexRegistry(
            container.resolve(KeyValueStoreProtocol),
            namespace=settings.redis_namespace,
        ),
        singleton=True,
    )

    container.register(
        RerankService,
        lambda: RerankService(build_rerank_backend(settings)),
        singleton=True,
    )

    container.register(LLMProtocol, lambda: build_llm(settings), singleton=True)

    container.register(
        QueryLogProtocol,
        lambda: (
            RedisQueryLogService(container.resolve(KeyValueStoreProtocol).client)
            if settings.enable_observability
            else None
        ),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            retriever=SemanticRetriever(
                container.resolve(EmbedderProtocol),
                container.resolve(VectorStoreProtocol),
            ),
            vector_store=container.resolve(VectorStoreProtocol),
            registry=container.resolve(IndexRegistry),
            reranker=container.resolve(RerankService),
            fusion=create_fusion_strategy(
                settings.fusion_method,
                rrf_k=settings.rrf_k,
                semantic_weight=settings.semantic_weight,
                keyword_weight=settings.keyword_weight,
            ),
            fetch_k=settings.rag_fetch_k,
            rerank_candidates=settings.rag_rerank_candidates,
            top_n=settings.rag_top_n,
            confidence_threshold=settings.rag_confidence_threshold,
            bm25_k1=settings.bm25_k1,
            bm25_b=settings.bm25_b,
        ),
        singleton=True,
    )

    container.register(
        ChatService,
        lambda: ChatService(
            llm=container.resolve(LLMProtocol),
            search_service=container.resolve(SearchService),
            query_log=container.resolve(QueryLogProtocol),
            max_message_length=settings.max_message_length,
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            registry=container.resolve(IndexRegistry),
            primary_source=HttpCorpusSource(settings.docs_url),
            supplementary_sources=[MarkdownDirectorySource(settings.supplementary_docs_path)],
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            batch_size=settings.embedding_batch_size,
            lease_ttl=settings.index_lease_ttl,
        ),
        singleton=True,
    )

    container.register(
        WebhookService,
        lambda: WebhookService(
            ingest=container.resolve(IngestService),
            registry=container.resolve(IndexRegistry),
            secret=settings.webhook_secret,
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
