from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection_prefix: str = "docs"

    embedding_model: str = "intfloat/multilingual-e5-base"
    embedding_batch_size: int = 50

    # cross_encoder | cohere | none
    rerank_backend: str = "cross_encoder"
    reranker_model: str = "BAAI/bge-reranker-v2-m3"
    cohere_api_key: Optional[str] = None
    cohere_rerank_model: str = "rerank-v3.5"

    llm_base_url: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-5-mini"
    llm_max_tokens: int = 1024
    llm_temperature: Optional[float] = None

    redis_url: str = "redis://localhost:6379/0"
    redis_namespace: str = "docchat"

    docs_url: str = "https://docs.openclaw.ai/llms-full.txt"
    supplementary_docs_path: str = "./docs"

    chunk_size: int = 1000
    chunk_overlap: int = 200

    rag_fetch_k: int = 20
    rag_rerank_candidates: int = 25
    rag_top_n: int = 8
    rag_confidence_threshold: float = 0.3

    # rrf | weighted
    fusion_method: str = "rrf"
    rrf_k: int = 60
    semantic_weight: float = 0.7
    keyword_weight: float = 0.3
    bm25_k1: float = 1.5
    bm25_b: float = 0.75

    max_message_length: int = 2000

    webhook_secret: Optional[str] = None
    index_lease_ttl: int = 900

    enable_observability: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
