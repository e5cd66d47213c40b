"""Shared fixtures: in-memory stand-ins for the external services."""

import hashlib
import re
from typing import AsyncIterator, Optional

import numpy as np
import pytest

from docchat.core.models.document import Chunk, DocPage, RetrievalResult
from docchat.core.services.index_registry import IndexRegistry
from docchat.core.services.ingest_service import IngestService
from docchat.core.services.rerank_service import RerankService
from docchat.core.services.search_service import SearchService
from docchat.core.services.semantic_retriever import SemanticRetriever

EMBEDDING_DIM = 128
_WORD = re.compile(r"\w+")


class FakeEmbedder:
    """Bag-of-words hashing embedder: texts sharing words get similar vectors."""

    def __init__(self):
        self.calls = 0

    def warmup(self) -> None:
        pass

    def _embed(self, text: str) -> np.ndarray:
        vector = np.zeros(EMBEDDING_DIM)
        for word in _WORD.findall(text.lower()):
            if word in ("query", "passage"):
                continue
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % EMBEDDING_DIM
            vector[bucket] += 1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector

    def encode(self, texts):
        self.calls += 1
        if isinstance(texts, str):
            return self._embed(texts)
        return np.array([self._embed(t) for t in texts])


class InMemoryVectorStore:
    def __init__(self):
        self.snapshots: dict[str, dict[str, Chunk]] = {}
        self.fail_upsert = False

    def upsert_all(self, snapshot: str, chunks: list[Chunk]) -> None:
        if self.fail_upsert:
            raise RuntimeError("vector store unavailable")
        self.snapshots[snapshot] = {c.id: c for c in chunks}

    def query(self, snapshot: str, vector: list[float], k: int = 8) -> list[RetrievalResult]:
        chunks = self.snapshots.get(snapshot, {})
        query = np.array(vector)
        scored = [
            (chunk, float(np.dot(query, np.array(chunk.vector))))
            for chunk in chunks.values()
        ]
        scored = [(c, s) for c, s in scored if s > 0]
        scored.sort(key=lambda item: item[1], reverse=True)
        return [
            RetrievalResult(chunk=c.without_vector(), score=min(1.0, s))
            for c, s in scored[:k]
        ]

    def get_chunks(self, snapshot: str, ids: list[str]) -> dict[str, Chunk]:
        chunks = self.snapshots.get(snapshot, {})
        return {i: chunks[i].without_vector() for i in ids if i in chunks}

    def count(self, snapshot: str) -> int:
        return len(self.snapshots.get(snapshot, {}))

    def drop(self, snapshot: str) -> None:
        self.snapshots.pop(snapshot, None)


class InMemoryKeyValueStore:
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        if key in self.data:
            return False
        self.data[key] = value
        return True

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def delete_if_equals(self, key: str, value: str) -> bool:
        if self.data.get(key) != value:
            return False
        del self.data[key]
        return True


class FailingReranker:
    def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        raise RuntimeError("rerank service returned 503")


class ReversingReranker:
    """Scores later documents higher, to make reordering visible."""

    def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        total = len(documents)
        scored = [(i, (i + 1) / total) for i in range(total)]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:top_n]


class FakeLLM:
    def __init__(self, tokens: Optional[list[str]] = None):
        self.tokens = tokens or ["Use ", "Redis."]
        self.calls: list[dict] = []

    async def chat_stream(
        self,
        user_message: str,
        context: str,
        grounded: bool = True,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        self.calls.append(
            {"user_message": user_message, "context": context, "grounded": grounded, "model": model}
        )
        for token in self.tokens:
            yield token


class StaticCorpusSource:
    def __init__(self, name: str, documents: list[tuple[str, str]]):
        self.name = name
        self._documents = documents

    def load(self) -> list[tuple[str, str]]:
        return list(self._documents)


class FailingCorpusSource:
    name = "https://docs.example.com/llms-full.txt"

    def load(self) -> list[tuple[str, str]]:
        raise ConnectionError("connection refused")


class RecordingQueryLog:
    def __init__(self):
        self.logs = []
        self.feedback = []

    def log_query(self, log) -> None:
        self.logs.append(log)

    def record_feedback(self, feedback) -> None:
        self.feedback.append(feedback)


CORPUS = """# Rate Limiting
Source: https://docs.example.com/gateway/rate-limiting

The gateway protects upstream providers with a sliding window counter kept in Redis.
Each client IP gets twenty requests per minute before requests are rejected.

# Installation
Source: https://docs.example.com/start/install

Install the command line tool with the package manager of your platform, then run
the onboarding wizard to create your first workspace and pair a device.

# Authentication
Source: https://docs.example.com/gateway/authentication

Gateway authentication uses bearer tokens. Create a token in the dashboard and pass it
in the Authorization header of every request made to the gateway.
"""


def make_page(title: str, content: str, path: str = "/page") -> DocPage:
    return DocPage(url=f"https://docs.example.com{path}", path=path, title=title, content=content)


def make_chunk(chunk_id: str, title: str, content: str, vector=None) -> Chunk:
    return Chunk(
        id=chunk_id,
        path=f"/{chunk_id}",
        title=title,
        content=content,
        url=f"https://docs.example.com/{chunk_id}",
        vector=vector,
    )


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def registry(kv_store):
    return IndexRegistry(kv_store)


@pytest.fixture
def corpus_source():
    return StaticCorpusSource("https://docs.example.com/llms-full.txt", [("llms-full.txt", CORPUS)])


@pytest.fixture
def ingest_service(embedder, vector_store, registry, corpus_source):
    return IngestService(
        embedder=embedder,
        vector_store=vector_store,
        registry=registry,
        primary_source=corpus_source,
    )


@pytest.fixture
def indexed(ingest_service):
    """Run one successful ingest and return its result."""
    result = ingest_service.run()
    assert result.success, result.errors
    return result


@pytest.fixture
def search_service(embedder, vector_store, registry):
    return SearchService(
        retriever=SemanticRetriever(embedder, vector_store),
        vector_store=vector_store,
        registry=registry,
        reranker=RerankService(None),
    )
