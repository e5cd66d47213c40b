"""Ingest service - corpus loading, chunking, embedding and index publication."""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..lexical.term_index import build_term_index
from ..models.document import Chunk, DocPage
from ..models.indexing import IndexResult
from ..protocols.corpus_source import CorpusSourceProtocol
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from .chunker import Chunker
from .corpus import parse_corpus
from .index_registry import DEFAULT_LEASE_TTL, IndexRegistry, new_snapshot_version
from .semantic_retriever import PASSAGE_PREFIX

logger = logging.getLogger(__name__)


class IngestService:
    """Service for rebuilding the search indexes from the documentation corpus."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        registry: IndexRegistry,
        primary_source: CorpusSourceProtocol,
        supplementary_sources: Optional[list[CorpusSourceProtocol]] = None,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        batch_size: int = 50,
        lease_ttl: int = DEFAULT_LEASE_TTL,
    ):
        """Initialize ingest service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            registry: Snapshot pointer, term index storage and lease.
            primary_source: Corpus that must load for a run to succeed.
            supplementary_sources: Extra corpora merged in when available.
            chunk_size: Target chunk size in characters.
            chunk_overlap: Overlap between chunks.
            batch_size: Batch size for embedding.
            lease_ttl: Seconds before an abandoned lease expires.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._registry = registry
        self._primary_source = primary_source
        self._supplementary_sources = supplementary_sources or []
        self._chunker = Chunker(chunk_size, chunk_overlap)
        self._batch_size = batch_size
        self._lease_ttl = lease_ttl

    def run(self) -> IndexResult:
        """Rebuild and publish a new snapshot.

        Never raises: failures come back as ``success=False`` with ``errors``
        filled in, and the previously published snapshot stays live.

        Returns:
            Structured run report, also stored as the registry status.
        """
        started = time.monotonic()

        token = self._registry.acquire_lease(self._lease_ttl)
        if token is None:
            logger.info("Indexing already in progress, skipping")
            return IndexResult(
                success=False,
                skipped=True,
                errors=["Indexing already in progress"],
            )

        try:
            result = self._run_locked()
        except Exception as e:
            logger.exception("Indexing failed")
            result = IndexResult(success=False, errors=[str(e)])
        finally:
            self._registry.release_lease(token)

        result.duration_ms = (time.monotonic() - started) * 1000
        result.finished_at = datetime.now(timezone.utc).isoformat()
        try:
            self._registry.record_status(result)
        except Exception as e:
            logger.error(f"Failed to record index status: {e}")
            result.errors.append(f"status not recorded: {e}")

        if result.success:
            logger.info(
                f"Indexing complete: {result.chunks_created} chunks from "
                f"{result.pages_processed} pages in {result.duration_ms:.0f}ms"
            )
        return result

    def _run_locked(self) -> IndexResult:
        errors: list[str] = []

        pages = self._load_pages(self._primary_source)
        if not pages:
            return IndexResult(
                success=False,
                errors=[f"No documentation pages could be loaded from {self._primary_source.name}"],
            )
        primary_count = len(pages)

        for source in self._supplementary_sources:
            try:
                pages.extend(self._load_pages(source))
            except Exception as e:
                logger.warning(f"Supplementary source {source.name} failed: {e}")
                errors.append(f"{source.name}: {e}")

        logger.info(
            f"Loaded {primary_count} documentation pages + "
            f"{len(pages) - primary_count} supplementary pages"
        )

        chunks = self._unique(self._chunker.chunk_all(pages))
        logger.info(f"Created {len(chunks)} chunks from {len(pages)} pages")

        self._embed(chunks)

        snapshot = new_snapshot_version()
        term_index = build_term_index(chunks)
        try:
            self._vector_store.upsert_all(snapshot, chunks)
            self._registry.store_term_index(snapshot, term_index)
            previous = self._registry.publish(snapshot)
        except Exception:
            self._discard(snapshot)
            raise

        if previous and previous != snapshot:
            self._retire(previous, snapshot)

        return IndexResult(
            success=True,
            pages_processed=len(pages),
            chunks_created=len(chunks),
            unique_terms=term_index.unique_terms,
            errors=errors,
            snapshot=snapshot,
        )

    def _load_pages(self, source: CorpusSourceProtocol) -> list[DocPage]:
        pages: list[DocPage] = []
        for origin, text in source.load():
            pages.extend(parse_corpus(text, origin))
        return pages

    def _embed(self, chunks: list[Chunk]) -> None:
        for i in range(0, len(chunks), self._batch_size):
            batch = chunks[i : i + self._batch_size]
            texts = [f"{PASSAGE_PREFIX}{c.content}" for c in batch]
            vectors = self._embedder.encode(texts).tolist()
            for chunk, vector in zip(batch, vectors):
                chunk.vector = vector
            logger.info(f"Embedded batch: {min(i + self._batch_size, len(chunks))}/{len(chunks)}")

    def _retire(self, previous: str, live: str) -> None:
        # previous stays readable until the next publication
        try:
            stale = self._registry.retire(previous)
        except Exception as e:
            logger.warning(f"Failed to retire snapshot {previous}: {e}")
            return
        if stale and stale not in (previous, live):
            self._discard(stale)

    def _discard(self, snapshot: str) -> None:
        try:
            self._vector_store.drop(snapshot)
            self._registry.delete_term_index(snapshot)
        except Exception as e:
            logger.warning(f"Failed to discard snapshot {snapshot}: {e}")

    @staticmethod
    def _unique(chunks: list[Chunk]) -> list[Chunk]:
        seen: set[str] = set()
        unique = []
        for chunk in chunks:
            if chunk.id in seen:
                logger.warning(f"Duplicate chunk {chunk.id} from {chunk.url} dropped")
                continue
            seen.add(chunk.id)
            unique.append(chunk)
        return unique
