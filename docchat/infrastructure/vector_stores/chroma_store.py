import logging
from typing import Optional

import requests

from docchat.core.errors import UpstreamServiceError
from docchat.core.models.document import Chunk, RetrievalResult

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 1000


class ChromaVectorStore:
    """Vector store using ChromaDB HTTP API, one collection per snapshot."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_prefix: str = "docs",
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 30.0,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_prefix: Snapshot collections are named ``<prefix>-<snapshot>``.
            tenant: Tenant name.
            database: Database name.
            timeout: Per-request timeout in seconds.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._prefix = collection_prefix
        self._timeout = timeout
        self._collection_ids: dict[str, str] = {}

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    def _collection_name(self, snapshot: str) -> str:
        return f"{self._prefix}-{snapshot}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = requests.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            raise UpstreamServiceError("vector store", str(e)) from e
        return resp

    def _check(self, resp: requests.Response, action: str) -> requests.Response:
        if resp.status_code >= 400:
            raise UpstreamServiceError("vector store", f"{action} failed: {resp.text[:200]}", resp.status_code)
        return resp

    def _find_collection(self, snapshot: str) -> Optional[str]:
        if snapshot in self._collection_ids:
            return self._collection_ids[snapshot]

        name = self._collection_name(snapshot)
        resp = self._request("GET", f"{self._collections_url}/{name}")
        if resp.status_code == 404:
            return None
        self._check(resp, f"get collection {name}")
        self._collection_ids[snapshot] = resp.json()["id"]
        return self._collection_ids[snapshot]

    def _require_collection(self, snapshot: str) -> str:
        col_id = self._find_collection(snapshot)
        if col_id is None:
            raise UpstreamServiceError("vector store", f"snapshot {snapshot} not found", 404)
        return col_id

    def upsert_all(self, snapshot: str, chunks: list[Chunk]) -> None:
        """Reset the snapshot collection and write every chunk."""
        self.drop(snapshot)

        name = self._collection_name(snapshot)
        resp = self._check(
            self._request(
                "POST",
                self._collections_url,
                json={"name": name, "metadata": {"hnsw:space": "cosine"}},
            ),
            f"create collection {name}",
        )
        col_id = resp.json()["id"]
        self._collection_ids[snapshot] = col_id
        logger.info(f"Created collection: {name}")

        total_batches = (len(chunks) + UPSERT_BATCH_SIZE - 1) // UPSERT_BATCH_SIZE
        for i in range(0, len(chunks), UPSERT_BATCH_SIZE):
            batch = chunks[i : i + UPSERT_BATCH_SIZE]
            self._check(
                self._request(
                    "POST",
                    f"{self._collections_url}/{col_id}/upsert",
                    json={
                        "ids": [c.id for c in batch],
                        "embeddings": [c.vector for c in batch],
                        "documents": [c.content for c in batch],
                        "metadatas": [c.to_metadata() for c in batch],
                    },
                ),
                "upsert",
            )
            logger.info(f"Upserted batch {i // UPSERT_BATCH_SIZE + 1}/{total_batches}")

    def query(self, snapshot: str, vector: list[float], k: int = 8) -> list[RetrievalResult]:
        """Search by embedding."""
        col_id = self._require_collection(snapshot)
        resp = self._check(
            self._request(
                "POST",
                f"{self._collections_url}/{col_id}/query",
                json={
                    "query_embeddings": [vector],
                    "n_results": k,
                    "include": ["documents", "metadatas", "distances"],
                },
            ),
            "query",
        )

        data = resp.json()
        results = []

        if data.get("ids") and data["ids"][0]:
            for i, chunk_id in enumerate(data["ids"][0]):
                # cosine distance on unit vectors: similarity = 1 - distance
                similarity = max(0.0, min(1.0, 1.0 - data["distances"][0][i]))
                results.append(
                    RetrievalResult(
                        chunk=self._to_chunk(chunk_id, data["documents"][0][i], data["metadatas"][0][i]),
                        score=similarity,
                    )
                )

        return results

    def get_chunks(self, snapshot: str, ids: list[str]) -> dict[str, Chunk]:
        if not ids:
            return {}
        col_id = self._require_collection(snapshot)
        resp = self._check(
            self._request(
                "POST",
                f"{self._collections_url}/{col_id}/get",
                json={"ids": ids, "include": ["documents", "metadatas"]},
            ),
            "get",
        )
        data = resp.json()
        return {
            chunk_id: self._to_chunk(chunk_id, document, metadata)
            for chunk_id, document, metadata in zip(
                data.get("ids", []), data.get("documents", []), data.get("metadatas", [])
            )
        }

    def count(self, snapshot: str) -> int:
        """Get chunk count."""
        col_id = self._find_collection(snapshot)
        if col_id is None:
            return 0
        resp = self._check(self._request("GET", f"{self._collections_url}/{col_id}/count"), "count")
        return int(resp.json())

    def drop(self, snapshot: str) -> None:
        name = self._collection_name(snapshot)
        resp = self._request("DELETE", f"{self._collections_url}/{name}")
        if resp.status_code != 404:
            self._check(resp, f"delete collection {name}")
            logger.info(f"Dropped collection: {name}")
        self._collection_ids.pop(snapshot, None)

    @staticmethod
    def _to_chunk(chunk_id: str, document: Optional[str], metadata: Optional[dict]) -> Chunk:
        metadata = metadata or {}
        return Chunk(
            id=chunk_id,
            path=metadata.get("path", ""),
            title=metadata.get("title", "Unknown"),
            content=document or "",
            url=metadata.get("url", ""),
        )
