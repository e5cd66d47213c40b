"""Index registry - snapshot publication, term index storage and re-index lease."""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from ..lexical.term_index import TermIndex, deserialize_term_index, serialize_term_index
from ..models.indexing import IndexResult
from ..protocols.kv_store import KeyValueStoreProtocol

logger = logging.getLogger(__name__)

DEFAULT_LEASE_TTL = 900


def new_snapshot_version() -> str:
    """Sortable snapshot id: UTC timestamp plus random suffix."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{stamp}-{uuid.uuid4().hex[:6]}"


class IndexRegistry:
    """Keeps the published snapshot pointer and everything keyed by it.

    A snapshot becomes visible only through :meth:`publish`, a single key
    write, so readers see either the old snapshot or the new one in full.
    """

    def __init__(self, store: KeyValueStoreProtocol, namespace: str = "docchat"):
        self._store = store
        self._ns = namespace
        self._cached: Optional[tuple[str, TermIndex]] = None

    def _key(self, *parts: str) -> str:
        return ":".join((self._ns, *parts))

    @property
    def _current_key(self) -> str:
        return self._key("index", "current")

    @property
    def _lease_key(self) -> str:
        return self._key("index", "lease")

    @property
    def _status_key(self) -> str:
        return self._key("index", "status")

    @property
    def _retired_key(self) -> str:
        return self._key("index", "retired")

    def current_snapshot(self) -> Optional[str]:
        return self._store.get(self._current_key)

    def publish(self, snapshot: str) -> Optional[str]:
        """Point readers at ``snapshot``. Returns the previous snapshot."""
        previous = self.current_snapshot()
        self._store.set(self._current_key, snapshot)
        logger.info(f"Published index snapshot {snapshot} (previous: {previous})")
        return previous

    def retire(self, snapshot: str) -> Optional[str]:
        """Mark a replaced snapshot as retired.

        The retired snapshot stays readable for queries that resolved the
        pointer before it moved. Only one is kept.

        Returns:
            The snapshot retired before this one, now safe to drop.
        """
        stale = self._store.get(self._retired_key)
        self._store.set(self._retired_key, snapshot)
        return stale

    def store_term_index(self, snapshot: str, index: TermIndex) -> None:
        self._store.set(self._key("bm25", snapshot), serialize_term_index(index))
        logger.info(
            f"Stored BM25 index for {snapshot}: {index.total_docs} chunks, "
            f"{index.unique_terms} terms"
        )

    def load_term_index(self, snapshot: str) -> Optional[TermIndex]:
        """Term index of a snapshot, cached for the most recent snapshot read."""
        cached = self._cached
        if cached is not None and cached[0] == snapshot:
            return cached[1]

        data = self._store.get(self._key("bm25", snapshot))
        if data is None:
            return None

        index = deserialize_term_index(data)
        self._cached = (snapshot, index)
        return index

    def delete_term_index(self, snapshot: str) -> None:
        self._store.delete(self._key("bm25", snapshot))

    def acquire_lease(self, ttl_seconds: int = DEFAULT_LEASE_TTL) -> Optional[str]:
        """Take the re-index lease. Returns an owner token, or None if it is held."""
        token = uuid.uuid4().hex
        if self._store.set_if_absent(self._lease_key, token, ttl_seconds):
            return token
        return None

    def release_lease(self, token: str) -> bool:
        """Release the lease if ``token`` still owns it.

        A lease that expired and was taken by another run is left alone.
        """
        released = self._store.delete_if_equals(self._lease_key, token)
        if not released:
            logger.warning("Re-index lease was no longer ours on release")
        return released

    def is_indexing(self) -> bool:
        return self._store.get(self._lease_key) is not None

    def record_status(self, result: IndexResult) -> None:
        self._store.set(self._status_key, json.dumps(result.to_dict()))

    def last_status(self) -> Optional[IndexResult]:
        data = self._store.get(self._status_key)
        if data is None:
            return None
        return IndexResult.from_dict(json.loads(data))
