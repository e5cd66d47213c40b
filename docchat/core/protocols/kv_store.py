"""Key/value store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStoreProtocol(Protocol):
    """Persistent string store for the term index, pointers and leases."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        """Atomically replace the value."""
        ...

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set only if the key does not exist. Returns True if set."""
        ...

    def delete(self, key: str) -> None:
        ...

    def delete_if_equals(self, key: str, value: str) -> bool:
        """Atomically delete the key only while it still holds ``value``."""
        ...
