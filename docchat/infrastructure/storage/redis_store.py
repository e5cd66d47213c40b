import logging
from typing import Optional

import redis

from docchat.core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

# GET and DEL in one server-side step
_COMPARE_AND_DELETE = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class RedisKeyValueStore:
    """Key/value store on Redis for the index pointer, term indexes and lease."""

    def __init__(self, url: str = "redis://localhost:6379/0", socket_timeout: float = 5.0):
        """Initialize Redis client.

        Args:
            url: Redis connection URL.
            socket_timeout: Connect and read timeout in seconds.
        """
        self._client = redis.Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )

    @property
    def client(self) -> redis.Redis:
        return self._client

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise UpstreamServiceError("redis", f"GET {key} failed: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.RedisError as e:
            raise UpstreamServiceError("redis", f"SET {key} failed: {e}") from e

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        try:
            return bool(self._client.set(key, value, nx=True, ex=ttl_seconds))
        except redis.RedisError as e:
            raise UpstreamServiceError("redis", f"SET NX {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise UpstreamServiceError("redis", f"DEL {key} failed: {e}") from e

    def delete_if_equals(self, key: str, value: str) -> bool:
        try:
            return bool(self._client.eval(_COMPARE_AND_DELETE, 1, key, value))
        except redis.RedisError as e:
            raise UpstreamServiceError("redis", f"compare-and-delete {key} failed: {e}") from e

    def ping(self) -> tuple[bool, str]:
        """Health check used by the CLI status command."""
        try:
            if self._client.ping():
                return True, "Redis ping succeeded"
            return False, "Unexpected Redis ping response"
        except (redis.ConnectionError, redis.TimeoutError) as e:
            return False, f"Redis connection failed: {e}"
