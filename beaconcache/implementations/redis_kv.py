"""
Redis Key-Value Store implementation for the beacon cache.

The persisted cache is a single blob, so only plain ``GET``/``SET``/``DEL``
are needed. Transient connection errors are retried with exponential
backoff before surfacing as :class:`PersistenceError`.
"""

import redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from beaconcache.exceptions import PersistenceError
from beaconcache.interfaces.storage import IKeyValueStore

# Module-level cache for shared connection pools to enable connection
# pooling and client reuse across multiple store instances.
_redis_connection_pools: dict[tuple[str, int, int], redis.ConnectionPool] = {}

_transient = retry(
    retry=retry_if_exception_type((ConnectionError, TimeoutError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
    reraise=True,
)


class RedisKeyValueStore(IKeyValueStore):
    """Redis implementation of the key-value store interface.

    ``client`` may be supplied directly (e.g. a ``fakeredis.FakeRedis``);
    otherwise a client is built on a shared connection pool.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        client: redis.Redis | None = None,
    ):
        if client is not None:
            self.client = client
            return
        # Create (or reuse) a connection pool for the given host/port/db.
        pool_key = (str(host), int(port), int(db))
        pool = _redis_connection_pools.get(pool_key)
        if pool is None:
            pool = redis.ConnectionPool(host=host, port=port, db=db)
            _redis_connection_pools[pool_key] = pool
        self.client = redis.Redis(connection_pool=pool)

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return bool(self.client.ping())
        except ConnectionError:
            return False

    def set(self, key: str, value: bytes):
        """Store a key-value pair."""
        try:
            self._set(key, value)
        except RedisError as exc:
            raise PersistenceError(f"redis set failed for {key}: {exc}") from exc

    def get(self, key: str) -> bytes | None:
        """Retrieve a value by key."""
        try:
            result = self._get(key)
        except RedisError as exc:
            raise PersistenceError(f"redis get failed for {key}: {exc}") from exc
        if isinstance(result, str):
            return result.encode("utf-8")
        if isinstance(result, bytes | type(None)):
            return result
        return None

    def delete(self, key: str):
        """Delete a key-value pair."""
        try:
            self._delete(key)
        except RedisError as exc:
            raise PersistenceError(f"redis delete failed for {key}: {exc}") from exc

    @_transient
    def _set(self, key: str, value: bytes):
        self.client.set(key, value)

    @_transient
    def _get(self, key: str):
        return self.client.get(key)

    @_transient
    def _delete(self, key: str):
        self.client.delete(key)
