"""
Redis Repository Base Class

Provides JSON document storage, atomic script execution and distributed
locking on top of redis-py. Connection and timeout failures are raised as
StorageUnavailableError so callers can tell an unreachable store apart from
a missing document.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError
from redis.exceptions import TimeoutError as RedisTimeoutError

from contentshare.domain.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

# Errors that mean the store could not be reached at all.
UNAVAILABLE_ERRORS = (RedisConnectionError, RedisTimeoutError)


class RedisRepository:
    """Base Redis repository with JSON documents and distributed locking."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        """Create a prefixed key for Redis storage."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    @staticmethod
    def _decode(value) -> str:
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def set_json(
        self,
        key: str,
        data: Dict[str, Any],
        ttl: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        """
        Store a dictionary as a JSON document.

        Args:
            key: Redis key
            data: Dictionary to store as JSON
            ttl: Time to live in seconds
            only_if_absent: Do not overwrite an existing document

        Returns:
            True if written, False if only_if_absent and the key existed

        Raises:
            StorageUnavailableError: If Redis cannot be reached
        """
        try:
            result = self.redis.set(
                self._make_key(key),
                json.dumps(data),
                ex=ttl or None,
                nx=only_if_absent,
            )
            return bool(result)
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable writing {key}: {e}", e) from e

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get a JSON document.

        Args:
            key: Redis key

        Returns:
            Dictionary if found and valid JSON, None otherwise

        Raises:
            StorageUnavailableError: If Redis cannot be reached
        """
        try:
            data = self.redis.get(self._make_key(key))
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable reading {key}: {e}", e) from e

        if data is None:
            return None

        try:
            return json.loads(self._decode(data))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON stored at key {key}: {e}")
            return None

    def get_many_json(self, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        """
        Get several JSON documents with a single MGET.

        Args:
            keys: Redis keys

        Returns:
            Documents in the order of ``keys``; None for missing or invalid entries

        Raises:
            StorageUnavailableError: If Redis cannot be reached
        """
        if not keys:
            return []

        try:
            values = self.redis.mget([self._make_key(key) for key in keys])
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable reading {len(keys)} keys: {e}", e) from e

        documents = []
        for key, value in zip(keys, values):
            if value is None:
                documents.append(None)
                continue
            try:
                documents.append(json.loads(self._decode(value)))
            except json.JSONDecodeError as e:
                logger.error(f"Invalid JSON stored at key {key}: {e}")
                documents.append(None)
        return documents

    def run_script(self, script: str, keys: List[str], args: List[Any]) -> Any:
        """
        Execute a Lua script atomically.

        Args:
            script: Lua source
            keys: Unprefixed keys passed as KEYS
            args: Values passed as ARGV

        Returns:
            Script result

        Raises:
            StorageUnavailableError: If Redis cannot be reached
        """
        try:
            return self.redis.eval(
                script, len(keys), *[self._make_key(key) for key in keys], *args
            )
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable running script: {e}", e) from e

    def delete(self, key: str) -> bool:
        """
        Delete a key from Redis.

        Returns:
            True if key was deleted, False otherwise
        """
        try:
            return self.redis.delete(self._make_key(key)) > 0
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable deleting {key}: {e}", e) from e

    def exists(self, key: str) -> bool:
        """Check if a key exists in Redis."""
        try:
            return self.redis.exists(self._make_key(key)) > 0
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable checking {key}: {e}", e) from e

    @contextmanager
    def distributed_lock(self, lock_name: str, timeout: int = 10, blocking_timeout: int = 5):
        """
        Distributed lock context manager using Redis.

        Args:
            lock_name: Name of the lock
            timeout: Lock timeout in seconds
            blocking_timeout: How long to wait for lock acquisition

        Yields:
            Lock object if acquired successfully

        Raises:
            LockError: If lock cannot be acquired
        """
        lock_key = self._make_key(f"lock:{lock_name}")
        lock = self.redis.lock(lock_key, timeout=timeout, blocking_timeout=blocking_timeout)

        try:
            acquired = lock.acquire(blocking=True, blocking_timeout=blocking_timeout)
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable acquiring lock {lock_name}: {e}", e) from e

        if not acquired:
            raise LockError(f"Could not acquire lock: {lock_name}")

        try:
            yield lock
        finally:
            try:
                lock.release()
            except LockError:
                # Lock may have expired, which is fine
                pass


class RedisConnectionManager:
    """Manages Redis connection with connection pooling."""

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 max_connections: int = 20, password: Optional[str] = None,
                 socket_timeout: Optional[float] = 5.0):
        self.connection_pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=True,
            socket_keepalive=True,
        )
        self._client = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance with connection pooling."""
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return bool(self.client.ping())
        except UNAVAILABLE_ERRORS:
            return False

    def close(self):
        """Close the connection pool."""
        if self.connection_pool:
            self.connection_pool.disconnect()
