"""
Redis Configuration

Configures Redis connection settings and provides factory functions
for creating Redis clients and repositories.
"""

import os
from typing import Optional

import redis

from contentshare.infrastructure.redis_repository import RedisConnectionManager, RedisRepository


class RedisConfig:
    """Redis configuration settings."""

    def __init__(self):
        self.host = os.getenv("REDIS_HOST", "localhost")
        self.port = int(os.getenv("REDIS_PORT", 6379))
        self.db = int(os.getenv("REDIS_DB", 0))
        self.password = os.getenv("REDIS_PASSWORD")
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", 20))
        self.socket_timeout = float(os.getenv("REDIS_SOCKET_TIMEOUT", 5.0))
        self.key_prefix = os.getenv("REDIS_KEY_PREFIX", "contentshare")

        # Redis URL format: redis://[:password@]host:port/db
        self.url = os.getenv("REDIS_URL")
        if self.url:
            connection_params = redis.connection.parse_url(self.url)
            self.host = connection_params.get("host", self.host)
            self.port = connection_params.get("port", self.port)
            self.db = connection_params.get("db", self.db)
            self.password = connection_params.get("password", self.password)


# Global Redis connection manager
_redis_manager: Optional[RedisConnectionManager] = None
_redis_config: Optional[RedisConfig] = None


def init_redis(config: Optional[RedisConfig] = None) -> RedisConnectionManager:
    """
    Initialize Redis connection manager.

    Args:
        config: Redis configuration, uses default if None

    Returns:
        RedisConnectionManager instance
    """
    global _redis_manager, _redis_config

    if config is None:
        config = RedisConfig()

    connection_kwargs = {
        "host": config.host,
        "port": config.port,
        "db": config.db,
        "max_connections": config.max_connections,
        "socket_timeout": config.socket_timeout,
    }

    if config.password:
        connection_kwargs["password"] = config.password

    _redis_manager = RedisConnectionManager(**connection_kwargs)
    _redis_config = config
    return _redis_manager


def get_redis_client() -> redis.Redis:
    """
    Get Redis client instance.

    Returns:
        Redis client

    Raises:
        RuntimeError: If Redis is not initialized
    """
    if _redis_manager is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")

    return _redis_manager.client


def get_redis_repository(key_prefix: Optional[str] = None) -> RedisRepository:
    """
    Get Redis repository with a key prefix.

    Args:
        key_prefix: Prefix for all keys, defaults to REDIS_KEY_PREFIX

    Returns:
        RedisRepository instance
    """
    client = get_redis_client()
    if key_prefix is None:
        key_prefix = _redis_config.key_prefix if _redis_config else ""
    return RedisRepository(client, key_prefix)


def redis_health_check() -> bool:
    """
    Check Redis connection health.

    Returns:
        True if Redis is healthy, False otherwise
    """
    if _redis_manager is None:
        return False

    return _redis_manager.health_check()


def close_redis() -> None:
    """Close the connection pool and forget the manager."""
    global _redis_manager, _redis_config

    if _redis_manager is not None:
        _redis_manager.close()
    _redis_manager = None
    _redis_config = None
