"""Fixtures for integration tests against a real Redis server."""

import pytest

from contentshare.infrastructure.redis_repository import RedisRepository
from tests.fixtures.redis_fixtures import connect_test_redis


@pytest.fixture
def redis_client():
    """Yields a clean Redis client; the database is flushed before and after."""
    client = connect_test_redis()

    yield client

    client.flushdb()
    client.close()


@pytest.fixture
def redis_repo(redis_client):
    """RedisRepository with a test key prefix."""
    return RedisRepository(redis_client, key_prefix="it")
