"""Infrastructure layer for Redis, blob storage and share code encryption."""

from .local_blob_storage_repository import LocalBlobStorageRepository
from .redis_cleanup_state_repository import RedisCleanupStateRepository
from .redis_repository import RedisConnectionManager, RedisRepository
from .redis_share_repository import RedisShareRepository
from .share_code_cipher import LazySecret, ShareCodeCipher

__all__ = [
    "RedisRepository",
    "RedisConnectionManager",
    "RedisShareRepository",
    "RedisCleanupStateRepository",
    "LocalBlobStorageRepository",
    "LazySecret",
    "ShareCodeCipher",
]
