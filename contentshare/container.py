"""
Service Wiring

Builds the DependencyContainer shared by the Flask app, the Celery worker
and the standalone cleanup runner.

All services are registered as singletons and resolved via
``container.resolve()``; invokers never instantiate services directly.
"""

import logging
from typing import Optional

from contentshare.application.cleanup_service import ShareCleanupEngine
from contentshare.application.dependency_container import DependencyContainer
from contentshare.application.event_publisher import EventPublisher
from contentshare.application.share_service import ShareService
from contentshare.config.cleanup_config import CleanupConfig
from contentshare.config.gcs_config import GCSConfig
from contentshare.config.redis_config import get_redis_repository
from contentshare.domain.cleanup import CleanupStateRepository
from contentshare.domain.events import DomainEvent
from contentshare.domain.file_sharing import IBlobStorageRepository, ShareRepository
from contentshare.infrastructure.event_handlers import LoggingEventHandler
from contentshare.infrastructure.redis_cleanup_state_repository import (
    RedisCleanupStateRepository,
)
from contentshare.infrastructure.redis_repository import RedisRepository
from contentshare.infrastructure.redis_share_repository import RedisShareRepository
from contentshare.infrastructure.share_code_cipher import (
    LazySecret,
    ShareCodeCipher,
    load_key_from_env,
)
from contentshare.infrastructure.storage_factory import StorageFactory

logger = logging.getLogger(__name__)


def build_container(
    cleanup_config: Optional[CleanupConfig] = None,
    gcs_config: Optional[GCSConfig] = None,
) -> DependencyContainer:
    """
    Register infrastructure adapters and application services.

    Redis must already be initialized with ``init_redis()``.

    Args:
        cleanup_config: Cleanup settings, read from the environment if None
        gcs_config: Blob storage settings, read from the environment if None

    Returns:
        Populated DependencyContainer
    """
    if cleanup_config is None:
        cleanup_config = CleanupConfig.from_env()

    container = DependencyContainer()

    # Events
    event_publisher = EventPublisher()
    logging_handler = LoggingEventHandler(logging.getLogger("contentshare.events"))
    event_publisher.subscribe(DomainEvent, logging_handler.handle)
    container.register_singleton(EventPublisher, event_publisher)

    # Infrastructure
    redis_repo = get_redis_repository()
    container.register_singleton(RedisRepository, redis_repo)

    share_repository = RedisShareRepository(redis_repo)
    state_repository = RedisCleanupStateRepository(
        redis_repo, conditional_writes=cleanup_config.conditional_writes
    )
    blob_storage = StorageFactory.create_storage(gcs_config)
    cipher = ShareCodeCipher(LazySecret(load_key_from_env))

    container.register_singleton(ShareRepository, share_repository)
    container.register_singleton(CleanupStateRepository, state_repository)
    container.register_singleton(IBlobStorageRepository, blob_storage)
    container.register_singleton(ShareCodeCipher, cipher)
    container.register_singleton(CleanupConfig, cleanup_config)

    # Application services
    cleanup_engine = ShareCleanupEngine(
        share_repository,
        state_repository,
        blob_storage,
        event_publisher=event_publisher,
        page_size=cleanup_config.page_size,
    )
    share_service = ShareService(
        share_repository,
        blob_storage,
        cipher,
        event_publisher=event_publisher,
    )

    container.register_singleton(ShareCleanupEngine, cleanup_engine)
    container.register_singleton(ShareService, share_service)

    logger.info(f"Registered {len(container._singletons)} singleton services")
    return container
