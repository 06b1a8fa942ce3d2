"""
Storage Factory

Factory for creating the blob storage implementation.

Uses Google Cloud Storage when a bucket is configured, otherwise the local
filesystem adapter. The application layer only sees IBlobStorageRepository.
"""

import logging

from contentshare.config.gcs_config import GCSConfig
from contentshare.domain.file_sharing import IBlobStorageRepository

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory that returns the configured blob storage repository."""

    @staticmethod
    def create_storage(config: GCSConfig = None) -> IBlobStorageRepository:
        """
        Create the blob storage repository.

        Environment Variables:
            GCS_BUCKET_NAME: Bucket to use; selects GCS when set
            SHARE_STORAGE_DIR: Base directory for local storage
                (default: /tmp/contentshare)

        Returns:
            IBlobStorageRepository implementation

        Raises:
            RuntimeError: If the storage backend cannot be initialized
        """
        if config is None:
            config = GCSConfig()

        if config.is_configured:
            return StorageFactory._create_gcs_storage(config)
        return StorageFactory._create_local_storage(config)

    @staticmethod
    def _create_gcs_storage(config: GCSConfig) -> IBlobStorageRepository:
        from contentshare.infrastructure.gcs_blob_storage_repository import (
            GCSBlobStorageRepository,
        )

        try:
            storage = GCSBlobStorageRepository(config.bucket_name, config.create_client())
        except Exception as e:
            raise RuntimeError(f"Failed to initialize GCS storage: {e}") from e

        logger.info(f"Storage factory: Using GCS bucket {config.bucket_name}")
        return storage

    @staticmethod
    def _create_local_storage(config: GCSConfig) -> IBlobStorageRepository:
        from contentshare.infrastructure.local_blob_storage_repository import (
            LocalBlobStorageRepository,
        )

        try:
            storage = LocalBlobStorageRepository(config.local_storage_dir)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize local storage: {e}") from e

        logger.info(
            f"Storage factory: Using local filesystem storage at {config.local_storage_dir}"
        )
        return storage
