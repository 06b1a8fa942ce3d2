"""
Google Cloud Storage Configuration

Blob storage settings. GCS is used when a bucket name is configured;
otherwise share content is kept on the local filesystem.
"""

import logging
import os
from typing import Optional

from google.cloud import storage
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GCSConfig:
    """Blob storage configuration settings."""

    def __init__(self):
        self.bucket_name: Optional[str] = os.getenv("GCS_BUCKET_NAME")
        self.credentials_path: Optional[str] = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        self.local_storage_dir = os.getenv("SHARE_STORAGE_DIR", "/tmp/contentshare")

    @property
    def is_configured(self) -> bool:
        return bool(self.bucket_name and self.bucket_name.strip())

    def create_client(self) -> storage.Client:
        """
        Create a storage client.

        Uses the service account file when GOOGLE_APPLICATION_CREDENTIALS
        points to one, default credentials otherwise.
        """
        if self.credentials_path and os.path.exists(self.credentials_path):
            credentials = service_account.Credentials.from_service_account_file(
                self.credentials_path
            )
            logger.info(f"GCS client using service account: {self.credentials_path}")
            return storage.Client(credentials=credentials)

        logger.info("GCS client using default credentials")
        return storage.Client()
