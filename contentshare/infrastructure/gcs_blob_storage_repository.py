"""
Google Cloud Storage Blob Repository Implementation

Concrete implementation of IBlobStorageRepository backed by a GCS bucket.
Blob names are the share blob paths (``{owner_id}/{share_id}/{file_name}``).
"""

import logging
from io import BytesIO
from typing import BinaryIO, Optional

from google.cloud import storage
from google.cloud.exceptions import GoogleCloudError, NotFound

from contentshare.domain.errors import BlobStorageError
from contentshare.domain.file_sharing import IBlobStorageRepository

logger = logging.getLogger(__name__)


class GCSBlobStorageRepository(IBlobStorageRepository):
    """
    Google Cloud Storage implementation of IBlobStorageRepository.

    Thread Safety:
        The GCS client handles concurrent operations safely.

    Attributes:
        bucket_name: Name of the GCS bucket holding share content
        client: Google Cloud Storage client instance
        bucket: GCS bucket object
    """

    def __init__(self, bucket_name: str, client: Optional[storage.Client] = None):
        """
        Initialize the GCS blob repository.

        Args:
            bucket_name: Name of the GCS bucket
            client: Optional preconfigured storage client

        Raises:
            ValueError: If bucket_name is empty
        """
        if not bucket_name or not bucket_name.strip():
            raise ValueError("bucket_name cannot be empty")

        self.bucket_name = bucket_name
        self.client = client or storage.Client()
        self.bucket = self.client.bucket(bucket_name)

    def save(
        self,
        blob_path: str,
        content: BinaryIO,
        content_type: str = "application/octet-stream",
    ) -> bool:
        if not blob_path or not blob_path.strip():
            raise ValueError("blob_path cannot be empty")

        try:
            blob = self.bucket.blob(blob_path)
            if hasattr(content, "seek"):
                content.seek(0)
            blob.upload_from_file(content, content_type=content_type)
            return True
        except GoogleCloudError as e:
            raise BlobStorageError(f"Failed to upload blob {blob_path}: {e}", e) from e

    def open(self, blob_path: str) -> Optional[BinaryIO]:
        if not blob_path or not blob_path.strip():
            return None

        content = BytesIO()
        try:
            self.bucket.blob(blob_path).download_to_file(content)
        except NotFound:
            return None
        except GoogleCloudError as e:
            raise BlobStorageError(f"Failed to download blob {blob_path}: {e}", e) from e

        content.seek(0)
        return content

    def exists(self, blob_path: str) -> bool:
        if not blob_path or not blob_path.strip():
            return False

        try:
            return self.bucket.blob(blob_path).exists()
        except GoogleCloudError as e:
            raise BlobStorageError(f"Failed to check blob {blob_path}: {e}", e) from e

    def delete_if_exists(self, blob_path: str) -> bool:
        """
        Delete a blob from the bucket.

        A blob that is already gone (deleted by an earlier, interrupted run
        or never uploaded) is reported as False rather than raised.
        """
        if not blob_path or not blob_path.strip():
            return False

        try:
            self.bucket.blob(blob_path).delete()
        except NotFound:
            return False
        except GoogleCloudError as e:
            raise BlobStorageError(f"Failed to delete blob {blob_path}: {e}", e) from e

        logger.debug(f"Deleted blob gs://{self.bucket_name}/{blob_path}")
        return True

    def health_check(self) -> bool:
        """Check that the bucket is reachable."""
        try:
            return bool(self.bucket.exists())
        except GoogleCloudError as e:
            logger.warning(f"GCS bucket {self.bucket_name} health check failed: {e}")
            return False
