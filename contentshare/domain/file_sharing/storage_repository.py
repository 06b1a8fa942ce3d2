"""
Blob Storage Repository Interface

Abstract interface for the binary content of shares. Implementations live in
the infrastructure layer (Google Cloud Storage, local filesystem).
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Optional


class IBlobStorageRepository(ABC):
    """
    Abstract repository for blob content keyed by a path string.

    Paths are relative, e.g. ``owner-1/3f2c.../report.pdf``.
    """

    @abstractmethod
    def save(
        self,
        blob_path: str,
        content: BinaryIO,
        content_type: str = "application/octet-stream",
    ) -> bool:
        """
        Store content at the given path, overwriting any existing blob.

        Args:
            blob_path: Relative blob path
            content: Binary file-like object
            content_type: MIME type

        Returns:
            True if stored

        Raises:
            BlobStorageError: If the upload fails
        """
        pass  # pragma: no cover

    @abstractmethod
    def open(self, blob_path: str) -> Optional[BinaryIO]:
        """
        Open a blob for reading.

        Args:
            blob_path: Relative blob path

        Returns:
            Binary stream, or None if the blob does not exist
        """
        pass  # pragma: no cover

    @abstractmethod
    def exists(self, blob_path: str) -> bool:
        """Check if a blob exists."""
        pass  # pragma: no cover

    @abstractmethod
    def delete_if_exists(self, blob_path: str) -> bool:
        """
        Delete a blob. Deleting a missing blob is not an error.

        Args:
            blob_path: Relative blob path

        Returns:
            True if a blob was deleted, False if it was already missing

        Raises:
            BlobStorageError: If the delete fails for another reason
        """
        pass  # pragma: no cover
