"""
Local Blob Storage Repository Implementation

Filesystem implementation of IBlobStorageRepository for development and
tests. Blob paths are resolved below a base directory.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional

from contentshare.domain.errors import BlobStorageError
from contentshare.domain.file_sharing import IBlobStorageRepository

logger = logging.getLogger(__name__)


class LocalBlobStorageRepository(IBlobStorageRepository):
    """
    Local filesystem implementation of IBlobStorageRepository.

    Attributes:
        base_path: Base directory holding share content
    """

    def __init__(self, base_path: str = "/tmp/contentshare"):
        self.base_path = Path(base_path)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BlobStorageError(
                f"Failed to create storage directory: {self.base_path}", e
            ) from e

    def _resolve(self, blob_path: str) -> Path:
        full_path = (self.base_path / blob_path).resolve()
        # Blob paths come from user-supplied file names.
        if self.base_path.resolve() not in full_path.parents:
            raise ValueError(f"blob_path escapes the storage directory: {blob_path}")
        return full_path

    def save(
        self,
        blob_path: str,
        content: BinaryIO,
        content_type: str = "application/octet-stream",
    ) -> bool:
        if not blob_path or not blob_path.strip():
            raise ValueError("blob_path cannot be empty")

        full_path = self._resolve(blob_path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as f:
                while True:
                    chunk = content.read(8192)
                    if not chunk:
                        break
                    f.write(chunk)
        except OSError as e:
            raise BlobStorageError(f"Failed to save blob {blob_path}: {e}", e) from e

        return True

    def open(self, blob_path: str) -> Optional[BinaryIO]:
        if not blob_path or not blob_path.strip():
            return None

        full_path = self._resolve(blob_path)
        if not full_path.is_file():
            return None

        try:
            with open(full_path, "rb") as f:
                return BytesIO(f.read())
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BlobStorageError(f"Failed to read blob {blob_path}: {e}", e) from e

    def exists(self, blob_path: str) -> bool:
        if not blob_path or not blob_path.strip():
            return False
        return self._resolve(blob_path).is_file()

    def delete_if_exists(self, blob_path: str) -> bool:
        if not blob_path or not blob_path.strip():
            return False

        full_path = self._resolve(blob_path)
        try:
            full_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BlobStorageError(f"Failed to delete blob {blob_path}: {e}", e) from e

        self._prune_empty_dirs(full_path.parent)
        return True

    def _prune_empty_dirs(self, directory: Path) -> None:
        base = self.base_path.resolve()
        while directory != base and base in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # Not empty
                return
            directory = directory.parent

    def health_check(self) -> bool:
        return self.base_path.is_dir()
