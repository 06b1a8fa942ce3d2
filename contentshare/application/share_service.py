"""
Share Application Service

Coordinates the interactive share use cases: create, look up by code,
download, list and delete. Deleting uses the same tombstone contract as the
cleanup engine.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Callable, List, Optional

from contentshare.domain.clock import utcnow
from contentshare.domain.errors import InvalidShareError
from contentshare.domain.events import ShareCreatedEvent, ShareTombstonedEvent
from contentshare.domain.file_sharing import (
    TOMBSTONE_RETENTION_SECONDS,
    IBlobStorageRepository,
    ShareRecord,
    ShareRepository,
)
from contentshare.infrastructure.share_code_cipher import ShareCodeCipher

logger = logging.getLogger(__name__)

MIN_EXPIRATION_HOURS = 1
MAX_EXPIRATION_HOURS = 720


@dataclass(frozen=True)
class ShareCreated:
    """Result of creating a share; the only place the plain code appears."""

    share_id: str
    share_code: str
    expires_at: datetime
    file_name: str


@dataclass
class SharedFile:
    """An opened shared file ready to be streamed to the recipient."""

    stream: BinaryIO
    file_name: str
    content_type: str
    file_size_bytes: int


class ShareService:
    """
    Application service for share management operations.

    Blob content is uploaded before the metadata is written, so a stored
    share always has content unless it was deleted afterwards.
    """

    def __init__(
        self,
        share_repository: ShareRepository,
        blob_storage: IBlobStorageRepository,
        cipher: ShareCodeCipher,
        event_publisher=None,
        clock: Callable[[], datetime] = utcnow,
        retention_seconds: int = TOMBSTONE_RETENTION_SECONDS,
    ):
        """
        Initialize ShareService.

        Args:
            share_repository: Share metadata store
            blob_storage: Blob store for share content
            cipher: Share code generator and cipher
            event_publisher: Optional EventPublisher for domain events
            clock: Time source
            retention_seconds: Store TTL applied to tombstones
        """
        self.share_repo = share_repository
        self.blob_storage = blob_storage
        self.cipher = cipher
        self.event_publisher = event_publisher
        self.clock = clock
        self.retention_seconds = retention_seconds

    def create_share(
        self,
        owner_id: str,
        file_name: str,
        content: BinaryIO,
        content_type: str,
        recipient_email: str,
        expiration_hours: int = 24,
        file_size_bytes: Optional[int] = None,
    ) -> ShareCreated:
        """
        Upload a file and create its share.

        Args:
            owner_id: Owner of the share
            file_name: Original file name
            content: Binary content
            content_type: MIME type
            recipient_email: Recipient address
            expiration_hours: Hours until expiry (1 to 720)
            file_size_bytes: Content size; measured from the stream when omitted

        Returns:
            ShareCreated with the plain share code

        Raises:
            InvalidShareError: If the request is invalid
            BlobStorageError: If the upload fails
            StorageUnavailableError: If the share store cannot be reached
        """
        if not MIN_EXPIRATION_HOURS <= expiration_hours <= MAX_EXPIRATION_HOURS:
            raise InvalidShareError(
                f"expiration_hours must be between {MIN_EXPIRATION_HOURS} and "
                f"{MAX_EXPIRATION_HOURS}, got {expiration_hours}"
            )
        if not file_name or "/" in file_name or file_name in (".", ".."):
            raise InvalidShareError(f"Invalid file name: {file_name!r}")
        if not owner_id:
            raise InvalidShareError("owner_id cannot be empty")

        if file_size_bytes is None:
            file_size_bytes = self._measure(content)

        share_code = self.cipher.generate_share_code()
        record = ShareRecord.create(
            owner_id=owner_id,
            file_name=file_name,
            content_type=content_type or "application/octet-stream",
            file_size_bytes=file_size_bytes,
            recipient_email=recipient_email,
            encrypted_share_code=self.cipher.encrypt(share_code),
            expiration_hours=expiration_hours,
            now=self.clock(),
        )

        logger.info(f"Creating share {record.id} for owner {owner_id}, file {file_name}")

        self.blob_storage.save(record.blob_path, content, record.content_type)
        try:
            if not self.share_repo.add(record):
                raise InvalidShareError(f"Share {record.id} already exists")
        except Exception:
            logger.error(f"Failed to store share {record.id}, removing uploaded blob", exc_info=True)
            self.blob_storage.delete_if_exists(record.blob_path)
            raise

        self._publish(
            ShareCreatedEvent(
                aggregate_id=record.id,
                occurred_at=record.created_at,
                owner_id=owner_id,
                expires_at=record.expires_at,
            )
        )

        return ShareCreated(
            share_id=record.id,
            share_code=share_code,
            expires_at=record.expires_at,
            file_name=file_name,
        )

    def get_share_by_code(self, share_code: str) -> Optional[ShareRecord]:
        """
        Find the active, unexpired share for a code.

        Returns:
            ShareRecord, or None if the code is unknown, expired or deleted
        """
        if not share_code or not share_code.strip():
            return None

        record = self.share_repo.find_by_encrypted_code(self.cipher.encrypt(share_code))
        if record is None or not record.is_active(self.clock()):
            return None
        return record

    def download_share(self, share_code: str) -> Optional[SharedFile]:
        """
        Open the content of the share for a code.

        Returns:
            SharedFile, or None if the share or its blob is missing
        """
        record = self.get_share_by_code(share_code)
        if record is None:
            return None

        stream = self.blob_storage.open(record.blob_path)
        if stream is None:
            logger.warning(f"Blob not found for share {record.id}")
            return None

        return SharedFile(
            stream=stream,
            file_name=record.file_name,
            content_type=record.content_type,
            file_size_bytes=record.file_size_bytes,
        )

    def list_user_shares(self, owner_id: str) -> List[ShareRecord]:
        """List the owner's shares that are not deleted, newest first."""
        return self.share_repo.list_by_owner(owner_id)

    def delete_share(self, share_id: str, owner_id: str) -> bool:
        """
        Delete a share on behalf of its owner.

        The record is tombstoned first, then the blob is deleted. A blob
        that cannot be deleted is logged and left behind; the share stays
        deleted.

        Returns:
            True if the share was deleted, False if it does not exist for
            this owner or was already deleted
        """
        record = self.share_repo.get(share_id, owner_id)
        if record is None or not record.tombstone(self.clock(), self.retention_seconds):
            logger.warning(f"Share {share_id} not found for owner {owner_id}")
            return False

        if not self.share_repo.replace(record):
            logger.info(f"Share {share_id} was deleted concurrently")
            return False

        try:
            blob_deleted = self.blob_storage.delete_if_exists(record.blob_path)
        except Exception as e:
            logger.error(
                f"Share {share_id} is deleted but its blob {record.blob_path} "
                f"could not be removed: {e}",
                exc_info=True,
            )
            blob_deleted = False

        logger.info(f"Share {share_id} deleted successfully")
        self._publish(
            ShareTombstonedEvent(
                aggregate_id=share_id,
                occurred_at=record.updated_at,
                owner_id=owner_id,
                reason="owner_delete",
                blob_deleted=blob_deleted,
            )
        )
        return True

    @staticmethod
    def _measure(content: BinaryIO) -> int:
        position = content.tell()
        content.seek(0, 2)
        size = content.tell()
        content.seek(position)
        return size

    def _publish(self, event) -> None:
        if self.event_publisher is not None:
            self.event_publisher.publish(event)
