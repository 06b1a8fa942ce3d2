"""
File Sharing Repositories

Repository interface for share metadata persistence.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterator, List, Optional

from .entities import ShareRecord


class ShareRepository(ABC):
    """Abstract repository interface for share metadata persistence."""

    @abstractmethod
    def add(self, record: ShareRecord) -> bool:
        """
        Insert a new share record.

        Args:
            record: ShareRecord to insert

        Returns:
            True if inserted, False if a record with the same id exists
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, share_id: str, owner_id: str) -> Optional[ShareRecord]:
        """
        Point-read a share within its owner partition.

        Args:
            share_id: Share identifier
            owner_id: Owner (partition) key

        Returns:
            ShareRecord if found for this owner, None otherwise
        """
        pass  # pragma: no cover

    @abstractmethod
    def replace(self, record: ShareRecord) -> bool:
        """
        Replace an existing share record by id within its owner partition.

        A stored tombstone is never overwritten, so a concurrent delete
        cannot be undone by a stale copy.

        Args:
            record: Updated ShareRecord

        Returns:
            True if replaced, False if the stored record was already deleted

        Raises:
            ShareNotFoundError: If no record exists for this id and owner
            StorageUnavailableError: If the store cannot be reached
        """
        pass  # pragma: no cover

    @abstractmethod
    def find_by_encrypted_code(self, encrypted_share_code: str) -> Optional[ShareRecord]:
        """
        Find a share by its encrypted share code.

        Args:
            encrypted_share_code: Encrypted code as stored on the record

        Returns:
            ShareRecord if found, None otherwise
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[ShareRecord]:
        """
        List the non-deleted shares of an owner, newest first.

        Args:
            owner_id: Owner key

        Returns:
            List of ShareRecord
        """
        pass  # pragma: no cover

    @abstractmethod
    def find_cleanup_candidates(
        self, high_water_mark: datetime, now: datetime, page_size: int = 100
    ) -> Iterator[List[ShareRecord]]:
        """
        Query the shares the cleanup engine has to process.

        Matches every record where
        ``expires_at < now AND NOT is_deleted AND
        (updated_at > high_water_mark OR expires_at > high_water_mark)``,
        ordered by ascending ``updated_at``.

        Args:
            high_water_mark: Checkpoint mark of the previous run
            now: Reference time of this run
            page_size: Maximum records per page

        Yields:
            Pages of matching ShareRecord

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """
        pass  # pragma: no cover
