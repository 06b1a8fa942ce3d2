"""
Share Cleanup Application Service

Checkpointed cleanup of expired shares. Each run reads the high-water mark,
tombstones every expired share newer than the mark, deletes its blob and
writes the advanced checkpoint back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from contentshare.domain.clock import utcnow
from contentshare.domain.cleanup import CleanupCheckpoint, CleanupStateRepository
from contentshare.domain.events import (
    CleanupRunCompletedEvent,
    ShareCleanupFailedEvent,
    ShareTombstonedEvent,
)
from contentshare.domain.file_sharing import (
    TOMBSTONE_RETENTION_SECONDS,
    IBlobStorageRepository,
    ShareRecord,
    ShareRepository,
)

logger = logging.getLogger(__name__)

# Smallest step the mark is kept below a timestamp. Redis scores are float
# epoch seconds, so a microsecond is not reliably representable.
MARK_RESOLUTION = timedelta(milliseconds=1)


class RecordOutcome(Enum):
    """Outcome of cleaning a single share."""

    PROCESSED = "processed"
    ALREADY_DELETED = "already_deleted"
    METADATA_FAILED = "metadata_failed"
    BLOB_FAILED = "blob_failed"


@dataclass(frozen=True)
class CleanupRunSummary:
    """
    Statistics of one cleanup run.

    Attributes:
        processed_count: Shares tombstoned and blob-deleted by this run
        failed_count: Shares whose tombstone or blob delete failed
        skipped_count: Shares already tombstoned by a concurrent delete
        previous_mark: Mark read at the start of the run
        checkpoint: Checkpoint persisted at the end of the run
    """
    processed_count: int
    failed_count: int
    skipped_count: int
    previous_mark: datetime
    checkpoint: CleanupCheckpoint


class ShareCleanupEngine:
    """
    Application service that cleans up expired shares exactly once per run.

    A run is safe to repeat and safe to interrupt:

    - Tombstoning is idempotent per record, so rescanning a window after a
      crash only repeats no-ops.
    - The checkpoint is written once, at the end of the run, so an
      interrupted run leaves the mark untouched.
    - The mark never moves backwards.
    - The mark stays strictly below the run's ``now`` and below the window
      position of every share whose tombstone failed, so neither a share
      expiring during the run nor a failed share drops out of the window.

    Infrastructure failures (checkpoint read, query, checkpoint write)
    propagate to the invoker. Failures of individual shares are logged and
    never abort the run.
    """

    def __init__(
        self,
        share_repository: ShareRepository,
        state_repository: CleanupStateRepository,
        blob_storage: IBlobStorageRepository,
        event_publisher=None,
        clock: Callable[[], datetime] = utcnow,
        page_size: int = 100,
        retention_seconds: int = TOMBSTONE_RETENTION_SECONDS,
    ):
        """
        Initialize the engine with its collaborators.

        Args:
            share_repository: Share metadata store
            state_repository: Checkpoint store
            blob_storage: Blob store
            event_publisher: Optional EventPublisher for domain events
            clock: Time source
            page_size: Records fetched per query page
            retention_seconds: Store TTL applied to tombstones
        """
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        self.share_repo = share_repository
        self.state_repo = state_repository
        self.blob_storage = blob_storage
        self.event_publisher = event_publisher
        self.clock = clock
        self.page_size = page_size
        self.retention_seconds = retention_seconds
        self.last_summary: Optional[CleanupRunSummary] = None

    def run_cleanup(self) -> int:
        """
        Run one cleanup pass.

        Returns:
            Number of shares processed by this run

        Raises:
            StorageUnavailableError: If the checkpoint or the share store
                cannot be reached
            CheckpointConflictError: If a conditional checkpoint write lost
                against an overlapping run
        """
        state = self.state_repo.get_state()
        mark = state.high_water_mark
        now = self.clock()

        if not state.is_persisted:
            logger.info(
                f"No cleanup checkpoint stored yet, scanning from {mark.isoformat()}"
            )

        logger.info(
            f"Starting share cleanup run (high_water_mark={mark.isoformat()}, "
            f"now={now.isoformat()})"
        )

        processed_count = 0
        failed_count = 0
        skipped_count = 0
        candidate_mark: Optional[datetime] = None
        retry_limit: Optional[datetime] = None

        for page in self.share_repo.find_cleanup_candidates(mark, now, self.page_size):
            logger.debug(f"Processing page of {len(page)} expired shares")

            for record in page:
                # Tombstoning refreshes updated_at, keep the values the query saw.
                seen_updated_at = record.updated_at
                window_position = max(record.updated_at, record.expires_at)

                outcome = self._clean_record(record)

                if outcome is RecordOutcome.PROCESSED:
                    processed_count += 1
                    if candidate_mark is None or seen_updated_at > candidate_mark:
                        candidate_mark = seen_updated_at
                elif outcome is RecordOutcome.METADATA_FAILED:
                    failed_count += 1
                    limit = window_position - MARK_RESOLUTION
                    if retry_limit is None or limit < retry_limit:
                        retry_limit = limit
                elif outcome is RecordOutcome.BLOB_FAILED:
                    # Already tombstoned, so it has left the window either way.
                    failed_count += 1
                else:
                    skipped_count += 1

        if candidate_mark is not None:
            candidate_mark = self._bound_candidate(candidate_mark, now, retry_limit)

        if retry_limit is not None:
            logger.warning(
                f"{failed_count} share(s) failed cleanup; high-water mark stays below "
                f"{(retry_limit + MARK_RESOLUTION).isoformat()} so they are retried next run"
            )
        elif failed_count:
            logger.warning(f"{failed_count} share(s) left orphaned blobs behind")

        checkpoint = state.advance(
            candidate_mark=candidate_mark,
            processed_count=processed_count,
            run_at=now,
        )
        checkpoint = self.state_repo.update_state(
            checkpoint, expected_last_updated=state.last_updated
        )

        self.last_summary = CleanupRunSummary(
            processed_count=processed_count,
            failed_count=failed_count,
            skipped_count=skipped_count,
            previous_mark=mark,
            checkpoint=checkpoint,
        )

        logger.info(
            f"Share cleanup completed - Processed: {processed_count}, "
            f"Failed: {failed_count}, Skipped: {skipped_count}, "
            f"High-water mark: {checkpoint.high_water_mark.isoformat()}"
        )
        self._publish(
            CleanupRunCompletedEvent(
                aggregate_id=CleanupCheckpoint.DOCUMENT_ID,
                occurred_at=self.clock(),
                processed_count=processed_count,
                failed_count=failed_count,
                skipped_count=skipped_count,
                high_water_mark=checkpoint.high_water_mark,
            )
        )

        return processed_count

    @staticmethod
    def _bound_candidate(
        candidate: datetime, now: datetime, retry_limit: Optional[datetime]
    ) -> datetime:
        """
        Keep the candidate mark inside the range that loses no share.

        Shares that are not expired yet have ``expires_at >= now`` and stay in
        the next window only while the mark is below ``now``. A share whose
        tombstone failed stays in the window only while the mark is below
        ``max(updated_at, expires_at)``.
        """
        limit = now - MARK_RESOLUTION
        if retry_limit is not None and retry_limit < limit:
            limit = retry_limit
        return min(candidate, limit)

    def _clean_record(self, record: ShareRecord) -> RecordOutcome:
        """
        Tombstone one share, then delete its blob.

        Metadata is tombstoned before the blob is deleted. If the blob delete
        fails the share stays tombstoned and the blob is left behind.
        """
        try:
            if not record.tombstone(self.clock(), self.retention_seconds):
                return RecordOutcome.ALREADY_DELETED

            if not self.share_repo.replace(record):
                logger.debug(f"Share {record.id} was already deleted, skipping")
                return RecordOutcome.ALREADY_DELETED

        except Exception as e:
            logger.error(
                f"Failed to tombstone expired share {record.id} "
                f"(owner={record.owner_id}): {e}",
                exc_info=True,
            )
            self._publish_failure(record, "metadata", e)
            return RecordOutcome.METADATA_FAILED

        try:
            blob_deleted = self.blob_storage.delete_if_exists(record.blob_path)
        except Exception as e:
            logger.error(
                f"Share {record.id} is tombstoned but its blob {record.blob_path} "
                f"could not be deleted: {e}",
                exc_info=True,
            )
            self._publish_failure(record, "blob", e)
            return RecordOutcome.BLOB_FAILED

        if not blob_deleted:
            logger.debug(f"Blob {record.blob_path} for share {record.id} was already gone")

        self._publish(
            ShareTombstonedEvent(
                aggregate_id=record.id,
                occurred_at=record.updated_at,
                owner_id=record.owner_id,
                reason="expired",
                blob_deleted=blob_deleted,
            )
        )
        return RecordOutcome.PROCESSED

    def _publish_failure(self, record: ShareRecord, stage: str, error: Exception) -> None:
        self._publish(
            ShareCleanupFailedEvent(
                aggregate_id=record.id,
                occurred_at=self.clock(),
                stage=stage,
                error_message=str(error),
            )
        )

    def _publish(self, event) -> None:
        if self.event_publisher is not None:
            self.event_publisher.publish(event)
