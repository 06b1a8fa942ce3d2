"""
Logging Event Handler

Infrastructure event handler for logging domain events.
Subscribes to domain events and logs them appropriately.
Domain layer remains unaware of logging infrastructure.
"""

import logging

from contentshare.domain.events import (
    CleanupRunCompletedEvent,
    DomainEvent,
    ShareCleanupFailedEvent,
    ShareCreatedEvent,
    ShareTombstonedEvent,
)


class LoggingEventHandler:
    """
    Infrastructure event handler for logging domain events.

    Subscribes to domain events and logs them appropriately.
    """

    def __init__(self, logger: logging.Logger):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance
        """
        self.logger = logger

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event by logging it.

        Args:
            event: Domain event to log
        """
        try:
            if isinstance(event, ShareCreatedEvent):
                self._handle_share_created(event)
            elif isinstance(event, ShareTombstonedEvent):
                self._handle_share_tombstoned(event)
            elif isinstance(event, ShareCleanupFailedEvent):
                self._handle_cleanup_failed(event)
            elif isinstance(event, CleanupRunCompletedEvent):
                self._handle_run_completed(event)
            else:
                self.logger.debug(
                    f"Unhandled event: {event.__class__.__name__} "
                    f"(aggregate_id={event.aggregate_id})"
                )
        except Exception as e:
            # Log handler errors but don't fail the operation
            self.logger.error(
                f"Error in logging event handler for {event.__class__.__name__}: {e}",
                exc_info=True,
            )

    def _handle_share_created(self, event: ShareCreatedEvent) -> None:
        self.logger.info(
            f"Share created: share_id={event.aggregate_id}, owner_id={event.owner_id}, "
            f"expires_at={event.expires_at.isoformat()}"
        )

    def _handle_share_tombstoned(self, event: ShareTombstonedEvent) -> None:
        self.logger.info(
            f"Share tombstoned: share_id={event.aggregate_id}, owner_id={event.owner_id}, "
            f"reason={event.reason}, blob_deleted={event.blob_deleted}"
        )

    def _handle_cleanup_failed(self, event: ShareCleanupFailedEvent) -> None:
        if event.stage == "blob":
            # Metadata is already tombstoned, the blob is orphaned
            self.logger.warning(
                f"Orphaned blob left for share {event.aggregate_id}: {event.error_message}"
            )
        else:
            self.logger.error(
                f"Share cleanup failed: share_id={event.aggregate_id}, "
                f"stage={event.stage}, error={event.error_message}"
            )

    def _handle_run_completed(self, event: CleanupRunCompletedEvent) -> None:
        """Log cleanup run summary."""
        self.logger.info(
            f"Cleanup run completed: processed={event.processed_count}, "
            f"failed={event.failed_count}, skipped={event.skipped_count}, "
            f"high_water_mark={event.high_water_mark.isoformat()}"
        )
