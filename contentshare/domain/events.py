"""
Domain Events

Immutable records of significant state changes in the domain.
Events decouple side effects (logging, monitoring) from core business logic.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Base class for all domain events.

    Attributes:
        aggregate_id: ID of the aggregate that generated the event (e.g., share id)
        occurred_at: Timestamp when the event occurred
    """
    aggregate_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event
        """
        return {
            "event_type": self.__class__.__name__,
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class ShareCreatedEvent(DomainEvent):
    """
    Event emitted when a share is created.

    Attributes:
        aggregate_id: Share ID
        owner_id: Owner of the share
        expires_at: When the share expires
    """
    owner_id: str
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "owner_id": self.owner_id,
            "expires_at": self.expires_at.isoformat(),
        })
        return base_dict


@dataclass(frozen=True)
class ShareTombstonedEvent(DomainEvent):
    """
    Event emitted when a share transitions to the tombstoned state.

    Attributes:
        aggregate_id: Share ID
        owner_id: Owner of the share
        reason: "expired" (cleanup engine) or "owner_delete"
        blob_deleted: Whether the blob was removed by this operation
    """
    owner_id: str
    reason: str
    blob_deleted: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "owner_id": self.owner_id,
            "reason": self.reason,
            "blob_deleted": self.blob_deleted,
        })
        return base_dict


@dataclass(frozen=True)
class ShareCleanupFailedEvent(DomainEvent):
    """
    Event emitted when a single share could not be cleaned up.

    Attributes:
        aggregate_id: Share ID
        stage: "metadata" or "blob"
        error_message: Error description
    """
    stage: str
    error_message: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "stage": self.stage,
            "error_message": self.error_message,
        })
        return base_dict


@dataclass(frozen=True)
class CleanupRunCompletedEvent(DomainEvent):
    """
    Event emitted when a cleanup run has written its checkpoint.

    Attributes:
        aggregate_id: Checkpoint document ID
        processed_count: Shares tombstoned by this run
        failed_count: Shares that failed and will be retried
        skipped_count: Shares already deleted by someone else
        high_water_mark: Mark persisted by this run
    """
    processed_count: int
    failed_count: int
    skipped_count: int
    high_water_mark: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "skipped_count": self.skipped_count,
            "high_water_mark": self.high_water_mark.isoformat(),
        })
        return base_dict
