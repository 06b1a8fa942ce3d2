"""
Cleanup Repositories

Repository interface for the cleanup checkpoint.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .entities import CleanupCheckpoint


class CleanupStateRepository(ABC):
    """Abstract repository for the single cleanup checkpoint document."""

    @abstractmethod
    def get_state(self) -> CleanupCheckpoint:
        """
        Point-read the checkpoint.

        When no checkpoint has been persisted, returns
        ``CleanupCheckpoint.initial()`` without persisting it.

        Returns:
            Persisted or synthesized CleanupCheckpoint

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """
        pass  # pragma: no cover

    @abstractmethod
    def update_state(
        self,
        checkpoint: CleanupCheckpoint,
        expected_last_updated: Optional[datetime] = None,
    ) -> CleanupCheckpoint:
        """
        Upsert the checkpoint.

        Stamps ``last_updated`` with the current time regardless of the
        value set by the caller.

        Args:
            checkpoint: Checkpoint to persist
            expected_last_updated: ``last_updated`` of the checkpoint the
                caller read. Only checked by stores configured for
                conditional writes; None there means "expect no document".

        Returns:
            The stamped checkpoint

        Raises:
            StorageUnavailableError: If the store cannot be reached
            CheckpointConflictError: If a conditional write lost the race
        """
        pass  # pragma: no cover
