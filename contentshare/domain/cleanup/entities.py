"""
Cleanup Entities

The persisted checkpoint of the expired-share cleanup job.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import ClassVar, Optional

from ..clock import ensure_utc, utcnow

# A first run only looks back one day instead of scanning unbounded history.
INITIAL_LOOKBACK = timedelta(days=1)


@dataclass
class CleanupCheckpoint:
    """
    Singleton document recording how far the cleanup job has progressed.

    Stored under a fixed id in a dedicated partition so it is always
    fetched with a single point read.

    Attributes:
        high_water_mark: Newest change-order value fully processed so far
        last_updated: When the document was last written (None if never)
        last_run_processed_count: Shares processed by the last run
        last_run_at: Reference time of the run that produced this checkpoint
    """

    DOCUMENT_ID: ClassVar[str] = "cleanup-job-state"
    PARTITION_KEY: ClassVar[str] = "system"

    high_water_mark: datetime
    last_updated: Optional[datetime] = None
    last_run_processed_count: int = 0
    last_run_at: Optional[datetime] = None

    def __post_init__(self):
        self.high_water_mark = ensure_utc(self.high_water_mark)
        if self.last_updated is not None:
            self.last_updated = ensure_utc(self.last_updated)
        if self.last_run_at is not None:
            self.last_run_at = ensure_utc(self.last_run_at)
        if self.last_run_processed_count < 0:
            raise ValueError(
                f"last_run_processed_count must be >= 0, got {self.last_run_processed_count}"
            )

    @classmethod
    def initial(cls, now: Optional[datetime] = None) -> "CleanupCheckpoint":
        """
        Synthesize the checkpoint used when none has been persisted yet.

        Args:
            now: Reference time (current time when omitted)

        Returns:
            Checkpoint with the mark one day in the past and no run recorded
        """
        now = ensure_utc(now) if now else utcnow()
        return cls(high_water_mark=now - INITIAL_LOOKBACK)

    @property
    def is_persisted(self) -> bool:
        return self.last_updated is not None

    def advance(
        self,
        candidate_mark: Optional[datetime],
        processed_count: int,
        run_at: datetime,
    ) -> "CleanupCheckpoint":
        """
        Build the checkpoint for the end of a run.

        The mark never moves backwards: the new mark is the larger of the
        current mark and the candidate.

        Args:
            candidate_mark: Newest change-order value handled by the run, if any
            processed_count: Shares processed by the run
            run_at: Reference time of the run

        Returns:
            New CleanupCheckpoint (last_updated is stamped by the store)
        """
        mark = self.high_water_mark
        if candidate_mark is not None and ensure_utc(candidate_mark) > mark:
            mark = ensure_utc(candidate_mark)

        return CleanupCheckpoint(
            high_water_mark=mark,
            last_updated=self.last_updated,
            last_run_processed_count=processed_count,
            last_run_at=run_at,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.DOCUMENT_ID,
            "partition_key": self.PARTITION_KEY,
            "high_water_mark": self.high_water_mark.isoformat(),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "last_run_processed_count": self.last_run_processed_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CleanupCheckpoint":
        """Create CleanupCheckpoint from dictionary."""
        last_updated = data.get("last_updated")
        last_run_at = data.get("last_run_at")
        return cls(
            high_water_mark=datetime.fromisoformat(data["high_water_mark"]),
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
            last_run_processed_count=int(data.get("last_run_processed_count", 0)),
            last_run_at=datetime.fromisoformat(last_run_at) if last_run_at else None,
        )
