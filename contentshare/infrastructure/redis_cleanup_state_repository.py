"""
Redis Cleanup State Repository Implementation

Stores the cleanup checkpoint as one JSON document at a fixed key,
``system:cleanup-job-state`` (partition, then document id).
"""

import json
import logging
from datetime import datetime
from typing import Callable, Optional

from redis.exceptions import WatchError

from contentshare.domain.clock import utcnow
from contentshare.domain.cleanup import CleanupCheckpoint, CleanupStateRepository
from contentshare.domain.errors import CheckpointConflictError, StorageUnavailableError
from contentshare.infrastructure.redis_repository import UNAVAILABLE_ERRORS

logger = logging.getLogger(__name__)


class RedisCleanupStateRepository(CleanupStateRepository):
    """
    Redis-based implementation of CleanupStateRepository.

    Writes are last-writer-wins unless ``conditional_writes`` is enabled, in
    which case the document is replaced only if its ``last_updated`` still
    matches the value the caller read (optimistic WATCH/MULTI transaction).
    """

    STATE_KEY = f"{CleanupCheckpoint.PARTITION_KEY}:{CleanupCheckpoint.DOCUMENT_ID}"

    def __init__(
        self,
        redis_repository,
        clock: Callable[[], datetime] = utcnow,
        conditional_writes: bool = False,
    ):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
            clock: Time source for the synthesized checkpoint and write stamps
            conditional_writes: Enable compare-and-swap on last_updated
        """
        self.redis_repo = redis_repository
        self.clock = clock
        self.conditional_writes = conditional_writes

    def get_state(self) -> CleanupCheckpoint:
        data = self.redis_repo.get_json(self.STATE_KEY)
        if data is None:
            checkpoint = CleanupCheckpoint.initial(self.clock())
            logger.info(
                f"No cleanup checkpoint stored, starting from "
                f"{checkpoint.high_water_mark.isoformat()}"
            )
            return checkpoint

        try:
            return CleanupCheckpoint.from_dict(data)
        except (KeyError, ValueError) as e:
            raise StorageUnavailableError(f"Stored cleanup checkpoint is unreadable: {e}", e) from e

    def update_state(
        self,
        checkpoint: CleanupCheckpoint,
        expected_last_updated: Optional[datetime] = None,
    ) -> CleanupCheckpoint:
        stamped = CleanupCheckpoint(
            high_water_mark=checkpoint.high_water_mark,
            last_updated=self.clock(),
            last_run_processed_count=checkpoint.last_run_processed_count,
            last_run_at=checkpoint.last_run_at,
        )

        if self.conditional_writes:
            self._compare_and_swap(stamped, expected_last_updated)
        else:
            self.redis_repo.set_json(self.STATE_KEY, stamped.to_dict())

        logger.debug(
            f"Cleanup checkpoint saved (high_water_mark={stamped.high_water_mark.isoformat()}, "
            f"processed={stamped.last_run_processed_count})"
        )
        return stamped

    def _compare_and_swap(
        self, checkpoint: CleanupCheckpoint, expected_last_updated: Optional[datetime]
    ) -> None:
        key = self.redis_repo._make_key(self.STATE_KEY)

        try:
            with self.redis_repo.redis.pipeline() as pipe:
                pipe.watch(key)
                current = pipe.get(key)
                stored_last_updated = self._stored_last_updated(current)

                if stored_last_updated != expected_last_updated:
                    raise CheckpointConflictError(
                        f"Cleanup checkpoint changed since it was read "
                        f"(expected last_updated={expected_last_updated}, "
                        f"found {stored_last_updated})"
                    )

                pipe.multi()
                pipe.set(key, json.dumps(checkpoint.to_dict()))
                pipe.execute()
        except WatchError as e:
            raise CheckpointConflictError(
                "Cleanup checkpoint was written concurrently", e
            ) from e
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable writing cleanup checkpoint: {e}", e) from e

    @staticmethod
    def _stored_last_updated(raw) -> Optional[datetime]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return CleanupCheckpoint.from_dict(json.loads(raw)).last_updated
