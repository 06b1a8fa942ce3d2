"""
Standalone cleanup runner.

Runs the expired-share cleanup outside of Celery, either once (for cron or
a scheduled container job) or in a loop (for a long-lived background
process):

    python -m contentshare.jobs.run_cleanup          # one run, exit code 0/1
    python -m contentshare.jobs.run_cleanup --loop   # every 5 minutes

Both modes and the Celery task take the same Redis lock, so runs never
overlap when several invokers are deployed.
"""

import argparse
import logging
import os
import sys
import time
from typing import Callable, List, Optional

from redis.exceptions import LockError

from contentshare.application.cleanup_service import CleanupRunSummary, ShareCleanupEngine
from contentshare.application.dependency_container import DependencyContainer
from contentshare.config.cleanup_config import CleanupConfig
from contentshare.infrastructure.redis_repository import RedisRepository

logger = logging.getLogger(__name__)

LOCK_NAME = "cleanup-expired-shares"


def run_locked(container: DependencyContainer) -> Optional[CleanupRunSummary]:
    """
    Run one cleanup pass while holding the cleanup lock.

    Returns:
        Summary of the run, or None if another invoker holds the lock

    Raises:
        StorageUnavailableError: If Redis cannot be reached
        CheckpointConflictError: If the checkpoint was written concurrently
    """
    engine = container.resolve(ShareCleanupEngine)
    redis_repo = container.resolve(RedisRepository)
    config = container.resolve(CleanupConfig)

    try:
        with redis_repo.distributed_lock(
            LOCK_NAME,
            timeout=config.lock_timeout_seconds,
            blocking_timeout=config.lock_blocking_timeout_seconds,
        ):
            engine.run_cleanup()
    except LockError:
        logger.info("Another cleanup run holds the lock, skipping this run")
        return None

    return engine.last_summary


def run_once(container: DependencyContainer) -> int:
    """
    Run one cleanup pass and report the outcome as an exit code.

    Returns:
        0 on success (or when another run holds the lock), 1 on failure
    """
    try:
        summary = run_locked(container)
    except Exception as e:
        logger.error(f"Cleanup run failed: {e}", exc_info=True)
        return 1

    if summary is not None:
        logger.info(f"Cleanup run processed {summary.processed_count} expired shares")
    return 0


def run_loop(
    container: DependencyContainer,
    interval_seconds: float,
    failure_backoff_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    max_iterations: Optional[int] = None,
) -> None:
    """
    Run cleanup passes forever.

    A failed pass is followed by the shorter backoff delay instead of the
    regular interval.

    Args:
        container: Populated DependencyContainer
        interval_seconds: Delay after a successful pass
        failure_backoff_seconds: Delay after a failed pass
        sleep: Sleep function
        max_iterations: Stop after this many passes (None runs forever)
    """
    logger.info(f"Cleanup loop started (interval={interval_seconds}s)")
    iteration = 0

    while max_iterations is None or iteration < max_iterations:
        iteration += 1
        if run_once(container) == 0:
            sleep(interval_seconds)
        else:
            logger.warning(f"Retrying cleanup in {failure_backoff_seconds}s")
            sleep(failure_backoff_seconds)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tombstone expired shares and delete their content.",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep running, one pass every CLEANUP_INTERVAL_SECONDS",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from contentshare.config.redis_config import close_redis, init_redis
    from contentshare.container import build_container

    config = CleanupConfig.from_env()
    init_redis()
    try:
        container = build_container(cleanup_config=config)

        if args.loop:
            try:
                run_loop(container, config.interval_seconds, config.failure_backoff_seconds)
            except KeyboardInterrupt:
                logger.info("Cleanup loop stopped")
            return 0

        return run_once(container)
    finally:
        close_redis()


if __name__ == "__main__":
    sys.exit(main())
