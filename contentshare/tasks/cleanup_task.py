"""
Cleanup Task

Celery beat task for periodic cleanup of expired shares.
Thin wrapper that delegates to the cleanup engine.
"""

import logging

from celery_app import celery_app
from contentshare.config.celery_config import CLEANUP_TASK_NAME

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name=CLEANUP_TASK_NAME)
def cleanup_expired_shares(self):
    """
    Periodic task that tombstones expired shares and deletes their blobs.

    Runs every 5 minutes (configured in the Celery beat schedule). The
    engine is resolved from the DependencyContainer; the task never
    instantiates services directly.

    Infrastructure failures are logged and re-raised so the task is
    reported as failed; the next tick starts again from the last
    persisted checkpoint.

    Returns:
        dict: Run statistics
    """
    logger.info("Starting share cleanup task")

    from celery_app import flask_app
    from contentshare.jobs.run_cleanup import run_locked

    try:
        summary = run_locked(flask_app.container)
    except Exception as e:
        logger.error(f"Share cleanup task failed: {e}", exc_info=True)
        raise

    if summary is None:
        return {"skipped": True, "processed_count": 0}

    return {
        "skipped": False,
        "processed_count": summary.processed_count,
        "failed_count": summary.failed_count,
        "skipped_count": summary.skipped_count,
        "high_water_mark": summary.checkpoint.high_water_mark.isoformat(),
    }
