"""
Cleanup Configuration

Settings for the expired-share cleanup job, shared by the Celery beat
schedule and the standalone runner.
"""

import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class CleanupConfig:
    """Cleanup job configuration settings."""

    def __init__(
        self,
        page_size: int = 100,
        interval_seconds: float = 300.0,
        failure_backoff_seconds: float = 60.0,
        conditional_writes: bool = False,
        lock_timeout_seconds: int = 600,
        lock_blocking_timeout_seconds: int = 5,
    ):
        if page_size < 1:
            raise ValueError(f"CLEANUP_PAGE_SIZE must be >= 1, got {page_size}")
        if interval_seconds <= 0:
            raise ValueError(f"CLEANUP_INTERVAL_SECONDS must be > 0, got {interval_seconds}")

        self.page_size = page_size
        self.interval_seconds = interval_seconds
        self.failure_backoff_seconds = failure_backoff_seconds
        self.conditional_writes = conditional_writes
        self.lock_timeout_seconds = lock_timeout_seconds
        self.lock_blocking_timeout_seconds = lock_blocking_timeout_seconds

    @classmethod
    def from_env(cls) -> "CleanupConfig":
        return cls(
            page_size=int(os.getenv("CLEANUP_PAGE_SIZE", 100)),
            interval_seconds=float(os.getenv("CLEANUP_INTERVAL_SECONDS", 300)),
            failure_backoff_seconds=float(os.getenv("CLEANUP_FAILURE_BACKOFF_SECONDS", 60)),
            conditional_writes=_env_bool("CLEANUP_CHECKPOINT_CONDITIONAL_WRITES"),
            lock_timeout_seconds=int(os.getenv("CLEANUP_LOCK_TIMEOUT_SECONDS", 600)),
            lock_blocking_timeout_seconds=int(os.getenv("CLEANUP_LOCK_WAIT_SECONDS", 5)),
        )
