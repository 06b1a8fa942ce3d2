"""
Cleanup Domain

Checkpoint entity and state repository interface of the expired-share
cleanup job. The engine itself lives in the application layer.
"""

from .entities import INITIAL_LOOKBACK, CleanupCheckpoint
from .repositories import CleanupStateRepository

__all__ = [
    "CleanupCheckpoint",
    "CleanupStateRepository",
    "INITIAL_LOOKBACK",
]
