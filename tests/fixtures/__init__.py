"""
Test fixtures package.

Provides factory functions and in-memory repository implementations for testing.
"""

from .mock_repositories import (
    InMemoryBlobStorage,
    InMemoryCleanupStateRepository,
    InMemoryShareRepository,
)
from .share_fixtures import FakeClock, make_share

__all__ = [
    "InMemoryShareRepository",
    "InMemoryCleanupStateRepository",
    "InMemoryBlobStorage",
    "FakeClock",
    "make_share",
]
