"""
File Sharing Domain

Share records, their tombstone lifecycle and the storage interfaces
for metadata and blob content.
"""

from .entities import TOMBSTONE_RETENTION_SECONDS, ShareRecord
from .repositories import ShareRepository
from .storage_repository import IBlobStorageRepository

__all__ = [
    "ShareRecord",
    "ShareRepository",
    "IBlobStorageRepository",
    "TOMBSTONE_RETENTION_SECONDS",
]
