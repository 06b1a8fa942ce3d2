"""
File Sharing Entities

Domain entity for a shared file and its two-phase lifecycle
(active -> tombstoned).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..clock import ensure_utc, utcnow
from ..errors import InvalidShareError

# Tombstones are kept for 180 days before the store's own expiry purges them.
TOMBSTONE_RETENTION_SECONDS = 180 * 24 * 60 * 60


@dataclass
class ShareRecord:
    """
    Entity representing one shared file.

    The record is created together with its blob upload and is only ever
    mutated by tombstoning, either through the owner's explicit delete or
    by the cleanup engine once the share has expired. Application code
    never removes the record; the store's native TTL does that after the
    retention window.

    Attributes:
        id: Opaque unique identifier
        owner_id: Owner (partition) key
        file_name: Original file name
        blob_path: Path of the content in the blob store
        content_type: MIME type
        file_size_bytes: Content size in bytes
        recipient_email: Who the share is intended for
        encrypted_share_code: Share code in encrypted form
        created_at: Creation timestamp
        updated_at: Last change timestamp, used as the change-order value
        expires_at: Expiry timestamp
        is_deleted: Soft-delete flag
        retention_ttl_seconds: Store TTL, set only once tombstoned
    """
    id: str
    owner_id: str
    file_name: str
    blob_path: str
    content_type: str
    file_size_bytes: int
    recipient_email: str
    encrypted_share_code: str
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    is_deleted: bool = False
    retention_ttl_seconds: Optional[int] = None

    def __post_init__(self):
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)
        self.expires_at = ensure_utc(self.expires_at)
        if self.expires_at <= self.created_at:
            raise InvalidShareError(
                f"Share {self.id} must expire after it is created "
                f"(created_at={self.created_at.isoformat()}, "
                f"expires_at={self.expires_at.isoformat()})"
            )

    @classmethod
    def create(
        cls,
        owner_id: str,
        file_name: str,
        content_type: str,
        file_size_bytes: int,
        recipient_email: str,
        encrypted_share_code: str,
        expiration_hours: int = 24,
        share_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "ShareRecord":
        """
        Factory method to create a new active share.

        The blob path is derived from owner, share id and file name so that
        every share owns a distinct blob.

        Args:
            owner_id: Owner key
            file_name: Original file name
            content_type: MIME type
            file_size_bytes: Content size
            recipient_email: Recipient address
            encrypted_share_code: Encrypted share code
            expiration_hours: Hours until the share expires
            share_id: Optional explicit id (generated when omitted)
            now: Optional creation time (current time when omitted)

        Returns:
            New active ShareRecord
        """
        now = ensure_utc(now) if now else utcnow()
        share_id = share_id or str(uuid.uuid4())
        return cls(
            id=share_id,
            owner_id=owner_id,
            file_name=file_name,
            blob_path=cls.build_blob_path(owner_id, share_id, file_name),
            content_type=content_type,
            file_size_bytes=file_size_bytes,
            recipient_email=recipient_email,
            encrypted_share_code=encrypted_share_code,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(hours=expiration_hours),
        )

    @staticmethod
    def build_blob_path(owner_id: str, share_id: str, file_name: str) -> str:
        return f"{owner_id}/{share_id}/{file_name}"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check if the share has expired.

        Expiry is strict: a share whose expiry equals ``now`` is still valid.
        """
        now = ensure_utc(now) if now else utcnow()
        return self.expires_at < now

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return not self.is_deleted and not self.is_expired(now)

    def tombstone(
        self,
        now: Optional[datetime] = None,
        retention_seconds: int = TOMBSTONE_RETENTION_SECONDS,
    ) -> bool:
        """
        Mark the share as deleted.

        Transitions active -> tombstoned only. A tombstoned record is
        immutable, so calling this again changes nothing.

        Args:
            now: Time of deletion (current time when omitted)
            retention_seconds: Store TTL applied to the tombstone

        Returns:
            True if the record transitioned, False if it was already deleted
        """
        if self.is_deleted:
            return False

        self.is_deleted = True
        self.updated_at = ensure_utc(now) if now else utcnow()
        self.retention_ttl_seconds = retention_seconds
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "file_name": self.file_name,
            "blob_path": self.blob_path,
            "content_type": self.content_type,
            "file_size_bytes": self.file_size_bytes,
            "recipient_email": self.recipient_email,
            "encrypted_share_code": self.encrypted_share_code,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "is_deleted": self.is_deleted,
            "retention_ttl_seconds": self.retention_ttl_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShareRecord":
        """Create ShareRecord from dictionary."""
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            file_name=data["file_name"],
            blob_path=data["blob_path"],
            content_type=data.get("content_type", "application/octet-stream"),
            file_size_bytes=int(data.get("file_size_bytes", 0)),
            recipient_email=data.get("recipient_email", ""),
            encrypted_share_code=data.get("encrypted_share_code", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            is_deleted=bool(data.get("is_deleted", False)),
            retention_ttl_seconds=data.get("retention_ttl_seconds"),
        )
