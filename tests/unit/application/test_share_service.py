"""
Unit tests for ShareService.

Tests the interactive share operations against in-memory stores and a real
share code cipher with a fixed key.
"""

from datetime import timedelta
from io import BytesIO
from unittest.mock import Mock

import pytest

from contentshare.application.cleanup_service import ShareCleanupEngine
from contentshare.application.share_service import ShareService
from contentshare.domain.errors import InvalidShareError
from contentshare.domain.events import ShareCreatedEvent, ShareTombstonedEvent
from contentshare.domain.file_sharing import TOMBSTONE_RETENTION_SECONDS
from contentshare.infrastructure.share_code_cipher import LazySecret, ShareCodeCipher
from tests.fixtures.share_fixtures import BASE_TIME

TEST_KEY = bytes(range(64))


@pytest.fixture
def cipher():
    return ShareCodeCipher(LazySecret(lambda: TEST_KEY))


@pytest.fixture
def event_publisher():
    return Mock()


@pytest.fixture
def service(share_repository, blob_storage, cipher, event_publisher, clock):
    return ShareService(
        share_repository, blob_storage, cipher,
        event_publisher=event_publisher, clock=clock,
    )


def create(service, owner_id="owner-1", file_name="report.pdf", content=b"hello", **kwargs):
    return service.create_share(
        owner_id=owner_id,
        file_name=file_name,
        content=BytesIO(content),
        content_type="application/pdf",
        recipient_email="recipient@example.com",
        **kwargs,
    )


class TestCreateShare:
    def test_stores_blob_and_record(self, service, share_repository, blob_storage, cipher):
        created = create(service, expiration_hours=48)

        record = share_repository.stored(created.share_id)
        assert record.owner_id == "owner-1"
        assert record.blob_path == f"owner-1/{created.share_id}/report.pdf"
        assert record.file_size_bytes == 5
        assert record.expires_at == BASE_TIME + timedelta(hours=48)
        assert record.encrypted_share_code == cipher.encrypt(created.share_code)
        assert blob_storage.blobs[record.blob_path] == b"hello"
        assert created.expires_at == record.expires_at

    def test_share_code_format(self, service):
        created = create(service)

        assert len(created.share_code) == 12
        assert created.share_code.isalnum()
        assert created.share_code == created.share_code.upper()

    def test_plain_code_is_not_stored(self, service, share_repository):
        created = create(service)

        assert created.share_code not in str(share_repository.stored(created.share_id).to_dict())

    @pytest.mark.parametrize("hours", [0, 721, -5])
    def test_rejects_expiration_out_of_range(self, service, blob_storage, hours):
        with pytest.raises(InvalidShareError):
            create(service, expiration_hours=hours)

        assert blob_storage.blobs == {}

    @pytest.mark.parametrize("hours", [1, 720])
    def test_accepts_expiration_bounds(self, service, hours):
        create(service, expiration_hours=hours)

    @pytest.mark.parametrize("file_name", ["", "../etc/passwd", ".."])
    def test_rejects_invalid_file_name(self, service, file_name):
        with pytest.raises(InvalidShareError):
            create(service, file_name=file_name)

    def test_removes_blob_when_record_cannot_be_stored(
        self, service, share_repository, blob_storage
    ):
        share_repository.add = Mock(side_effect=RuntimeError("store down"))

        with pytest.raises(RuntimeError):
            create(service)

        assert blob_storage.blobs == {}

    def test_publishes_created_event(self, service, event_publisher):
        created = create(service)

        event = event_publisher.publish.call_args[0][0]
        assert isinstance(event, ShareCreatedEvent)
        assert event.aggregate_id == created.share_id


class TestLookupAndDownload:
    def test_get_share_by_code(self, service):
        created = create(service)

        record = service.get_share_by_code(created.share_code)

        assert record.id == created.share_id

    def test_code_lookup_is_case_insensitive(self, service):
        created = create(service)

        assert service.get_share_by_code(created.share_code.lower()) is not None

    def test_unknown_code_returns_none(self, service):
        create(service)

        assert service.get_share_by_code("AAAAAAAAAAAA") is None
        assert service.get_share_by_code("  ") is None

    def test_expired_share_is_not_returned(self, service, clock):
        created = create(service, expiration_hours=1)

        clock.advance(timedelta(hours=1, seconds=1))

        assert service.get_share_by_code(created.share_code) is None

    def test_download_returns_content(self, service):
        created = create(service)

        shared = service.download_share(created.share_code)

        assert shared.stream.read() == b"hello"
        assert shared.file_name == "report.pdf"
        assert shared.content_type == "application/pdf"

    def test_download_with_missing_blob_returns_none(self, service, blob_storage):
        created = create(service)
        blob_storage.blobs.clear()

        assert service.download_share(created.share_code) is None


class TestListAndDelete:
    def test_list_user_shares_newest_first(self, service, clock):
        first = create(service, file_name="a.txt")
        clock.advance(timedelta(minutes=1))
        second = create(service, file_name="b.txt")
        create(service, owner_id="owner-2")

        shares = service.list_user_shares("owner-1")

        assert [s.id for s in shares] == [second.share_id, first.share_id]

    def test_delete_tombstones_and_removes_blob(
        self, service, share_repository, blob_storage, event_publisher
    ):
        created = create(service)

        assert service.delete_share(created.share_id, "owner-1") is True

        record = share_repository.stored(created.share_id)
        assert record.is_deleted is True
        assert record.retention_ttl_seconds == TOMBSTONE_RETENTION_SECONDS
        assert blob_storage.blobs == {}
        event = event_publisher.publish.call_args[0][0]
        assert isinstance(event, ShareTombstonedEvent)
        assert event.reason == "owner_delete"

    def test_delete_by_other_owner_returns_false(self, service, share_repository):
        created = create(service)

        assert service.delete_share(created.share_id, "intruder") is False
        assert share_repository.stored(created.share_id).is_deleted is False

    def test_delete_twice_returns_false(self, service):
        created = create(service)
        service.delete_share(created.share_id, "owner-1")

        assert service.delete_share(created.share_id, "owner-1") is False

    def test_deleted_share_is_hidden(self, service):
        created = create(service)
        service.delete_share(created.share_id, "owner-1")

        assert service.get_share_by_code(created.share_code) is None
        assert service.list_user_shares("owner-1") == []

    def test_blob_failure_still_deletes_share(self, service, share_repository, blob_storage):
        created = create(service)
        record = share_repository.stored(created.share_id)
        blob_storage.fail_delete_for.add(record.blob_path)

        assert service.delete_share(created.share_id, "owner-1") is True
        assert share_repository.stored(created.share_id).is_deleted is True

    def test_deleted_share_is_not_cleaned_again(
        self, service, share_repository, state_repository, blob_storage, clock
    ):
        created = create(service, expiration_hours=1)
        service.delete_share(created.share_id, "owner-1")
        clock.advance(timedelta(hours=2))
        engine = ShareCleanupEngine(share_repository, state_repository, blob_storage, clock=clock)

        assert engine.run_cleanup() == 0
