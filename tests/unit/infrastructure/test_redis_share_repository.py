"""
Unit tests for RedisShareRepository over a mocked redis client.

Lua script behavior is covered by the integration tests; these tests cover
key layout, argument passing, result mapping and candidate ordering.
"""

import json
from datetime import timedelta
from unittest.mock import Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from contentshare.domain.errors import ShareNotFoundError, StorageUnavailableError
from contentshare.infrastructure.redis_repository import RedisRepository
from contentshare.infrastructure.redis_share_repository import (
    ADD_SCRIPT,
    REPLACE_SCRIPT,
    RedisShareRepository,
)
from tests.fixtures import make_share
from tests.fixtures.share_fixtures import BASE_TIME


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def repo(client):
    return RedisShareRepository(RedisRepository(client, key_prefix="test"))


def serve_documents(client, *records, extra=None):
    """Make GET/MGET answer from the given records."""
    documents = {f"test:share:{r.id}": json.dumps(r.to_dict()).encode() for r in records}
    documents.update(extra or {})
    client.get.side_effect = lambda key: documents.get(key)
    client.mget.side_effect = lambda keys: [documents.get(k) for k in keys]


class TestWrites:
    def test_add_runs_script_with_index_keys(self, repo, client):
        client.eval.return_value = 1
        record = make_share("share-1", owner_id="owner-1")

        assert repo.add(record) is True

        args = client.eval.call_args[0]
        assert args[0] == ADD_SCRIPT
        assert args[1] == 5
        assert args[2:7] == (
            "test:share:share-1",
            "test:share:index:updated",
            "test:share:index:expires",
            "test:share:index:owner:owner-1",
            "test:share:index:code:enc-share-1",
        )
        assert json.loads(args[7])["id"] == "share-1"
        assert args[9] == record.updated_at.timestamp()
        assert args[10] == record.expires_at.timestamp()

    def test_add_existing_returns_false(self, repo, client):
        client.eval.return_value = 0

        assert repo.add(make_share()) is False

    def test_replace_tombstone_passes_flag_and_ttl(self, repo, client):
        client.eval.return_value = 1
        record = make_share("share-1")
        record.tombstone(BASE_TIME)

        assert repo.replace(record) is True

        args = client.eval.call_args[0]
        assert args[0] == REPLACE_SCRIPT
        assert args[1] == 3
        assert args[-2] == "1"
        assert args[-1] == 180 * 24 * 60 * 60

    def test_replace_already_deleted_returns_false(self, repo, client):
        client.eval.return_value = 0

        assert repo.replace(make_share()) is False

    def test_replace_missing_raises(self, repo, client):
        client.eval.return_value = -1

        with pytest.raises(ShareNotFoundError):
            repo.replace(make_share())

    def test_replace_unavailable_raises(self, repo, client):
        client.eval.side_effect = RedisConnectionError("down")

        with pytest.raises(StorageUnavailableError):
            repo.replace(make_share())


class TestReads:
    def test_get_scopes_by_owner(self, repo, client):
        serve_documents(client, make_share("share-1", owner_id="owner-1"))

        assert repo.get("share-1", "owner-1").id == "share-1"
        assert repo.get("share-1", "owner-2") is None

    def test_get_skips_invalid_document(self, repo, client):
        serve_documents(client, extra={"test:share:broken": b'{"id": "broken"}'})

        assert repo.get("broken", "owner-1") is None

    def test_find_by_encrypted_code(self, repo, client):
        serve_documents(
            client,
            make_share("share-1"),
            extra={"test:share:index:code:enc-share-1": b"share-1"},
        )

        assert repo.find_by_encrypted_code("enc-share-1").id == "share-1"
        assert repo.find_by_encrypted_code("unknown") is None

    def test_list_by_owner_filters_deleted(self, repo, client):
        deleted = make_share("old")
        deleted.tombstone(BASE_TIME)
        serve_documents(client, make_share("new"), deleted)
        client.zrevrange.return_value = [b"new", b"old"]

        shares = repo.list_by_owner("owner-1")

        client.zrevrange.assert_called_once_with("test:share:index:owner:owner-1", 0, -1)
        assert [s.id for s in shares] == ["new"]


class TestFindCleanupCandidates:
    @pytest.fixture
    def mark(self):
        return BASE_TIME - timedelta(days=1)

    @pytest.fixture
    def records(self, client):
        changed_late = make_share(
            "b", updated_at=BASE_TIME - timedelta(hours=10), expires_at=BASE_TIME - timedelta(hours=2)
        )
        stale_index = make_share(
            "a", updated_at=BASE_TIME - timedelta(hours=20), expires_at=BASE_TIME - timedelta(hours=1)
        )
        stale_index.tombstone(BASE_TIME - timedelta(hours=20))
        expiring_only = make_share(
            "c",
            created_at=BASE_TIME - timedelta(days=3),
            updated_at=BASE_TIME - timedelta(days=2),
            expires_at=BASE_TIME - timedelta(hours=3),
        )
        serve_documents(client, changed_late, stale_index, expiring_only)

        client.zrangebyscore.side_effect = [
            [(b"b", changed_late.updated_at.timestamp()), (b"a", stale_index.updated_at.timestamp())],
            [b"c", b"a"],
        ]
        client.pipeline.return_value.execute.return_value = [expiring_only.updated_at.timestamp()]
        return changed_late, stale_index, expiring_only

    def test_queries_both_indexes(self, repo, client, records, mark):
        list(repo.find_cleanup_candidates(mark, BASE_TIME))

        updated_call, expires_call = client.zrangebyscore.call_args_list
        assert updated_call[0] == ("test:share:index:updated", f"({mark.timestamp()}", "+inf")
        assert updated_call[1] == {"withscores": True}
        assert expires_call[0] == (
            "test:share:index:expires", f"({mark.timestamp()}", f"({BASE_TIME.timestamp()}"
        )
        client.pipeline.assert_called_once_with(transaction=False)
        client.pipeline.return_value.zscore.assert_called_once_with("test:share:index:updated", "c")

    def test_orders_by_updated_at_and_filters_deleted(self, repo, records, mark):
        pages = list(repo.find_cleanup_candidates(mark, BASE_TIME))

        assert [[r.id for r in page] for page in pages] == [["c", "b"]]

    def test_pages_by_page_size(self, repo, records, mark):
        pages = list(repo.find_cleanup_candidates(mark, BASE_TIME, page_size=1))

        # The page holding only the stale entry is dropped
        assert [[r.id for r in page] for page in pages] == [["c"], ["b"]]

    def test_scores_each_expiring_only_share(self, repo, client, mark):
        older = make_share(
            "d",
            created_at=BASE_TIME - timedelta(days=4),
            updated_at=BASE_TIME - timedelta(days=3),
            expires_at=BASE_TIME - timedelta(hours=4),
        )
        unindexed = make_share("e", expires_at=BASE_TIME - timedelta(hours=5))
        serve_documents(client, older, unindexed)
        client.zrangebyscore.side_effect = [[], [b"e", b"d"]]
        client.pipeline.return_value.execute.return_value = [None, older.updated_at.timestamp()]

        ids = [r.id for page in repo.find_cleanup_candidates(mark, BASE_TIME) for r in page]

        pipeline = client.pipeline.return_value
        assert [c[0] for c in pipeline.zscore.call_args_list] == [
            ("test:share:index:updated", "e"),
            ("test:share:index:updated", "d"),
        ]
        # Returned pages are ordered by the loaded documents' updated_at
        assert ids == ["d", "e"]

    def test_unavailable_raises(self, repo, client, mark):
        client.zrangebyscore.side_effect = RedisConnectionError("down")

        with pytest.raises(StorageUnavailableError):
            list(repo.find_cleanup_candidates(mark, BASE_TIME))
