"""
Redis Share Repository Implementation

Concrete Redis-based implementation of the ShareRepository interface.

Key Schema (before the repository key prefix):
    - share:{id} -> ShareRecord JSON (TTL set only once tombstoned)
    - share:index:updated -> Sorted Set of active share ids by updated_at
    - share:index:expires -> Sorted Set of active share ids by expires_at
    - share:index:owner:{owner_id} -> Sorted Set of share ids by created_at
    - share:index:code:{encrypted_code} -> share id (expires with the share)
"""

import json
import logging
from datetime import datetime
from typing import Iterator, List, Optional

from contentshare.domain.clock import ensure_utc
from contentshare.domain.errors import (
    InvalidShareError,
    ShareNotFoundError,
    StorageUnavailableError,
)
from contentshare.domain.file_sharing import ShareRecord, ShareRepository
from contentshare.infrastructure.redis_repository import UNAVAILABLE_ERRORS

logger = logging.getLogger(__name__)


# KEYS: doc, updated index, expires index, owner index, code index
# ARGV: json, id, updated score, expires score, created score, expires unix seconds
ADD_SCRIPT = """
if redis.call('SET', KEYS[1], ARGV[1], 'NX') == false then
    return 0
end
redis.call('ZADD', KEYS[2], ARGV[3], ARGV[2])
redis.call('ZADD', KEYS[3], ARGV[4], ARGV[2])
redis.call('ZADD', KEYS[4], ARGV[5], ARGV[2])
redis.call('SET', KEYS[5], ARGV[2])
redis.call('EXPIREAT', KEYS[5], ARGV[6])
return 1
"""

# KEYS: doc, updated index, expires index
# ARGV: json, id, owner id, updated score, expires score, is_deleted flag, ttl seconds
# Returns -1 when the share does not exist for this owner, 0 when the stored
# record is already a tombstone, 1 when replaced.
REPLACE_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    return -1
end
local existing = cjson.decode(current)
if existing['owner_id'] ~= ARGV[3] then
    return -1
end
if existing['is_deleted'] == true then
    return 0
end
redis.call('SET', KEYS[1], ARGV[1])
if ARGV[6] == '1' then
    redis.call('ZREM', KEYS[2], ARGV[2])
    redis.call('ZREM', KEYS[3], ARGV[2])
    if tonumber(ARGV[7]) > 0 then
        redis.call('EXPIRE', KEYS[1], ARGV[7])
    end
else
    redis.call('ZADD', KEYS[2], ARGV[4], ARGV[2])
    redis.call('ZADD', KEYS[3], ARGV[5], ARGV[2])
end
return 1
"""


class RedisShareRepository(ShareRepository):
    """
    Redis-based implementation of ShareRepository.

    Active shares are tracked in two sorted sets (by updated_at and by
    expires_at) so the cleanup query only touches the score ranges it needs.
    Tombstoned shares leave both indexes and get a key TTL equal to their
    retention window; Redis then purges them on its own.
    """

    DOC_PREFIX = "share:"
    UPDATED_INDEX = "share:index:updated"
    EXPIRES_INDEX = "share:index:expires"
    OWNER_INDEX_PREFIX = "share:index:owner:"
    CODE_INDEX_PREFIX = "share:index:code:"

    def __init__(self, redis_repository):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
        """
        self.redis_repo = redis_repository

    def _doc_key(self, share_id: str) -> str:
        return f"{self.DOC_PREFIX}{share_id}"

    def _owner_key(self, owner_id: str) -> str:
        return f"{self.OWNER_INDEX_PREFIX}{owner_id}"

    def _code_key(self, encrypted_share_code: str) -> str:
        return f"{self.CODE_INDEX_PREFIX}{encrypted_share_code}"

    def add(self, record: ShareRecord) -> bool:
        """Insert a new share and its index entries atomically."""
        result = self.redis_repo.run_script(
            ADD_SCRIPT,
            [
                self._doc_key(record.id),
                self.UPDATED_INDEX,
                self.EXPIRES_INDEX,
                self._owner_key(record.owner_id),
                self._code_key(record.encrypted_share_code),
            ],
            [
                json.dumps(record.to_dict()),
                record.id,
                record.updated_at.timestamp(),
                record.expires_at.timestamp(),
                record.created_at.timestamp(),
                int(record.expires_at.timestamp()) + 1,
            ],
        )
        return result == 1

    def get(self, share_id: str, owner_id: str) -> Optional[ShareRecord]:
        """Point-read a share; a share of another owner is reported as missing."""
        record = self._load(share_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    def replace(self, record: ShareRecord) -> bool:
        """
        Replace a share unless the stored copy is already a tombstone.

        Tombstoning also removes the share from the active indexes and sets
        the key TTL to the retention window.
        """
        result = self.redis_repo.run_script(
            REPLACE_SCRIPT,
            [self._doc_key(record.id), self.UPDATED_INDEX, self.EXPIRES_INDEX],
            [
                json.dumps(record.to_dict()),
                record.id,
                record.owner_id,
                record.updated_at.timestamp(),
                record.expires_at.timestamp(),
                "1" if record.is_deleted else "0",
                record.retention_ttl_seconds or 0,
            ],
        )

        if result == -1:
            raise ShareNotFoundError(
                f"Share {record.id} not found for owner {record.owner_id}"
            )
        return result == 1

    def find_by_encrypted_code(self, encrypted_share_code: str) -> Optional[ShareRecord]:
        """Find a share through the code index."""
        key = self.redis_repo._make_key(self._code_key(encrypted_share_code))
        try:
            share_id = self.redis_repo.redis.get(key)
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable looking up share code: {e}", e) from e

        if share_id is None:
            return None
        return self._load(self._decode(share_id))

    def list_by_owner(self, owner_id: str) -> List[ShareRecord]:
        """List the owner's non-deleted shares, newest first."""
        key = self.redis_repo._make_key(self._owner_key(owner_id))
        try:
            share_ids = [self._decode(m) for m in self.redis_repo.redis.zrevrange(key, 0, -1)]
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable listing shares: {e}", e) from e

        records = self._load_many(share_ids)
        return [r for r in records if r.owner_id == owner_id and not r.is_deleted]

    def find_cleanup_candidates(
        self, high_water_mark: datetime, now: datetime, page_size: int = 100
    ) -> Iterator[List[ShareRecord]]:
        """
        Yield pages of expired, active shares newer than the mark.

        Candidate ids are the union of the active shares changed after the
        mark and the active shares expiring between the mark and now. They
        are ordered by updated_at score, loaded page by page, and filtered
        again against the stored documents.
        """
        mark = ensure_utc(high_water_mark)
        now = ensure_utc(now)
        ordered_ids = self._candidate_ids(mark, now)

        logger.debug(
            f"Cleanup query found {len(ordered_ids)} candidate shares "
            f"(mark={mark.isoformat()}, now={now.isoformat()})"
        )

        for start in range(0, len(ordered_ids), page_size):
            page_ids = ordered_ids[start:start + page_size]
            page = [
                record for record in self._load_many(page_ids)
                if self._is_cleanup_candidate(record, mark, now)
            ]
            if page:
                page.sort(key=lambda r: (r.updated_at, r.id))
                yield page

    def _candidate_ids(self, mark: datetime, now: datetime) -> List[str]:
        updated_key = self.redis_repo._make_key(self.UPDATED_INDEX)
        expires_key = self.redis_repo._make_key(self.EXPIRES_INDEX)
        mark_bound = f"({mark.timestamp()}"
        client = self.redis_repo.redis

        try:
            changed = client.zrangebyscore(updated_key, mark_bound, "+inf", withscores=True)
            expiring = client.zrangebyscore(expires_key, mark_bound, f"({now.timestamp()}")

            order = {self._decode(member): score for member, score in changed}
            missing = [
                self._decode(member) for member in expiring
                if self._decode(member) not in order
            ]
            if missing:
                # ZMSCORE needs Redis 6.2, pipelined ZSCORE works on any server
                pipeline = client.pipeline(transaction=False)
                for share_id in missing:
                    pipeline.zscore(updated_key, share_id)
                scores = pipeline.execute()
                for share_id, score in zip(missing, scores):
                    order[share_id] = score if score is not None else 0.0
        except UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Redis unavailable querying expired shares: {e}", e) from e

        return [share_id for share_id, _ in sorted(order.items(), key=lambda kv: (kv[1], kv[0]))]

    @staticmethod
    def _is_cleanup_candidate(record: ShareRecord, mark: datetime, now: datetime) -> bool:
        return (
            record.expires_at < now
            and not record.is_deleted
            and (record.updated_at > mark or record.expires_at > mark)
        )

    def _load(self, share_id: str) -> Optional[ShareRecord]:
        data = self.redis_repo.get_json(self._doc_key(share_id))
        if data is None:
            return None
        return self._deserialize(share_id, data)

    def _load_many(self, share_ids: List[str]) -> List[ShareRecord]:
        documents = self.redis_repo.get_many_json([self._doc_key(i) for i in share_ids])
        records = []
        for share_id, data in zip(share_ids, documents):
            if data is None:
                continue
            record = self._deserialize(share_id, data)
            if record is not None:
                records.append(record)
        return records

    @staticmethod
    def _deserialize(share_id: str, data: dict) -> Optional[ShareRecord]:
        try:
            return ShareRecord.from_dict(data)
        except (KeyError, ValueError, InvalidShareError) as e:
            logger.error(f"Error deserializing share {share_id}: {e}")
            return None

    @staticmethod
    def _decode(value) -> str:
        return value.decode("utf-8") if isinstance(value, bytes) else value
