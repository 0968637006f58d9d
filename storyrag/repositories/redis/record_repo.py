"""
Redis-based record store.
Layout:
  storyrag:record:<id>          JSON of one IndexedRecord
  storyrag:related:<related_id> set of record ids owned by one entity
  storyrag:records              set of all record ids
"""

from __future__ import annotations
from typing import Iterable, List
import json
import logging

import redis
from pydantic import ValidationError

from storyrag.models.record import IndexedRecord
from storyrag.repositories.base import StoreError

logger = logging.getLogger(__name__)


def _s(v) -> str:
    return v.decode("utf-8") if isinstance(v, bytes) else v


class RecordRepoRedis:
    """
    Redis-based store for records; survives worker restarts.
    Multi-key writes go through MULTI/EXEC so readers see all or nothing.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", client: redis.Redis | None = None,
                 key_prefix: str = "storyrag:") -> None:
        self.redis_client = client or redis.from_url(redis_url, decode_responses=False)
        self._key_prefix = key_prefix

    def _key(self, record_id: str) -> str:
        return f"{self._key_prefix}record:{record_id}"

    def _related_key(self, related_id: str) -> str:
        return f"{self._key_prefix}related:{related_id}"

    @property
    def _all_key(self) -> str:
        return f"{self._key_prefix}records"

    def _queue_put(self, pipe, record: IndexedRecord) -> None:
        pipe.set(self._key(record.id), json.dumps(record.model_dump(mode="json")))
        pipe.sadd(self._related_key(record.related_id), record.id)
        pipe.sadd(self._all_key, record.id)

    def _queue_delete(self, pipe, related_id: str, ids: Iterable[str]) -> None:
        ids = list(ids)
        if ids:
            pipe.delete(*[self._key(i) for i in ids])
            pipe.srem(self._all_key, *ids)
        pipe.delete(self._related_key(related_id))

    def put_all(self, records: Iterable[IndexedRecord]) -> None:
        records = list(records)
        if not records:
            return
        try:
            pipe = self.redis_client.pipeline(transaction=True)
            for r in records:
                self._queue_put(pipe, r)
            pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"failed to write {len(records)} records: {e}") from e

    def get_all(self) -> List[IndexedRecord]:
        try:
            ids = sorted(_s(i) for i in self.redis_client.smembers(self._all_key))
            if not ids:
                return []
            blobs = self.redis_client.mget([self._key(i) for i in ids])
        except redis.RedisError as e:
            raise StoreError(f"failed to read records: {e}") from e

        out: List[IndexedRecord] = []
        for record_id, data in zip(ids, blobs):
            if not data:
                # removed between SMEMBERS and MGET
                continue
            try:
                out.append(IndexedRecord(**json.loads(data)))
            except (ValueError, ValidationError) as e:
                logger.warning("Skipping unreadable record %s: %s", record_id, e)
        return out

    def delete_by_related_id(self, related_id: str) -> int:
        deleted: List[int] = []

        def _tx(pipe) -> None:
            ids = sorted(_s(i) for i in pipe.smembers(self._related_key(related_id)))
            deleted.append(len(ids))
            pipe.multi()
            self._queue_delete(pipe, related_id, ids)

        try:
            self.redis_client.transaction(_tx, self._related_key(related_id))
        except redis.RedisError as e:
            raise StoreError(f"failed to delete records of {related_id}: {e}") from e
        return deleted[-1] if deleted else 0

    def replace_related(self, related_id: str, records: Iterable[IndexedRecord]) -> None:
        records = list(records)
        for r in records:
            if r.related_id != related_id:
                raise ValueError(f"record {r.id} belongs to {r.related_id}, not {related_id}")

        def _tx(pipe) -> None:
            ids = sorted(_s(i) for i in pipe.smembers(self._related_key(related_id)))
            pipe.multi()
            self._queue_delete(pipe, related_id, ids)
            for r in records:
                self._queue_put(pipe, r)

        try:
            self.redis_client.transaction(_tx, self._related_key(related_id))
        except redis.RedisError as e:
            raise StoreError(f"failed to replace records of {related_id}: {e}") from e

    def clear(self) -> None:
        try:
            keys = list(self.redis_client.scan_iter(match=f"{self._key_prefix}*"))
            if keys:
                self.redis_client.delete(*keys)
        except redis.RedisError as e:
            raise StoreError(f"failed to clear records: {e}") from e

    def count(self) -> int:
        try:
            return int(self.redis_client.scard(self._all_key))
        except redis.RedisError as e:
            raise StoreError(f"failed to count records: {e}") from e
