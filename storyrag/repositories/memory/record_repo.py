from __future__ import annotations
from typing import Dict, Iterable, List, Set
from copy import deepcopy

from storyrag.models.record import IndexedRecord
from storyrag.concurrency.read_write_lock import ReadWriteLock


class RecordRepo:
    """
    In-memory record store with:
      - records keyed by id (upsert)
      - a related_id -> ids index for cascade deletes
      - one RW lock so replace_related is atomic for readers
    """

    def __init__(self) -> None:
        self._records: Dict[str, IndexedRecord] = {}
        self._by_related: Dict[str, Set[str]] = {}
        self._lock = ReadWriteLock()

    # --------------- helpers (caller holds the write lock) ---------------
    def _put(self, record: IndexedRecord) -> None:
        old = self._records.get(record.id)
        if old is not None and old.related_id != record.related_id:
            self._by_related.get(old.related_id, set()).discard(record.id)
        self._records[record.id] = deepcopy(record)
        self._by_related.setdefault(record.related_id, set()).add(record.id)

    def _delete_related(self, related_id: str) -> int:
        ids = self._by_related.pop(related_id, set())
        for rid in ids:
            self._records.pop(rid, None)
        return len(ids)

    # --------------- store interface ---------------
    def put_all(self, records: Iterable[IndexedRecord]) -> None:
        with self._lock.write_lock():
            for r in records:
                self._put(r)

    def get_all(self) -> List[IndexedRecord]:
        with self._lock.read_lock():
            return deepcopy(list(self._records.values()))

    def get(self, record_id: str) -> IndexedRecord | None:
        with self._lock.read_lock():
            r = self._records.get(record_id)
            return deepcopy(r) if r else None

    def list_by_related_id(self, related_id: str) -> List[IndexedRecord]:
        with self._lock.read_lock():
            ids = self._by_related.get(related_id, set())
            return deepcopy([self._records[i] for i in sorted(ids)])

    def delete_by_related_id(self, related_id: str) -> int:
        with self._lock.write_lock():
            return self._delete_related(related_id)

    def replace_related(self, related_id: str, records: Iterable[IndexedRecord]) -> None:
        records = list(records)
        for r in records:
            if r.related_id != related_id:
                raise ValueError(f"record {r.id} belongs to {r.related_id}, not {related_id}")
        with self._lock.write_lock():
            self._delete_related(related_id)
            for r in records:
                self._put(r)

    def clear(self) -> None:
        with self._lock.write_lock():
            self._records.clear()
            self._by_related.clear()

    def count(self) -> int:
        with self._lock.read_lock():
            return len(self._records)
