from __future__ import annotations
from typing import Iterable, List, Protocol

from storyrag.models.record import IndexedRecord


class StoreError(RuntimeError):
    """A read or write against the record store failed."""


class RecordStore(Protocol):
    """
    Interface for record stores.
    Stores are unordered and read in full; the only lookups assumed are by
    id (upsert) and by related_id (cascade delete / replace).
    """
    def put_all(self, records: Iterable[IndexedRecord]) -> None:
        ...

    def get_all(self) -> List[IndexedRecord]:
        ...

    def delete_by_related_id(self, related_id: str) -> int:
        ...

    def replace_related(self, related_id: str, records: Iterable[IndexedRecord]) -> None:
        """Delete every record of related_id and insert records, atomically for readers."""
        ...

    def clear(self) -> None:
        ...

    def count(self) -> int:
        ...
