from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from .metadata import RecordMetadata, as_utc, utcnow


class RecordKind(str, Enum):
    CHAPTER = "chapter"
    CHARACTER = "character"
    WIKI = "wiki"
    STYLE = "style"


class IndexedRecord(BaseModel):
    """
    Smallest retrieval unit.
    - id: globally unique, stable across re-indexing of the same unit
    - related_id: the owning chapter/character/wiki entry (shared by its chunks)
    - vector: optional embedding; records without one are ranked by keywords only
    - order: chapter order of the source, used for recency weighting
    """
    id: str
    related_id: str
    kind: RecordKind
    text: str
    vector: Optional[List[float]] = None
    order: Optional[int] = None
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)

    @field_validator('metadata', mode='before')
    @classmethod
    def validate_metadata(cls, v: Any) -> RecordMetadata:
        """Ensure metadata is a RecordMetadata instance."""
        if isinstance(v, dict):
            return RecordMetadata(**v)
        if isinstance(v, RecordMetadata):
            return v
        return RecordMetadata()

    @field_validator('vector', mode='before')
    @classmethod
    def validate_vector(cls, v: Any) -> Optional[List[float]]:
        # an empty embedding means the provider gave nothing back
        if v is not None and len(v) == 0:
            return None
        return v

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        # naive and aware timestamps cannot be compared or sorted together
        return as_utc(v)


def record_id(related_id: str, chunk_index: int) -> str:
    """Deterministic id so that re-indexing overwrites instead of duplicating."""
    return f"{related_id}:{chunk_index}"


@dataclass(frozen=True)
class Chunk:
    """Ephemeral output of the chunker; never persisted."""
    text: str
    start_offset_hint: int = 0
