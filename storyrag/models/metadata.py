"""
Metadata carried by indexed records.
The engine never interprets it; it is side data for callers and for labels
rendered by the context assembler.
"""

from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BaseMetadata(BaseModel):
    """
    Base metadata with timestamps.
    """
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return self.model_dump()

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = utcnow()


class RecordMetadata(BaseMetadata):
    """
    Free-form record metadata.
    Known fields:
    - project_id: owning project, used to scope retrieval
    - title / name: display label of the owning entity
    - chunk_index: position of the chunk inside its entity
    - original_text / edited_text / edit_ratio: style sample side data
    Any other key is accepted and kept as-is.
    """
    project_id: Optional[str] = Field(default=None, description="Owning project id")
    title: Optional[str] = Field(default=None, description="Chapter title")
    name: Optional[str] = Field(default=None, description="Character or wiki entry name")
    chunk_index: Optional[int] = Field(default=None, ge=0)
    original_text: Optional[str] = None
    edited_text: Optional[str] = None
    edit_ratio: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    model_config = {"extra": "allow"}
