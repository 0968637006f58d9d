"""
Read-only views of the authoring application's entities.
Only the fields used for indexing are declared; anything else the caller
sends is ignored.
"""

from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .metadata import as_utc, utcnow


class SourceEntity(BaseModel):
    id: str
    project_id: Optional[str] = None

    model_config = {"extra": "ignore"}


class Chapter(SourceEntity):
    order: int = Field(default=0, ge=0)
    title: str = ""
    content: str = ""
    summary: str = ""


class Character(SourceEntity):
    name: str
    role: str = ""
    description: str = ""
    appearance: str = ""
    background: str = ""
    personality: str = ""

    def profile_text(self) -> str:
        parts = [self.name, self.role, self.description, self.appearance, self.background, self.personality]
        return "\n".join(p for p in parts if p)


class WikiEntry(SourceEntity):
    name: str
    aliases: List[str] = Field(default_factory=list)
    category: str = ""
    description: str = ""

    def entry_text(self) -> str:
        parts = [self.name, " ".join(self.aliases), self.category, self.description]
        return "\n".join(p for p in parts if p)


class StyleSample(SourceEntity):
    """A passage the writer rewrote heavily; kept as a few-shot style example."""
    chapter_id: Optional[str] = None
    original_ai: str
    user_final: str
    edit_ratio: float = Field(ge=0.0, le=1.0)
    word_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: datetime) -> datetime:
        return as_utc(v)
