from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from storyrag.models.record import IndexedRecord


@dataclass(frozen=True)
class ScoringQuery:
    """
    Everything a scorer may look at on the query side.
    Vector and keywords are optional; each scorer uses what it needs.
    """
    text: str = ""
    vector: Optional[List[float]] = None
    keywords: List[str] = field(default_factory=list)


class RelevanceScorer(Protocol):
    """
    Interface for relevance scorers.
    Implementations return a similarity where higher means more relevant;
    a scorer that lacks the signal it needs returns 0.0 rather than raising.
    """
    def score(self, query: ScoringQuery, record: IndexedRecord) -> float:
        ...
