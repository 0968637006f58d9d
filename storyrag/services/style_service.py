"""
Style samples: passages the writer rewrote heavily after generation.

They are stored as `style` records and fed back to the model as few-shot
examples so later output drifts toward the writer's own voice.
"""

from __future__ import annotations
import logging
import uuid
from datetime import timedelta
from typing import List, Optional

from pydantic import BaseModel

from storyrag.adapters.embedding_providers.base import EmbeddingProvider
from storyrag.indexing.base import RelevanceScorer, ScoringQuery
from storyrag.indexing.brute_force import CosineScorer
from storyrag.indexing.lexical import calculate_edit_ratio
from storyrag.models.metadata import utcnow
from storyrag.models.record import IndexedRecord, RecordKind
from storyrag.models.retrieval import IndexOutcome
from storyrag.models.sources import StyleSample
from storyrag.repositories.base import StoreError
from storyrag.services.index_service import IndexService
from storyrag.services.query_embedder import QueryEmbedder

logger = logging.getLogger(__name__)

MIN_EDIT_RATIO = 0.3
MIN_SAMPLE_LENGTH = 100
PROMPT_EXCERPT_CHARS = 500


def should_save_as_style_sample(
    original: str,
    modified: str,
    min_edit_ratio: float = MIN_EDIT_RATIO,
    min_length: int = MIN_SAMPLE_LENGTH,
) -> bool:
    if not original or not modified:
        return False
    if len(modified) < min_length:
        return False
    return calculate_edit_ratio(original, modified) >= min_edit_ratio


class StyleCapture(BaseModel):
    saved: bool
    edit_ratio: float
    sample: Optional[StyleSample] = None
    outcome: Optional[IndexOutcome] = None


class StyleStats(BaseModel):
    total_samples: int = 0
    avg_edit_ratio: float = 0.0
    recent_samples: int = 0


def sample_from_record(record: IndexedRecord) -> StyleSample:
    md = record.metadata
    return StyleSample(
        id=record.related_id,
        project_id=md.project_id,
        chapter_id=getattr(md, "chapter_id", None),
        original_ai=md.original_text or "",
        user_final=record.text,
        edit_ratio=md.edit_ratio or 0.0,
        word_count=getattr(md, "word_count", None) or len(record.text),
        created_at=record.timestamp,
    )


def _excerpt(text: str) -> str:
    if len(text) > PROMPT_EXCERPT_CHARS:
        return text[:PROMPT_EXCERPT_CHARS] + "..."
    return text


def build_style_prompt_section(samples: List[StyleSample]) -> str:
    """Few-shot prompt section built from style samples; empty when there are none."""
    if not samples:
        return ""

    parts = [
        "\n## Writing style reference\n",
        "Below are passages the writer rewrote after generation. Learn the style they prefer:\n\n",
    ]
    for i, s in enumerate(samples, start=1):
        parts.append(f"### Example {i} (edit ratio: {s.edit_ratio * 100:.0f}%)\n")
        parts.append(f"**Generated:**\n{_excerpt(s.original_ai)}\n\n")
        parts.append(f"**Writer's version:**\n{_excerpt(s.user_final)}\n\n")
    parts.append("Imitate the writer's style, including:\n")
    parts.append("- word choice and phrasing\n")
    parts.append("- sentence structure and rhythm\n")
    parts.append("- level of descriptive detail\n")
    parts.append("- dialogue style\n\n")
    return "".join(parts)


class StyleService:
    """
    Captures, lists and retrieves style samples.

    Retrieval ranks by cosine similarity when the context can be embedded.
    Otherwise it uses fallback_scorer if one is given (for example
    BigramJaccardScorer), and the most recent samples if not.
    """

    def __init__(
        self,
        index_service: IndexService,
        embedder: Optional[EmbeddingProvider] = None,
        *,
        fallback_scorer: Optional[RelevanceScorer] = None,
        min_edit_ratio: float = MIN_EDIT_RATIO,
        min_length: int = MIN_SAMPLE_LENGTH,
        query_timeout: float = 3.0,
    ) -> None:
        self.index_service = index_service
        self.store = index_service.store
        self.embedder = embedder
        self.vector_scorer: RelevanceScorer = CosineScorer()
        self.fallback_scorer = fallback_scorer
        self.min_edit_ratio = min_edit_ratio
        self.min_length = min_length
        self.query_embedder = QueryEmbedder(embedder, query_timeout)

    def close(self) -> None:
        self.query_embedder.close()

    def capture(self, project_id: Optional[str], chapter_id: Optional[str], original_ai: str, user_final: str) -> StyleCapture:
        ratio = calculate_edit_ratio(original_ai, user_final)
        if not should_save_as_style_sample(original_ai, user_final, self.min_edit_ratio, self.min_length):
            logger.info("Edit ratio %.2f or length %d below threshold; not saving style sample", ratio, len(user_final or ""))
            return StyleCapture(saved=False, edit_ratio=ratio)

        sample = StyleSample(
            id=f"style_{uuid.uuid4().hex}",
            project_id=project_id,
            chapter_id=chapter_id,
            original_ai=original_ai,
            user_final=user_final,
            edit_ratio=ratio,
            word_count=len(user_final),
        )
        outcome = self.index_service.index_style_sample(sample)
        saved = outcome.records_written > 0
        if saved:
            logger.info("Style sample saved: %s editRatio=%.2f", sample.id, ratio)
        return StyleCapture(saved=saved, edit_ratio=ratio, sample=sample, outcome=outcome)

    def _records(self, project_id: Optional[str]) -> List[IndexedRecord]:
        try:
            records = self.store.get_all()
        except StoreError as e:
            logger.warning("Could not load style samples: %s", e)
            return []
        return [
            r for r in records
            if r.kind == RecordKind.STYLE and (project_id is None or r.metadata.project_id == project_id)
        ]

    def list_samples(self, project_id: Optional[str] = None) -> List[StyleSample]:
        return [sample_from_record(r) for r in self._records(project_id)]

    def retrieve_similar(
        self,
        project_id: Optional[str],
        context: str,
        limit: int = 3,
        *,
        query_vector: Optional[List[float]] = None,
        embed: bool = True,
    ) -> List[StyleSample]:
        """
        query_vector lets a caller that already embedded context pass it in.
        With embed=False nothing is sent to the provider.
        """
        records = self._records(project_id)
        if not records or limit <= 0:
            return []

        vector = query_vector
        if vector is None and embed:
            vector, _ = self.query_embedder.embed(context)
        with_vectors = [r for r in records if r.vector]
        if vector is not None and with_vectors:
            scorer, pool = self.vector_scorer, with_vectors
        elif self.fallback_scorer is not None:
            scorer, pool = self.fallback_scorer, records
        else:
            pool = sorted(records, key=lambda r: r.timestamp, reverse=True)
            return [sample_from_record(r) for r in pool[:limit]]

        query = ScoringQuery(text=context, vector=vector)
        scored = sorted(pool, key=lambda r: (-scorer.score(query, r), -r.timestamp.timestamp(), r.id))
        return [sample_from_record(r) for r in scored[:limit]]

    def delete_sample(self, sample_id: str) -> int:
        return self.index_service.delete_entity(sample_id)

    def clear_project_samples(self, project_id: str) -> int:
        removed = 0
        for sample in self.list_samples(project_id):
            removed += self.index_service.delete_entity(sample.id)
        logger.info("Cleared %d style samples for project %s", removed, project_id)
        return removed

    def stats(self, project_id: Optional[str] = None) -> StyleStats:
        samples = self.list_samples(project_id)
        if not samples:
            return StyleStats()
        week_ago = utcnow() - timedelta(days=7)
        return StyleStats(
            total_samples=len(samples),
            avg_edit_ratio=sum(s.edit_ratio for s in samples) / len(samples),
            recent_samples=sum(1 for s in samples if s.created_at > week_ago),
        )
