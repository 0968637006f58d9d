from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Type, Union

from storyrag.adapters.embedding_providers.base import EmbeddingError, EmbeddingProvider
from storyrag.indexing.chunker import chunk_with_offsets
from storyrag.models.metadata import RecordMetadata
from storyrag.models.record import IndexedRecord, RecordKind, record_id
from storyrag.models.retrieval import IndexOutcome, IndexStatus
from storyrag.models.sources import Chapter, Character, SourceEntity, StyleSample, WikiEntry
from storyrag.repositories.base import RecordStore, StoreError

logger = logging.getLogger(__name__)

Entity = Union[Chapter, Character, WikiEntry, StyleSample]

ENTITY_MODELS: Dict[RecordKind, Type[SourceEntity]] = {
    RecordKind.CHAPTER: Chapter,
    RecordKind.CHARACTER: Character,
    RecordKind.WIKI: WikiEntry,
    RecordKind.STYLE: StyleSample,
}


def kind_of(entity: SourceEntity) -> RecordKind:
    for kind, model in ENTITY_MODELS.items():
        if isinstance(entity, model):
            return kind
    raise TypeError(f"not an indexable entity: {type(entity).__name__}")


@dataclass
class IndexPlan:
    """Records for one entity before embedding, plus the texts to embed."""
    related_id: str
    kind: RecordKind
    records: List[IndexedRecord] = field(default_factory=list)
    embed_texts: List[str] = field(default_factory=list)
    skip_reason: Optional[str] = None


class IndexService:
    """
    Chunk -> embed -> replace-by-related_id.

    Indexing is best effort. Provider failures store the records without
    vectors (keyword-only); store failures leave the previous records of the
    entity untouched. Both are reported in the IndexOutcome, never raised.
    """

    def __init__(
        self,
        store: RecordStore,
        embedder: Optional[EmbeddingProvider] = None,
        *,
        chunk_size: int = 1500,
        chunk_overlap: int = 200,
        min_chapter_chars: int = 100,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chapter_chars = min_chapter_chars

    # --------------- planning ---------------
    def plan(self, entity: Entity) -> IndexPlan:
        kind = kind_of(entity)
        if kind == RecordKind.CHAPTER:
            return self._plan_chapter(entity)
        if kind == RecordKind.CHARACTER:
            md = RecordMetadata(project_id=entity.project_id, name=entity.name, role=entity.role)
            return self._single(entity.id, kind, entity.profile_text(), md)
        if kind == RecordKind.WIKI:
            md = RecordMetadata(project_id=entity.project_id, name=entity.name, category=entity.category)
            return self._single(entity.id, kind, entity.entry_text(), md)
        md = RecordMetadata(
            project_id=entity.project_id,
            original_text=entity.original_ai,
            edited_text=entity.user_final,
            edit_ratio=entity.edit_ratio,
            chapter_id=entity.chapter_id,
            word_count=entity.word_count or len(entity.user_final),
        )
        return self._single(entity.id, kind, entity.user_final, md, timestamp=entity.created_at)

    def _single(self, related_id: str, kind: RecordKind, text: str, md: RecordMetadata,
                timestamp: Optional[datetime] = None) -> IndexPlan:
        plan = IndexPlan(related_id=related_id, kind=kind)
        if not text.strip():
            plan.skip_reason = "empty text"
            return plan
        md.chunk_index = 0
        record = IndexedRecord(id=record_id(related_id, 0), related_id=related_id, kind=kind, text=text, metadata=md)
        if timestamp is not None:
            record.timestamp = timestamp
        plan.records.append(record)
        plan.embed_texts.append(text)
        return plan

    def _plan_chapter(self, chapter: Chapter) -> IndexPlan:
        plan = IndexPlan(related_id=chapter.id, kind=RecordKind.CHAPTER)
        content = chapter.content.strip()
        if len(content) < self.min_chapter_chars:
            plan.skip_reason = f"content shorter than {self.min_chapter_chars} characters"
            return plan

        for i, chunk in enumerate(chunk_with_offsets(content, self.chunk_size, self.chunk_overlap)):
            md = RecordMetadata(
                project_id=chapter.project_id,
                title=chapter.title,
                chunk_index=i,
                start_offset=chunk.start_offset_hint,
            )
            plan.records.append(
                IndexedRecord(
                    id=record_id(chapter.id, i),
                    related_id=chapter.id,
                    kind=RecordKind.CHAPTER,
                    text=chunk.text,
                    order=chapter.order,
                    metadata=md,
                )
            )
            # the title anchors each chunk's embedding to its chapter
            plan.embed_texts.append(f"{chapter.title}\n{chunk.text}" if chapter.title else chunk.text)
        return plan

    # --------------- embedding / commit ---------------
    def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed every text or raise EmbeddingError; no retries here."""
        if self.embedder is None:
            raise EmbeddingError("no embedding provider configured")
        return [self.embedder.embed_text(t) for t in texts]

    def commit(self, plan: IndexPlan, vectors: Optional[List[List[float]]] = None, error: Optional[str] = None) -> IndexOutcome:
        if plan.skip_reason is not None:
            # drop whatever an older, longer version of the entity left behind
            try:
                self.store.delete_by_related_id(plan.related_id)
            except StoreError as e:
                logger.warning("Could not drop stale records of %s: %s", plan.related_id, e)
            return IndexOutcome(related_id=plan.related_id, kind=plan.kind, status=IndexStatus.SKIPPED, error=plan.skip_reason)

        records = plan.records
        if vectors is not None:
            records = [r.model_copy(update={"vector": v}) for r, v in zip(plan.records, vectors)]

        try:
            self.store.replace_related(plan.related_id, records)
        except StoreError as e:
            logger.warning("Indexing %s %s aborted: %s", plan.kind.value, plan.related_id, e)
            return IndexOutcome(related_id=plan.related_id, kind=plan.kind, status=IndexStatus.FAILED, error=str(e))

        status = IndexStatus.INDEXED if vectors is not None else IndexStatus.KEYWORD_ONLY
        logger.info("Indexed %s %s: %d records (%s)", plan.kind.value, plan.related_id, len(records), status.value)
        return IndexOutcome(related_id=plan.related_id, kind=plan.kind, status=status, records_written=len(records), error=error)

    # --------------- public operations ---------------
    def index(self, entity: Entity) -> IndexOutcome:
        plan = self.plan(entity)
        if plan.skip_reason is not None:
            return self.commit(plan)

        vectors, error = None, None
        if self.embedder is not None:
            try:
                vectors = self.embed(plan.embed_texts)
            except EmbeddingError as e:
                logger.warning("Embedding %s %s failed, storing keyword-only records: %s", plan.kind.value, plan.related_id, e)
                error = str(e)
            except Exception as e:
                # a faulty provider must not lose the entity
                logger.exception("Unexpected error embedding %s %s; storing keyword-only records", plan.kind.value, plan.related_id)
                error = str(e) or type(e).__name__
        return self.commit(plan, vectors, error)

    def index_chapter(self, chapter: Chapter) -> IndexOutcome:
        return self.index(chapter)

    def index_character(self, character: Character) -> IndexOutcome:
        return self.index(character)

    def index_wiki_entry(self, entry: WikiEntry) -> IndexOutcome:
        return self.index(entry)

    def index_style_sample(self, sample: StyleSample) -> IndexOutcome:
        return self.index(sample)

    def index_all(
        self,
        chapters: Iterable[Chapter] = (),
        characters: Iterable[Character] = (),
        wiki_entries: Iterable[WikiEntry] = (),
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[IndexOutcome]:
        entities: List[Entity] = [*chapters, *characters, *wiki_entries]
        outcomes: List[IndexOutcome] = []
        for i, entity in enumerate(entities, start=1):
            outcomes.append(self.index(entity))
            if on_progress:
                on_progress(i, len(entities))
        return outcomes

    def delete_entity(self, related_id: str) -> int:
        """Cascade delete of every record owned by related_id. Raises StoreError."""
        n = self.store.delete_by_related_id(related_id)
        logger.info("Deleted %d records of %s", n, related_id)
        return n
