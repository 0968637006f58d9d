"""
Builds stores and services from Settings.
Nothing here is cached; the API and the Temporal worker each decide how long
their instances live.
"""

from __future__ import annotations
import logging
from typing import Optional

from storyrag.adapters.embedding_providers.base import EmbeddingProvider
from storyrag.adapters.embedding_providers.factory import build_embedding_provider
from storyrag.core.config import Settings
from storyrag.models.retrieval import HybridWeights
from storyrag.repositories.base import RecordStore
from storyrag.repositories.memory.record_repo import RecordRepo
from storyrag.services.context_service import ContextService
from storyrag.services.index_service import IndexService
from storyrag.services.style_service import StyleService

logger = logging.getLogger(__name__)


def build_store(cfg: Settings) -> RecordStore:
    if cfg.USE_REDIS:
        # imported lazily so the in-memory setup works without a Redis server
        from storyrag.repositories.redis import RecordRepoRedis

        logger.info("Using Redis record store at %s", cfg.REDIS_URL)
        return RecordRepoRedis(cfg.REDIS_URL)
    logger.info("Using in-memory record store")
    return RecordRepo()


def build_embedder(cfg: Settings) -> Optional[EmbeddingProvider]:
    return build_embedding_provider(cfg.provider_config(), timeout=cfg.EMBED_TIMEOUT)


def build_index_service(cfg: Settings, store: RecordStore, embedder: Optional[EmbeddingProvider]) -> IndexService:
    return IndexService(
        store,
        embedder,
        chunk_size=cfg.CHUNK_SIZE,
        chunk_overlap=cfg.CHUNK_OVERLAP,
        min_chapter_chars=cfg.MIN_CHAPTER_CHARS,
    )


def build_context_service(cfg: Settings, store: RecordStore, embedder: Optional[EmbeddingProvider]) -> ContextService:
    return ContextService(
        store,
        embedder,
        weights=HybridWeights(vector=cfg.VECTOR_WEIGHT, keyword=cfg.KEYWORD_WEIGHT),
        avg_chunk_tokens=cfg.AVG_CHUNK_TOKENS,
        min_k=cfg.MIN_K,
        max_k=cfg.MAX_K,
        query_timeout=cfg.EMBED_QUERY_TIMEOUT,
    )


def build_style_service(cfg: Settings, index_service: IndexService) -> StyleService:
    return StyleService(index_service, index_service.embedder, query_timeout=cfg.EMBED_QUERY_TIMEOUT)
