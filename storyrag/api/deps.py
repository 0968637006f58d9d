"""FastAPI dependency providers.

Each provider is cached so the process shares one store and one set of
services. Tests swap them out through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from storyrag.adapters.embedding_providers.base import EmbeddingProvider
from storyrag.core.config import Settings, settings
from storyrag.repositories.base import RecordStore
from storyrag.services import factory
from storyrag.services.context_service import ContextService
from storyrag.services.index_service import IndexService
from storyrag.services.style_service import StyleService
from storyrag.temporal_workflows.client import TemporalIndexClient


def get_settings() -> Settings:
    return settings


@lru_cache
def get_store() -> RecordStore:
    return factory.build_store(get_settings())


@lru_cache
def get_embedder() -> Optional[EmbeddingProvider]:
    return factory.build_embedder(get_settings())


@lru_cache
def get_index_service() -> IndexService:
    return factory.build_index_service(get_settings(), get_store(), get_embedder())


@lru_cache
def get_context_service() -> ContextService:
    return factory.build_context_service(get_settings(), get_store(), get_embedder())


@lru_cache
def get_style_service() -> StyleService:
    return factory.build_style_service(get_settings(), get_index_service())


@lru_cache
def get_temporal_client() -> TemporalIndexClient:
    return TemporalIndexClient(get_settings().TEMPORAL_ADDRESS)


def close_services() -> None:
    """Release executors held by cached services; used on application shutdown."""
    for provider in (get_context_service, get_style_service):
        if provider.cache_info().currsize:
            provider().close()
            provider.cache_clear()

