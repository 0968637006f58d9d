from __future__ import annotations
import logging
from typing import Optional

from storyrag.core.providers import ProviderConfig, resolve_embedding_config
from .base import EmbeddingProvider
from .cohere_provider import CohereProvider
from .google_provider import GoogleProvider
from .hash_provider import HashProvider
from .openai_provider import OpenAICompatibleProvider

logger = logging.getLogger(__name__)


def build_embedding_provider(config: ProviderConfig, timeout: float = 10.0) -> Optional[EmbeddingProvider]:
    """
    Returns None when embeddings are unavailable for this config; callers
    then index and rank by keywords only.
    """
    resolved = resolve_embedding_config(config)
    if resolved is None:
        logger.info("Embeddings disabled for provider %s", config.provider)
        return None
    if resolved.provider == "hash":
        return HashProvider(dim=resolved.dim or 64)
    if resolved.provider == "google":
        return GoogleProvider(resolved, timeout=timeout)
    if resolved.provider == "cohere":
        return CohereProvider(resolved, timeout=timeout)
    # openai and custom both speak the OpenAI format
    return OpenAICompatibleProvider(resolved, timeout=timeout)
