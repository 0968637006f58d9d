"""
Embedding provider configuration.

A provider config is a tagged union on ``provider``. Two pure functions turn
what the user configured into what an adapter needs:

- ``resolve_scene_config`` applies a per-task override (a bare model name or a
  complete config) on top of the default config.
- ``resolve_embedding_config`` fills default endpoints and models, and returns
  None when the chosen provider cannot produce embeddings at all.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class _ProviderConfigBase(BaseModel):
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None

    model_config = {"frozen": True}


class GoogleProviderConfig(_ProviderConfigBase):
    provider: Literal["google"] = "google"


class OpenAIProviderConfig(_ProviderConfigBase):
    provider: Literal["openai"] = "openai"


class DeepSeekProviderConfig(_ProviderConfigBase):
    provider: Literal["deepseek"] = "deepseek"


class CustomProviderConfig(_ProviderConfigBase):
    """Any OpenAI-compatible endpoint; base_url is mandatory for embeddings."""
    provider: Literal["custom"] = "custom"


class CohereProviderConfig(_ProviderConfigBase):
    provider: Literal["cohere"] = "cohere"


class HashProviderConfig(_ProviderConfigBase):
    """Offline deterministic vectors. Not semantic; for tests and demos."""
    provider: Literal["hash"] = "hash"
    dim: int = Field(default=64, ge=1)


ProviderConfig = Annotated[
    Union[
        GoogleProviderConfig,
        OpenAIProviderConfig,
        DeepSeekProviderConfig,
        CustomProviderConfig,
        CohereProviderConfig,
        HashProviderConfig,
    ],
    Field(discriminator="provider"),
]


DEFAULT_BASE_URLS = {
    "google": "https://generativelanguage.googleapis.com/v1beta",
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com/v1",
    "cohere": "https://api.cohere.ai/v1",
}

DEFAULT_EMBED_MODELS = {
    "google": "text-embedding-004",
    "openai": "text-embedding-3-small",
    "custom": "text-embedding",
    "cohere": "embed-multilingual-v3.0",
    "hash": "sha256",
}


@dataclass(frozen=True)
class ResolvedEmbeddingConfig:
    """Fully populated config handed to an adapter."""
    provider: str
    api_key: str
    base_url: str
    model: str
    dim: Optional[int] = None


def resolve_scene_config(default: ProviderConfig, override: Union[str, ProviderConfig, None]) -> ProviderConfig:
    if override is None:
        return default
    if isinstance(override, str):
        if not override.strip():
            return default
        return default.model_copy(update={"model": override.strip()})
    return override


def resolve_embedding_config(config: ProviderConfig) -> Optional[ResolvedEmbeddingConfig]:
    if isinstance(config, HashProviderConfig):
        return ResolvedEmbeddingConfig(
            provider="hash",
            api_key="",
            base_url="",
            model=config.model or DEFAULT_EMBED_MODELS["hash"],
            dim=config.dim,
        )
    # DeepSeek ships no embedding endpoint
    if isinstance(config, DeepSeekProviderConfig):
        return None
    if not config.api_key:
        return None

    base_url = config.base_url or DEFAULT_BASE_URLS.get(config.provider)
    if not base_url:
        return None

    return ResolvedEmbeddingConfig(
        provider=config.provider,
        api_key=config.api_key,
        base_url=base_url.rstrip("/"),
        model=config.model or DEFAULT_EMBED_MODELS[config.provider],
    )
