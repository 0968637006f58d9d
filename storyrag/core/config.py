from pydantic import TypeAdapter
from pydantic_settings import BaseSettings, SettingsConfigDict

from storyrag.core.providers import ProviderConfig

_provider_adapter: TypeAdapter = TypeAdapter(ProviderConfig)


class Settings(BaseSettings):
    # embeddings
    EMBED_PROVIDER: str = "openai"  # google|openai|deepseek|custom|cohere|hash
    EMBED_API_KEY: str | None = None
    EMBED_BASE_URL: str | None = None
    EMBED_MODEL: str | None = None
    EMBED_TIMEOUT: float = 10.0
    EMBED_QUERY_TIMEOUT: float = 3.0  # bounded wait while building a context

    # storage
    REDIS_URL: str = "redis://localhost:6379/0"
    USE_REDIS: bool = False  # Set to True to use Redis instead of in-memory

    # chunking / indexing
    CHUNK_SIZE: int = 1500
    CHUNK_OVERLAP: int = 200
    MIN_CHAPTER_CHARS: int = 100

    # ranking / context
    VECTOR_WEIGHT: float = 0.7
    KEYWORD_WEIGHT: float = 0.3
    DEFAULT_TOKEN_BUDGET: int = 2000
    AVG_CHUNK_TOKENS: int = 500
    MIN_K: int = 1
    MAX_K: int = 10

    LOG_LEVEL: str = "INFO"
    TEMPORAL_ADDRESS: str = "localhost:7233"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def provider_config(self) -> ProviderConfig:
        """Build the tagged provider config from the flat EMBED_* settings."""
        return _provider_adapter.validate_python(
            {
                "provider": self.EMBED_PROVIDER.lower(),
                "api_key": self.EMBED_API_KEY,
                "base_url": self.EMBED_BASE_URL,
                "model": self.EMBED_MODEL,
            }
        )


settings = Settings()
