from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List, Protocol

import httpx

from storyrag.core.providers import ResolvedEmbeddingConfig

# providers reject very long inputs; chapters are chunked well below this
MAX_EMBED_CHARS = 10_000


class EmbeddingError(RuntimeError):
    """The provider could not return a vector for the given text."""


class EmbeddingProvider(Protocol):
    """
    Interface for all embedding providers.
    Implementations raise EmbeddingError on any failure and never retry.
    """
    def embed_text(self, text: str) -> List[float]:
        ...


class HttpEmbeddingProvider(ABC):
    """Shared plumbing for providers reached over HTTP."""

    def __init__(self, config: ResolvedEmbeddingConfig, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = client or httpx.Client(timeout=timeout)

    def embed_text(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError("cannot embed empty text")
        try:
            r = self._request(text[:MAX_EMBED_CHARS])
            r.raise_for_status()
            emb = [float(x) for x in self._parse(r.json())]
        except httpx.HTTPError as e:
            raise EmbeddingError(f"{self.config.provider} embedding request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(f"{self.config.provider} returned an unexpected payload: {e}") from e
        if not emb:
            raise EmbeddingError(f"{self.config.provider} returned an empty embedding")
        return emb

    def close(self) -> None:
        self._client.close()

    @abstractmethod
    def _request(self, text: str) -> httpx.Response:
        ...

    @abstractmethod
    def _parse(self, payload: Any) -> List[float]:
        ...
