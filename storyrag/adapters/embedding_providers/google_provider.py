from __future__ import annotations
from typing import Any, List
import httpx

from .base import HttpEmbeddingProvider


class GoogleProvider(HttpEmbeddingProvider):
    """Gemini embedContent over REST; base_url may point at a proxy."""

    def _request(self, text: str) -> httpx.Response:
        return self._client.post(
            f"{self.config.base_url}/models/{self.config.model}:embedContent",
            headers={
                "x-goog-api-key": self.config.api_key,
                "Content-Type": "application/json",
            },
            json={
                "model": f"models/{self.config.model}",
                "content": {"parts": [{"text": text}]},
            },
        )

    def _parse(self, payload: Any) -> List[float]:
        return payload["embedding"]["values"]
