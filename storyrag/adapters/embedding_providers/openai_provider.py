from __future__ import annotations
from typing import Any, List
import httpx

from .base import HttpEmbeddingProvider


class OpenAICompatibleProvider(HttpEmbeddingProvider):
    """
    POST {base_url}/embeddings in the OpenAI format.
    Serves both the official API and self-hosted compatible servers.
    """

    def _request(self, text: str) -> httpx.Response:
        return self._client.post(
            f"{self.config.base_url}/embeddings",
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.config.model,
                "input": text,
                "encoding_format": "float",
            },
        )

    def _parse(self, payload: Any) -> List[float]:
        return payload["data"][0]["embedding"]
