from __future__ import annotations
from typing import Any, List
import httpx

from .base import HttpEmbeddingProvider


class CohereProvider(HttpEmbeddingProvider):
    """Cohere /embed endpoint. The multilingual model handles Chinese prose."""

    def _request(self, text: str) -> httpx.Response:
        return self._client.post(
            f"{self.config.base_url}/embed",
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "texts": [text],
                "model": self.config.model,
                "input_type": "search_document",  # Required for v3.0 models
            },
        )

    def _parse(self, payload: Any) -> List[float]:
        return payload["embeddings"][0]
