from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import List, Optional, Tuple

from storyrag.adapters.embedding_providers.base import EmbeddingError, EmbeddingProvider
from storyrag.models.retrieval import DegradedReason

logger = logging.getLogger(__name__)


class QueryEmbedder:
    """
    Embeds queries on the generation path with a bounded wait.
    Never raises: a slow or failing provider yields (None, reason) and the
    caller ranks by keywords instead.
    """

    def __init__(self, embedder: Optional[EmbeddingProvider], timeout: float = 3.0, max_workers: int = 2) -> None:
        self.embedder = embedder
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="query-embed")

    def embed(self, text: str) -> Tuple[Optional[List[float]], Optional[DegradedReason]]:
        if self.embedder is None:
            return None, DegradedReason.EMBEDDING_DISABLED
        if not text.strip():
            return None, None
        future = self._executor.submit(self.embedder.embed_text, text)
        try:
            return future.result(timeout=self.timeout), None
        except FutureTimeout:
            future.cancel()
            logger.warning("Query embedding timed out after %.1fs; ranking by keywords", self.timeout)
            return None, DegradedReason.EMBEDDING_TIMEOUT
        except EmbeddingError as e:
            logger.warning("Query embedding failed; ranking by keywords: %s", e)
            return None, DegradedReason.EMBEDDING_FAILED
        except Exception:
            # a faulty provider must not block generation
            logger.exception("Unexpected error from embedding provider; ranking by keywords")
            return None, DegradedReason.EMBEDDING_FAILED

    def close(self) -> None:
        # a call still stuck in the provider finishes on its own
        self._executor.shutdown(wait=False, cancel_futures=True)
