from __future__ import annotations
import hashlib
from typing import List

import numpy as np


class HashProvider:
    """
    Deterministic hash-based embeddings.

    The vectors carry no meaning: two different texts are unrelated, the same
    text always maps to the same unit vector. Useful for exercising the
    pipeline offline and in tests.
    """

    def __init__(self, dim: int = 64) -> None:
        self.dim = dim

    def embed_text(self, text: str) -> List[float]:
        h = hashlib.sha256(text.encode("utf-8")).digest()
        raw = np.empty(self.dim, dtype=float)
        for i in range(self.dim):
            seed = hashlib.md5(h + i.to_bytes(4, "little")).digest()
            raw[i] = int.from_bytes(seed[:4], "little", signed=True) / (2**31)
        n = float(np.linalg.norm(raw))
        if n > 0.0:
            raw = raw / n
        return raw.tolist()
