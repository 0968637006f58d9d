from __future__ import annotations
import math
import re

_CJK_CHAR = re.compile("[\u4e00-\u9fa5]")
_LATIN_WORD = re.compile(r"[a-zA-Z]+")
_NUMBER = re.compile(r"\d+")


def estimate_tokens(text: str) -> int:
    """
    Rough model-token count: ~1.5 per Chinese character, ~1.3 per English
    word, ~0.5 per number. Punctuation is free.
    """
    if not text:
        return 0
    cjk = len(_CJK_CHAR.findall(text))
    words = len(_LATIN_WORD.findall(text))
    numbers = len(_NUMBER.findall(text))
    return math.ceil(cjk * 1.5 + words * 1.3 + numbers * 0.5)


def dynamic_top_k(token_budget: int, avg_chunk_tokens: int, min_k: int = 1, max_k: int = 10) -> int:
    """How many candidates to retrieve: budget / chunk size, clamped to [min_k, max_k]."""
    if max_k < min_k:
        raise ValueError("max_k must be >= min_k")
    if avg_chunk_tokens <= 0:
        return max_k
    estimate = math.floor(max(token_budget, 0) / avg_chunk_tokens)
    return max(min_k, min(max_k, estimate))
