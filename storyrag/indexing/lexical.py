"""
Lexical signals: keyword extraction, keyword match scoring, and the
character-bigram similarity used for style samples.

Chinese prose has no word delimiters, so extraction combines delimiter
tokens with short ideograph runs that catch personal and place names.
"""

from __future__ import annotations
import re
import string
from typing import Iterable, List, Sequence, Set

from storyrag.models.record import IndexedRecord
from .base import ScoringQuery

MAX_KEYWORDS = 50
MIN_TOKEN_LEN = 2
MAX_TOKEN_LEN = 10

_DELIMITERS = re.compile(
    "["
    r"\s"
    + re.escape(string.punctuation)
    + "\u2010-\u206f"  # general punctuation: quotes, dashes, ellipsis
    + "\u3000-\u303f"  # CJK symbols and punctuation
    + "\uff01-\uff0f\uff1a-\uff20\uff3b-\uff40\uff5b-\uff65"  # fullwidth forms
    + "]+"
)
_NAME_RUNS = re.compile("[\u4e00-\u9fa5]{2,4}")
_WHITESPACE = re.compile(r"\s+")


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def extract_keywords(text: str) -> List[str]:
    """
    Ordered, de-duplicated search keys for text, at most 50.
    Pure: the same text always yields the same list.
    """
    if not text:
        return []

    tokens = [
        t for t in _DELIMITERS.sub(" ", text).split(" ")
        if MIN_TOKEN_LEN <= len(t) <= MAX_TOKEN_LEN
    ]
    names = _NAME_RUNS.findall(text)
    return _dedupe(tokens + names)[:MAX_KEYWORDS]


def keyword_match_score(keywords: Sequence[str], text: str) -> float:
    """Fraction of keywords found as substrings of text, in [0, 1]."""
    if not keywords or not text:
        return 0.0
    hits = sum(1 for k in keywords if k in text)
    return hits / len(keywords)


def _bigrams(s: str) -> Set[str]:
    return {s[i:i + 2] for i in range(len(s) - 1)}


def bigram_similarity(a: str, b: str) -> float:
    """
    Jaccard similarity of character bigrams, damped by the length ratio.
    Whitespace is ignored. Returns a value in [0, 1].
    """
    a = _WHITESPACE.sub("", a or "")
    b = _WHITESPACE.sub("", b or "")
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    ga, gb = _bigrams(a), _bigrams(b)
    inter = len(ga & gb)
    union = len(ga) + len(gb) - inter
    jaccard = inter / union if union > 0 else 0.0
    length_ratio = min(len(a), len(b)) / max(len(a), len(b))
    return jaccard * (0.7 + 0.3 * length_ratio)


def calculate_edit_ratio(original: str, modified: str) -> float:
    """How much of original was rewritten: 0 for identical, 1 for unrelated."""
    if not original or not modified:
        return 1.0
    if original == modified:
        return 0.0
    if not _WHITESPACE.sub("", original) or not _WHITESPACE.sub("", modified):
        return 1.0
    return min(1.0, max(0.0, 1.0 - bigram_similarity(original, modified)))


class KeywordScorer:
    """Keyword match score of the query keywords against the record text."""

    def score(self, query: ScoringQuery, record: IndexedRecord) -> float:
        return keyword_match_score(query.keywords, record.text)


class BigramJaccardScorer:
    """Surface-form similarity between the query text and the record text."""

    def score(self, query: ScoringQuery, record: IndexedRecord) -> float:
        return bigram_similarity(query.text, record.text)
