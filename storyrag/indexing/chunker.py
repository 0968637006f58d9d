"""
Sentence-aligned chunking with character overlap.

Chunks never cut through a sentence: a sentence longer than max_size is
emitted as an oversize chunk of its own. The overlap seed is the tail of the
previous chunk, so it may start mid-sentence; it only carries continuity.
"""

from __future__ import annotations
import re
from typing import List

from storyrag.models.record import Chunk

# split after sentence-final punctuation (CJK and ASCII) or a line break
_SENTENCE_END = re.compile(r"(?<=[。！？!?.…\n])")


def split_sentences(text: str) -> List[str]:
    """Sentences of text with their closing punctuation; joins back to text."""
    return [s for s in _SENTENCE_END.split(text) if s]


def chunk_with_offsets(text: str, max_size: int = 1500, overlap: int = 200) -> List[Chunk]:
    if max_size <= 0:
        raise ValueError("max_size must be positive")
    if overlap < 0 or overlap >= max_size:
        raise ValueError("overlap must be in [0, max_size)")

    if len(text) <= max_size:
        return [Chunk(text=text, start_offset_hint=0)]

    chunks: List[Chunk] = []
    current = ""
    current_start = 0
    pos = 0  # offset of the next sentence in text

    for sentence in split_sentences(text):
        if current and len(current) + len(sentence) > max_size:
            chunks.append(Chunk(text=current, start_offset_hint=current_start))
            seed = current[-overlap:] if overlap else ""
            current = seed + sentence
            current_start = pos - len(seed)
        else:
            if not current:
                current_start = pos
            current += sentence
        pos += len(sentence)

    if current:
        chunks.append(Chunk(text=current, start_offset_hint=current_start))
    return chunks


def chunk_text(text: str, max_size: int = 1500, overlap: int = 200) -> List[str]:
    return [c.text for c in chunk_with_offsets(text, max_size, overlap)]
