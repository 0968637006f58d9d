"""
Formats ranked candidates into one bounded text block for prompt injection.

Each candidate becomes a labeled block; blocks are separated by a blank line.
The token estimate of the whole output never exceeds the budget. When the
next block does not fit, its text is cut to fill the remainder and assembly
stops there. After the first block this only happens when a useful amount of
budget is left.
"""

from __future__ import annotations
from typing import Callable, List, Sequence

from storyrag.indexing.budget import estimate_tokens
from storyrag.models.record import IndexedRecord, RecordKind
from storyrag.models.retrieval import RetrievalCandidate

SEPARATOR = "\n\n"
ELLIPSIS = "…"


def block_label(record: IndexedRecord) -> str:
    md = record.metadata
    if record.kind == RecordKind.CHAPTER:
        head = f"Previous chapter {record.order}" if record.order is not None else "Previous chapter"
        return f"[{head}: {md.title}]" if md.title else f"[{head}]"
    if record.kind == RecordKind.CHARACTER:
        return f"[Character: {md.name}]" if md.name else "[Character]"
    if record.kind == RecordKind.WIKI:
        return f"[World entry: {md.name}]" if md.name else "[World entry]"
    return "[Style sample]"


class ContextAssembler:
    def __init__(self, count_tokens: Callable[[str], int] = estimate_tokens, min_partial_tokens: int = 40) -> None:
        self.count_tokens = count_tokens
        self.min_partial_tokens = min_partial_tokens

    def render(self, record: IndexedRecord, text: str | None = None) -> str:
        return f"{block_label(record)}\n{record.text if text is None else text}"

    def _truncate_to_fit(self, record: IndexedRecord, used: str, budget: int) -> str | None:
        """Longest prefix of the record text whose block still fits, or None."""
        text = record.text.strip()
        lo, hi = 0, len(text)
        best: str | None = None
        # token estimate is monotone in prefix length
        while lo <= hi:
            mid = (lo + hi) // 2
            block = self.render(record, text[:mid].rstrip() + ELLIPSIS)
            candidate = used + SEPARATOR + block if used else block
            if self.count_tokens(candidate) <= budget:
                best = block if mid > 0 else None
                lo = mid + 1
            else:
                hi = mid - 1
        return best

    def assemble(self, ranked: Sequence[RetrievalCandidate], token_budget: int) -> str:
        if token_budget <= 0 or not ranked:
            return ""

        blocks: List[str] = []
        used = ""
        for cand in ranked:
            record = cand.record
            if not record.text or not record.text.strip():
                continue
            block = self.render(record)
            candidate = used + SEPARATOR + block if used else block
            if self.count_tokens(candidate) <= token_budget:
                blocks.append(block)
                used = candidate
                continue

            remaining = token_budget - self.count_tokens(used)
            # the top result is always cut to fit rather than dropped
            if not blocks or remaining >= self.min_partial_tokens:
                partial = self._truncate_to_fit(record, used, token_budget)
                if partial is not None:
                    blocks.append(partial)
            break

        return SEPARATOR.join(blocks)


def assemble(ranked: Sequence[RetrievalCandidate], token_budget: int) -> str:
    return ContextAssembler().assemble(ranked, token_budget)
