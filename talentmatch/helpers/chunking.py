"""
Length-bounded text chunking for extraction calls.

Text longer than ``max_chunk_size`` is cut into consecutive windows. Each cut is
moved back to the nearest paragraph break, sentence end or whitespace found in
the lookback window, in that order of preference, so that words and sentences
are not split between two model calls.
"""
import re
from typing import List, Optional

from talentmatch.models.models import Chunk

MIN_LOOKBACK = 500
LOOKBACK_RATIO = 0.1

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_SENTENCE_END = re.compile(r"[.!?](?=\s)")
_WHITESPACE = re.compile(r"\s")

_BREAK_PATTERNS = (_PARAGRAPH_BREAK, _SENTENCE_END, _WHITESPACE)


def lookback_window(max_chunk_size: int) -> int:
    return max(MIN_LOOKBACK, int(LOOKBACK_RATIO * max_chunk_size))


def _find_cut(text: str, lo: int, hi: int) -> Optional[int]:
    """Position just after the best break in text[lo:hi], or None."""
    search_end = min(hi + 1, len(text))
    for pattern in _BREAK_PATTERNS:
        cut = None
        for match in pattern.finditer(text, lo, search_end):
            if match.end() <= hi:
                cut = match.end()
        if cut is not None:
            return cut
    return None


def chunk_text(text: str, max_chunk_size: int) -> List[Chunk]:
    """
    Split text into ordered, trimmed, non-empty chunks of at most
    max_chunk_size characters.
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
    if not text:
        return []

    if len(text) <= max_chunk_size:
        stripped = text.strip()
        return [Chunk(index=0, text=stripped)] if stripped else []

    lookback = lookback_window(max_chunk_size)
    pieces: List[str] = []
    start = 0
    length = len(text)

    while start < length:
        end = min(start + max_chunk_size, length)
        if end < length:
            cut = _find_cut(text, max(start + 1, end - lookback), end)
            if cut is not None:
                end = cut
        pieces.append(text[start:end])
        start = end

    chunks: List[Chunk] = []
    for piece in pieces:
        stripped = piece.strip()
        if stripped:
            chunks.append(Chunk(index=len(chunks), text=stripped))
    return chunks
