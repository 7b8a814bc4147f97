"""
Snippet highlighting for search results.

Finds the shortest span of a field's text that contains the most
distinct matched terms, widens it with surrounding context up to a
maximum length, and marks every matched word.
"""

from collections import Counter
from typing import Iterable, List, Optional, Tuple

from ..utils import Token, tokenize


STYLES = {
    "ansi": ("\x1b[43m", "\x1b[0m"),
    "html": ("<mark>", "</mark>"),
    "plain": ("", ""),
}

ELLIPSIS = "…"


class Highlighter:
    """
    Builds highlighted excerpts.

    Args:
        max_length: Maximum number of source characters in a snippet.
        style: One of "ansi", "html", "plain".
    """

    def __init__(self, max_length: int = 200, style: str = "ansi"):
        if style not in STYLES:
            raise ValueError(f"Unknown highlight style: {style}")
        self.max_length = max_length
        self.open_mark, self.close_mark = STYLES[style]

    def snippet(self, text: str, terms: Iterable[str]) -> Optional[str]:
        """
        Build a snippet of text around matched terms.

        Args:
            text: Field text as stored.
            terms: Normalized terms that matched the query.

        Returns:
            Highlighted excerpt, or None when no term occurs in text.
        """
        terms = set(terms)
        if not text or not terms:
            return None

        hits = [token for token in tokenize(text) if token.term in terms]
        if not hits:
            return None

        first, last = self._best_window(hits)
        span_start = hits[first].start
        span_end = hits[last].end

        # Keep as many window hits as fit when the window is too wide.
        if span_end - span_start > self.max_length:
            fitting = [h for h in hits[first:last + 1] if h.end - span_start <= self.max_length]
            span_end = fitting[-1].end if fitting else min(hits[first].end, span_start + self.max_length)

        start, end = self._widen(text, span_start, span_end)
        return self._render(text, start, end, hits)

    @staticmethod
    def _best_window(hits: List[Token]) -> Tuple[int, int]:
        """Return indexes of the shortest run of hits covering every distinct term."""
        needed = len({hit.term for hit in hits})
        counts: Counter = Counter()
        covered = 0
        left = 0
        best = (0, len(hits) - 1)
        best_width = hits[-1].end - hits[0].start

        for right, hit in enumerate(hits):
            counts[hit.term] += 1
            if counts[hit.term] == 1:
                covered += 1

            while covered == needed:
                width = hits[right].end - hits[left].start
                if width < best_width:
                    best, best_width = (left, right), width
                counts[hits[left].term] -= 1
                if counts[hits[left].term] == 0:
                    covered -= 1
                left += 1

        return best

    def _widen(self, text: str, start: int, end: int) -> Tuple[int, int]:
        """Add context on both sides and cut at word boundaries."""
        slack = max(self.max_length - (end - start), 0)
        new_start = max(0, start - slack // 2)
        new_end = min(len(text), new_start + max(self.max_length, end - new_start))
        new_start = max(0, min(new_start, new_end - self.max_length, start))

        if new_start > 0:
            boundary = text.find(" ", new_start, start)
            if boundary != -1:
                new_start = boundary + 1
        if new_end < len(text):
            boundary = text.rfind(" ", end, new_end)
            if boundary != -1:
                new_end = boundary

        return new_start, new_end

    def _render(self, text: str, start: int, end: int, hits: List[Token]) -> str:
        pieces = []
        cursor = start

        for hit in hits:
            if hit.start < start or hit.end > end:
                continue
            pieces.append(text[cursor:hit.start])
            pieces.append(f"{self.open_mark}{text[hit.start:hit.end]}{self.close_mark}")
            cursor = hit.end
        pieces.append(text[cursor:end])

        body = " ".join("".join(pieces).split())
        prefix = ELLIPSIS if start > 0 else ""
        suffix = ELLIPSIS if end < len(text) else ""
        return f"{prefix}{body}{suffix}"
