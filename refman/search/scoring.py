"""
BM25 relevance scoring and edit distance.

Scores grow with term frequency and shrink with document frequency;
identical inputs always give identical scores.
"""

import math


class BM25Scorer:
    """
    Okapi BM25 with per-field length normalization.

    Args:
        k1: Term frequency saturation, must be positive.
        b: Length normalization strength between 0 and 1.
    """

    def __init__(self, k1: float = 1.2, b: float = 0.75):
        self.k1 = k1
        self.b = b

    @staticmethod
    def idf(doc_freq: int, doc_count: int) -> float:
        """
        Inverse document frequency, always positive.

        Args:
            doc_freq: Documents whose field contains the term.
            doc_count: Documents that have the field at all.
        """
        doc_count = max(doc_count, doc_freq)
        return math.log(1.0 + (doc_count - doc_freq + 0.5) / (doc_freq + 0.5))

    def score(self, frequency: int, field_length: int, average_length: float, idf: float) -> float:
        """
        Score one term (or phrase) occurrence count within a field.

        Args:
            frequency: Occurrences in the field.
            field_length: Token count of the field.
            average_length: Mean token count of the field across the store.
            idf: Inverse document frequency of the term.
        """
        if frequency <= 0:
            return 0.0

        if average_length > 0:
            norm = 1.0 - self.b + self.b * (field_length / average_length)
        else:
            norm = 1.0

        return idf * (frequency * (self.k1 + 1.0)) / (frequency + self.k1 * norm)


def edit_distance(a: str, b: str, limit: int = None) -> int:
    """
    Levenshtein distance between two strings.

    Args:
        a: First string.
        b: Second string.
        limit: Stop early and return limit + 1 once the distance is
               known to exceed it.

    Returns:
        Number of single-character insertions, deletions, or substitutions.
    """
    if a == b:
        return 0
    if limit is not None and abs(len(a) - len(b)) > limit:
        return limit + 1

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost
            ))
        if limit is not None and min(current) > limit:
            return limit + 1
        previous = current

    return previous[-1]
