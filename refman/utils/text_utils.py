"""
Text utility functions for refman.

Provides cleaning of extracted PDF text and the analyzer
shared by the index store and the query engine: Unicode word
tokenization with NFKC normalization, case folding, and diacritic
removal. Indexing and querying must use the same analyzer for postings
lookups to match.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import List, Tuple


# Letters and digits; underscores and punctuation separate tokens.
WORD_PATTERN = re.compile(r"[^\W_]+")


@dataclass(frozen=True)
class Token:
    """
    A normalized term with its position and character span.

    Attributes:
        term: Normalized form used in postings.
        position: Ordinal of the token within its field.
        start: Offset of the first character in the source text.
        end: Offset one past the last character in the source text.
    """
    term: str
    position: int
    start: int
    end: int


def clean_text(text: str) -> str:
    """
    Normalize and clean extracted text.

    Removes control characters, normalizes whitespace, and handles
    common PDF extraction artifacts.

    Args:
        text: Raw text from PDF extraction.

    Returns:
        Cleaned text string.
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFKC", text)

    # Drop control and format characters, keeping line structure.
    text = "".join(
        char for char in text
        if not unicodedata.category(char).startswith("C")
        or char in "\n\t"
    )

    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)

    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(lines)

    return text.strip()


def fold_diacritics(text: str) -> str:
    """Strip combining marks, e.g. "sécurité" -> "securite"."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return unicodedata.normalize("NFC", stripped)


def normalize_term(word: str) -> str:
    """
    Normalize a single word into its postings form.

    Args:
        word: A word as it appears in text or in a query.

    Returns:
        Case-folded, diacritic-free NFKC form.
    """
    return fold_diacritics(unicodedata.normalize("NFKC", word).casefold())


def tokenize(text: str) -> List[Token]:
    """
    Split text into normalized tokens, keeping character offsets.

    Offsets refer to the text as given, so callers that need to
    highlight spans must pass the same text that is displayed.

    Args:
        text: Text to tokenize.

    Returns:
        Tokens in order of appearance with consecutive positions.
    """
    if not text:
        return []

    tokens = []
    for match in WORD_PATTERN.finditer(text):
        term = normalize_term(match.group())
        if not term:
            continue
        tokens.append(Token(term, len(tokens), match.start(), match.end()))

    return tokens


def analyze(text: str) -> List[Tuple[str, int]]:
    """
    Analyze text into (term, position) pairs.

    Args:
        text: Field text or a query fragment.

    Returns:
        List of (term, position) tuples.
    """
    if not text:
        return []

    normalized = unicodedata.normalize("NFKC", text)
    return [(token.term, token.position) for token in tokenize(normalized)]
