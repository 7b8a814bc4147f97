"""
Query expression tree.

The parser turns a query string into these nodes; the engine
evaluates them against the store. A field of None means the clause
applies to every indexed field.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class TermQuery:
    """Documents containing a normalized term."""
    term: str
    field: Optional[str] = None
    boost: float = 1.0


@dataclass(frozen=True)
class PhraseQuery:
    """
    Documents containing terms at fixed relative positions.

    Attributes:
        terms: Normalized terms in phrase order.
        offsets: Position of each term relative to the first.
    """
    terms: Tuple[str, ...]
    offsets: Tuple[int, ...]
    field: Optional[str] = None
    boost: float = 1.0


@dataclass(frozen=True)
class WildcardQuery:
    """Terms matching a pattern where * is any run and ? one character."""
    pattern: str
    field: Optional[str] = None
    boost: float = 1.0


@dataclass(frozen=True)
class FuzzyQuery:
    """Terms within an edit distance of a normalized term."""
    term: str
    distance: int = 1
    field: Optional[str] = None
    boost: float = 1.0


@dataclass(frozen=True)
class RegexQuery:
    """Terms fully matching a regular expression."""
    pattern: str
    field: Optional[str] = None
    boost: float = 1.0


@dataclass(frozen=True)
class BooleanQuery:
    """
    Combination of required, optional, and excluded clauses.

    A document matches when it matches every must clause and no
    must_not clause, and, if there are no must clauses, at least one
    should clause. With only must_not clauses every other document
    matches.
    """
    must: Tuple["Expression", ...] = ()
    should: Tuple["Expression", ...] = ()
    must_not: Tuple["Expression", ...] = ()
    boost: float = 1.0


Expression = Union[TermQuery, PhraseQuery, WildcardQuery, FuzzyQuery, RegexQuery, BooleanQuery]
