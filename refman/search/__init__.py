"""
Search module for full-text queries with BM25 ranking.

Provides the query language parser, expression tree, query engine,
snippet highlighting, and result models.
"""

from .models import SearchResult, SearchQuery, SearchStats, ResultSet
from .expressions import (
    BooleanQuery,
    Expression,
    FuzzyQuery,
    PhraseQuery,
    RegexQuery,
    TermQuery,
    WildcardQuery
)
from .query_parser import QueryParser
from .highlighter import Highlighter
from .scoring import BM25Scorer, edit_distance
from .engine import QueryEngine

__all__ = [
    "SearchResult",
    "SearchQuery",
    "SearchStats",
    "ResultSet",
    "BooleanQuery",
    "Expression",
    "FuzzyQuery",
    "PhraseQuery",
    "RegexQuery",
    "TermQuery",
    "WildcardQuery",
    "QueryParser",
    "Highlighter",
    "BM25Scorer",
    "edit_distance",
    "QueryEngine"
]
