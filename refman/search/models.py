"""
Data models for search functionality.

Defines dataclasses for search queries, individual results, and the
ranked result set returned by the query engine.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from ..core import ReferenceMetadata


@dataclass
class SearchQuery:
    """
    Represents a search query with pagination options.

    Attributes:
        text: The search query text.
        limit: Maximum number of results to return; configured default
               when None.
        offset: Number of results to skip for pagination.
        highlight: Whether to compute highlighted snippets.
    """
    text: str
    limit: Optional[int] = None
    offset: int = 0
    highlight: bool = False


@dataclass
class SearchResult:
    """
    Represents a single search result.

    Attributes:
        doc_id: Absolute path of the matching document.
        score: Relevance score, higher is better.
        snippet: Excerpt with highlighted matches, when requested and
                 available.
        snippet_field: Field the snippet was taken from.
        metadata: Bibliographic metadata of the document, if any.
    """
    doc_id: str
    score: float
    snippet: Optional[str] = None
    snippet_field: Optional[str] = None
    metadata: Optional[ReferenceMetadata] = None

    @property
    def title(self) -> Optional[str]:
        return self.metadata.title if self.metadata else None


@dataclass
class SearchStats:
    """
    Statistics about a search execution.

    Attributes:
        query: The original query text.
        total_results: Total matching documents.
        execution_time_ms: Query execution time in milliseconds.
        offset: Index of the first returned result.
    """
    query: str
    total_results: int
    execution_time_ms: float
    offset: int = 0


@dataclass
class ResultSet:
    """
    Ranked results of one query.

    Results are ordered by descending score, ties by ascending
    document identifier.
    """
    results: List[SearchResult] = field(default_factory=list)
    stats: Optional[SearchStats] = None

    @classmethod
    def empty(cls, query: str = "") -> "ResultSet":
        return cls(results=[], stats=SearchStats(query=query, total_results=0, execution_time_ms=0.0))

    @property
    def total(self) -> int:
        return self.stats.total_results if self.stats else len(self.results)

    @property
    def doc_ids(self) -> List[str]:
        return [result.doc_id for result in self.results]

    def __iter__(self) -> Iterator[SearchResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)
