"""
Query engine evaluating expression trees against the index store.

Each expression node evaluates to the set of matching documents with
a BM25-based score and the terms that matched in each field. Results
are ranked by descending score with ties broken by document id,
paginated, and optionally given highlighted snippets.
"""

import re
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from ..core import get_logger, SearchConfig, SearchError
from ..store.index_store import TEXT_FIELD
from ..store.repository import FieldStatistics, Posting
from .expressions import (
    BooleanQuery,
    Expression,
    FuzzyQuery,
    PhraseQuery,
    RegexQuery,
    TermQuery,
    WildcardQuery
)
from .highlighter import Highlighter
from .models import ResultSet, SearchQuery, SearchResult, SearchStats
from .query_parser import QueryParser
from .scoring import BM25Scorer, edit_distance

if TYPE_CHECKING:
    from ..store.index_store import IndexStore

logger = get_logger(__name__)


# Score of documents matched only by the absence of excluded clauses.
CONSTANT_SCORE = 1.0


@dataclass
class Match:
    """A matching document: accumulated score and matched terms per field."""
    score: float = 0.0
    terms: Dict[str, Set[str]] = field(default_factory=lambda: defaultdict(set))

    def merge_terms(self, other: "Match") -> None:
        for field_name, terms in other.terms.items():
            self.terms[field_name].update(terms)


Matches = Dict[str, Match]


class QueryEngine:
    """
    Full-text search engine over an IndexStore.

    Provides query parsing, evaluation with relevance ranking,
    snippet generation, and pagination.
    """

    def __init__(self, store: "IndexStore", config: SearchConfig = None):
        """
        Initialize the engine.

        Args:
            store: Open index store to query.
            config: Search settings; the store's settings when omitted.
        """
        self.store = store
        self.repository = store.repository
        self.config = config or store.search_config
        self.parser = QueryParser()
        self.scorer = BM25Scorer(k1=self.config.bm25_k1, b=self.config.bm25_b)
        self._field_stats: Dict[str, FieldStatistics] = {}

    def parse(self, text: str) -> Optional[Expression]:
        return self.parser.parse(text)

    def search(self, query: SearchQuery) -> ResultSet:
        """
        Parse and evaluate a query.

        Args:
            query: SearchQuery with text, pagination, and highlight flag.

        Returns:
            ResultSet; empty without touching the store when the query
            has no terms.

        Raises:
            QueryParseError: If the query is malformed.
            SearchError: If evaluation fails.
        """
        if not query.text or not query.text.strip():
            logger.debug("Empty query, skipping search")
            return ResultSet.empty(query.text or "")

        expression = self.parse(query.text)
        if expression is None:
            logger.debug(f"Query {query.text!r} has no searchable terms")
            return ResultSet.empty(query.text)

        return self.evaluate(
            expression,
            limit=query.limit,
            offset=query.offset,
            highlight=query.highlight,
            query_text=query.text
        )

    def evaluate(
        self,
        expression: Expression,
        limit: int = None,
        offset: int = 0,
        highlight: bool = False,
        query_text: str = ""
    ) -> ResultSet:
        """
        Evaluate an expression tree and rank the matches.

        Args:
            expression: Parsed query.
            limit: Maximum results; configured default when None.
            offset: Results to skip.
            highlight: Whether to attach snippets.
            query_text: Original text, reported in the stats.

        Returns:
            ResultSet ordered by descending score, then document id.
        """
        start_time = time.time()

        limit = min(limit or self.config.default_limit, self.config.max_limit)
        offset = max(offset, 0)

        self._field_stats = {}

        matches = self._evaluate(expression)
        ranked = sorted(matches.items(), key=lambda item: (-item[1].score, item[0]))
        page = ranked[offset:offset + limit]

        documents = self.repository.get_many(doc_id for doc_id, _ in page)
        highlighter = (
            Highlighter(self.config.snippet_length, self.config.highlight_style)
            if highlight else None
        )

        results = []
        for doc_id, match in page:
            document = documents.get(doc_id)
            result = SearchResult(
                doc_id=doc_id,
                score=match.score,
                metadata=document.metadata if document else None
            )
            if highlighter is not None and document is not None:
                self._attach_snippet(result, document, match, highlighter)
            results.append(result)

        execution_time = (time.time() - start_time) * 1000

        logger.debug(
            f"Search {query_text!r}: {len(ranked)} results in {execution_time:.1f}ms"
        )

        return ResultSet(
            results=results,
            stats=SearchStats(
                query=query_text,
                total_results=len(ranked),
                execution_time_ms=round(execution_time, 2),
                offset=offset
            )
        )

    def _attach_snippet(self, result: SearchResult, document, match: Match, highlighter: Highlighter) -> None:
        """Set the snippet of a result; a failure leaves it without one."""
        try:
            sources = [(TEXT_FIELD, document.text)]
            if document.metadata is not None:
                sources.extend(sorted(document.metadata.indexable_fields().items()))

            for field_name, text in sources:
                terms = match.terms.get(field_name)
                if not terms:
                    continue
                snippet = highlighter.snippet(text, terms)
                if snippet:
                    result.snippet = snippet
                    result.snippet_field = field_name
                    return
        except Exception as e:
            logger.warning(f"Highlighting failed for {result.doc_id}: {e}")
            result.snippet = None
            result.snippet_field = None

    # evaluation

    def _evaluate(self, node: Expression, nested: bool = False) -> Matches:
        if isinstance(node, TermQuery):
            matches = self._term_matches(node.term, node.field)
        elif isinstance(node, PhraseQuery):
            matches = self._phrase_matches(node)
        elif isinstance(node, WildcardQuery):
            matches = self._expanded_matches(node.field, self._wildcard_terms(node))
        elif isinstance(node, FuzzyQuery):
            matches = self._expanded_matches(node.field, self._fuzzy_terms(node))
        elif isinstance(node, RegexQuery):
            matches = self._expanded_matches(node.field, self._regex_terms(node))
        elif isinstance(node, BooleanQuery):
            matches = self._boolean_matches(node, nested)
        else:
            raise SearchError(f"Unsupported expression: {type(node).__name__}")

        if node.boost != 1.0:
            for match in matches.values():
                match.score *= node.boost
        return matches

    def _fields_for(self, field_name: Optional[str]) -> Optional[List[str]]:
        return [field_name] if field_name is not None else None

    def _weight(self, field_name: str, qualified: bool) -> float:
        return 1.0 if qualified else self.config.weight_for(field_name)

    def _stats(self, field_name: str) -> FieldStatistics:
        if field_name not in self._field_stats:
            self._field_stats[field_name] = self.repository.field_statistics(field_name)
        return self._field_stats[field_name]

    def _term_matches(self, term: str, field_name: Optional[str], factor: float = 1.0) -> Matches:
        postings = self.repository.postings(term, self._fields_for(field_name))

        by_field: Dict[str, List[Posting]] = defaultdict(list)
        for posting in postings:
            by_field[posting.field].append(posting)

        matches: Matches = {}
        for posting_field, field_postings in by_field.items():
            stats = self._stats(posting_field)
            idf = self.scorer.idf(len(field_postings), stats.doc_count)
            weight = self._weight(posting_field, field_name is not None) * factor

            for posting in field_postings:
                match = matches.setdefault(posting.doc_id, Match())
                match.score += weight * self.scorer.score(
                    posting.frequency, posting.field_length, stats.average_length, idf
                )
                match.terms[posting_field].add(term)

        return matches

    def _phrase_matches(self, node: PhraseQuery) -> Matches:
        per_term = [
            self.repository.postings(term, self._fields_for(node.field))
            for term in dict.fromkeys(node.terms)
        ]
        lookup: Dict[str, Dict[tuple, Posting]] = {}
        for term, postings in zip(dict.fromkeys(node.terms), per_term):
            lookup[term] = {(p.field, p.doc_id): p for p in postings}

        first = lookup[node.terms[0]]
        candidates = [
            key for key in first
            if all(key in lookup[term] for term in node.terms[1:])
        ]

        doc_freq: Dict[str, Dict[str, int]] = defaultdict(dict)
        for term, postings in lookup.items():
            for (posting_field, _doc_id) in postings:
                doc_freq[term][posting_field] = doc_freq[term].get(posting_field, 0) + 1

        matches: Matches = {}
        for posting_field, doc_id in candidates:
            position_sets = [set(lookup[term][(posting_field, doc_id)].positions) for term in node.terms]
            frequency = sum(
                1 for start in lookup[node.terms[0]][(posting_field, doc_id)].positions
                if all(start + offset in positions
                       for offset, positions in zip(node.offsets, position_sets))
            )
            if frequency == 0:
                continue

            stats = self._stats(posting_field)
            idf = sum(
                self.scorer.idf(doc_freq[term][posting_field], stats.doc_count)
                for term in node.terms
            )
            field_length = lookup[node.terms[0]][(posting_field, doc_id)].field_length
            weight = self._weight(posting_field, node.field is not None)

            match = matches.setdefault(doc_id, Match())
            match.score += weight * self.scorer.score(frequency, field_length, stats.average_length, idf)
            match.terms[posting_field].update(node.terms)

        return matches

    def _check_expansions(self, terms: List[str], description: str) -> List[str]:
        if len(terms) > self.config.max_expansions:
            raise SearchError(
                f"{description} matches {len(terms)} terms, more than the limit of "
                f"{self.config.max_expansions}; make the pattern more specific",
                details={"expansions": len(terms)}
            )
        logger.debug(f"{description} expanded to {len(terms)} terms")
        return terms

    def _wildcard_terms(self, node: WildcardQuery) -> Dict[str, float]:
        glob = "".join(
            char if char in "*?" else ("[[]" if char == "[" else char)
            for char in node.pattern
        )
        terms = self.repository.terms(self._fields_for(node.field), glob=glob)
        return {term: 1.0 for term in self._check_expansions(terms, f"Wildcard {node.pattern!r}")}

    def _fuzzy_terms(self, node: FuzzyQuery) -> Dict[str, float]:
        candidates = self.repository.terms(
            self._fields_for(node.field),
            min_length=max(len(node.term) - node.distance, 1),
            max_length=len(node.term) + node.distance
        )
        within = {}
        for term in candidates:
            distance = edit_distance(node.term, term, limit=node.distance)
            if distance <= node.distance:
                within[term] = 1.0 / (1.0 + distance)

        self._check_expansions(list(within), f"Fuzzy {node.term!r}")
        return within

    def _regex_terms(self, node: RegexQuery) -> Dict[str, float]:
        try:
            pattern = re.compile(node.pattern)
        except re.error as e:
            raise SearchError(f"Invalid regular expression: {e}", details={"pattern": node.pattern})

        terms = [
            term for term in self.repository.terms(self._fields_for(node.field))
            if pattern.fullmatch(term)
        ]
        return {term: 1.0 for term in self._check_expansions(terms, f"Regex /{node.pattern}/")}

    def _expanded_matches(self, field_name: Optional[str], terms: Dict[str, float]) -> Matches:
        matches: Matches = {}
        for term, factor in terms.items():
            for doc_id, match in self._term_matches(term, field_name, factor).items():
                combined = matches.setdefault(doc_id, Match())
                combined.score += match.score
                combined.merge_terms(match)
        return matches

    def _boolean_matches(self, node: BooleanQuery, nested: bool = False) -> Matches:
        """
        Combine clause matches.

        A query made only of excluded clauses matches every other document.
        At the top level those documents get a constant score; nested in a
        larger query they score zero and leave ranking to the other clauses.
        """
        must = [self._evaluate(child, nested=True) for child in node.must]
        should = [self._evaluate(child, nested=True) for child in node.should]

        excluded: Set[str] = set()
        for child in node.must_not:
            excluded.update(self._evaluate(child, nested=True))

        if must:
            candidates = set(must[0])
            for result in must[1:]:
                candidates &= set(result)
        elif should:
            candidates = set()
            for result in should:
                candidates |= set(result)
        else:
            candidates = set(self.repository.document_ids())

        candidates -= excluded

        positive = must + should
        matches: Matches = {}
        for doc_id in sorted(candidates):
            match = Match()
            if positive:
                matched = [result[doc_id] for result in positive if doc_id in result]
                for sub in matched:
                    match.score += sub.score
                    match.merge_terms(sub)
                match.score *= len(matched) / len(positive)
            elif not nested:
                match.score = CONSTANT_SCORE
            matches[doc_id] = match

        return matches
