"""
Query parser for the refman query language.

Turns a free-text query into an expression tree. Supported syntax:

    word            term; words analyzing to several tokens become phrases
    "a b c"         exact phrase
    field:value     field-qualified clause (also field:"a b", field:(a b))
    pre*  c?t       wildcards
    word~  word~2   fuzzy match within edit distance 1 or 2
    /regex/         regular expression over the term dictionary
    +clause         required
    -clause ~clause excluded (~ is the shell-friendly spelling)
    NOT clause      excluded
    clause^2.5      boost
    a AND b, a OR b, ( ... )

Binding from tightest to loosest: a run of clauses, AND, OR.
Malformed queries raise QueryParseError rather than being reduced to
plain word matching.
"""

import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..core import get_logger, QueryParseError
from ..utils import analyze, normalize_term
from .expressions import (
    BooleanQuery,
    Expression,
    FuzzyQuery,
    PhraseQuery,
    RegexQuery,
    TermQuery,
    WildcardQuery
)

logger = get_logger(__name__)


FIELD_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_.-]*")
MAX_FUZZY_DISTANCE = 2
RANGE_PREFIXES = (">", "<", "[", "{")

# Token kinds
LPAREN = "LPAREN"
RPAREN = "RPAREN"
AND = "AND"
OR = "OR"
NOT = "NOT"
PLUS = "PLUS"
MINUS = "MINUS"
FIELD = "FIELD"
WORD = "WORD"
PHRASE = "PHRASE"
REGEX = "REGEX"
BOOST = "BOOST"
FUZZY = "FUZZY"
EOF = "EOF"

KEYWORDS = {"AND": AND, "OR": OR, "NOT": NOT}
CLAUSE_START = {PLUS, MINUS, NOT, LPAREN, FIELD, WORD, PHRASE, REGEX}


@dataclass(frozen=True)
class QueryToken:
    """
    A lexical token of a query string.

    Attributes:
        kind: One of the token kind constants.
        value: Text of the token (word, phrase body, field name...).
        position: Character offset in the query.
        wildcard: Whether a WORD contains unescaped * or ?.
    """
    kind: str
    value: str
    position: int
    wildcard: bool = False


class QueryLexer:
    """Splits a query string into QueryTokens."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.tokens: List[QueryToken] = []

    def error(self, message: str, position: int = None) -> QueryParseError:
        position = self.pos if position is None else position
        return QueryParseError(f"{message} at position {position}", query=self.text, position=position)

    def tokenize(self) -> List[QueryToken]:
        text = self.text

        while self.pos < len(text):
            char = text[self.pos]

            if char.isspace():
                self.pos += 1
            elif char == "(":
                self.tokens.append(QueryToken(LPAREN, char, self.pos))
                self.pos += 1
            elif char == ")":
                self.tokens.append(QueryToken(RPAREN, char, self.pos))
                self.pos += 1
                self._read_suffixes(allow_fuzzy=False)
            elif char in "+-~":
                nxt = text[self.pos + 1] if self.pos + 1 < len(text) else ""
                if not nxt or nxt.isspace() or nxt == ")":
                    raise self.error(f"Operator {char!r} must be followed by a clause")
                kind = PLUS if char == "+" else MINUS
                self.tokens.append(QueryToken(kind, char, self.pos))
                self.pos += 1
            elif char == '"':
                self._read_delimited(PHRASE, '"')
                self._read_suffixes(allow_fuzzy=False)
            elif char == "/":
                self._read_delimited(REGEX, "/")
                self._read_suffixes(allow_fuzzy=False)
            else:
                self._read_word()

        self.tokens.append(QueryToken(EOF, "", len(text)))
        return self.tokens

    def _read_delimited(self, kind: str, delimiter: str) -> None:
        start = self.pos
        self.pos += 1
        buf = []

        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                nxt = self.text[self.pos + 1]
                # Keep regex escapes intact; only the delimiter is unescaped.
                if kind == REGEX and nxt != delimiter:
                    buf.append(char)
                buf.append(nxt)
                self.pos += 2
                continue
            if char == delimiter:
                self.pos += 1
                self.tokens.append(QueryToken(kind, "".join(buf), start))
                return
            buf.append(char)
            self.pos += 1

        name = "phrase" if kind == PHRASE else "regular expression"
        raise self.error(f"Unterminated {name}", start)

    def _read_word(self) -> None:
        text = self.text
        start = self.pos
        buf = []
        wildcard = False
        escaped = False

        while self.pos < len(text):
            char = text[self.pos]

            if char == "\\":
                if self.pos + 1 >= len(text):
                    raise self.error("Dangling escape character")
                buf.append(text[self.pos + 1])
                escaped = True
                self.pos += 2
                continue

            if char.isspace() or char in '()"':
                break

            if char == ":":
                name = "".join(buf)
                if (not escaped and not wildcard and FIELD_NAME.fullmatch(name)
                        and self._field_value_follows(self.pos + 1)):
                    self.tokens.append(QueryToken(FIELD, name.lower(), start))
                    self.pos += 1
                    nxt = text[self.pos] if self.pos < len(text) else ""
                    if not nxt or nxt.isspace() or nxt == ")":
                        raise self.error(f"Missing value for field {name!r}")
                    return
                buf.append(char)
                self.pos += 1
                continue

            if char in "^~":
                break

            if char in "*?":
                wildcard = True

            buf.append(char)
            self.pos += 1

        word = "".join(buf)
        if not word:
            raise self.error(f"Unexpected character {text[self.pos]!r}")

        kind = KEYWORDS.get(word, WORD) if not escaped else WORD
        self.tokens.append(QueryToken(kind, word, start, wildcard=wildcard))

        if kind == WORD:
            self._read_suffixes(allow_fuzzy=not wildcard)

    def _field_value_follows(self, pos: int) -> bool:
        """
        Check that text at pos can start a field value.

        A value starting with '/' is a regex only when a closing '/' ends
        the token; otherwise the whole word is literal, as in 'http://x'.
        """
        text = self.text
        if pos >= len(text) or text[pos] != "/":
            return True

        pos += 1
        while pos < len(text):
            if text[pos] == "\\":
                pos += 2
                continue
            if text[pos] == "/":
                after = text[pos + 1] if pos + 1 < len(text) else ""
                return not after or after.isspace() or after in "()^"
            pos += 1
        return False

    def _read_suffixes(self, allow_fuzzy: bool) -> None:
        text = self.text

        while self.pos < len(text) and text[self.pos] in "^~":
            marker = text[self.pos]
            start = self.pos
            self.pos += 1
            digits = []
            while self.pos < len(text) and (text[self.pos].isdigit() or text[self.pos] == "."):
                digits.append(text[self.pos])
                self.pos += 1
            number = "".join(digits)

            if marker == "^":
                try:
                    boost = float(number)
                except ValueError:
                    raise self.error("Boost must be a number", start)
                if boost < 0:
                    raise self.error("Boost must not be negative", start)
                self.tokens.append(QueryToken(BOOST, number, start))
            else:
                if not allow_fuzzy:
                    raise self.error("Fuzzy operator applies to single words only", start)
                if number and not number.isdigit():
                    raise self.error("Fuzzy distance must be an integer", start)
                self.tokens.append(QueryToken(FUZZY, number or "1", start))

        if self.pos < len(text) and not (text[self.pos].isspace() or text[self.pos] in "()"):
            raise self.error(f"Unexpected character {text[self.pos]!r}")


class QueryParser:
    """
    Parses query strings into expression trees.

    parse() returns None when the query holds nothing searchable
    (empty, or only characters the analyzer discards).
    """

    def parse(self, query: str) -> Optional[Expression]:
        """
        Parse a query string.

        Args:
            query: Raw user input.

        Returns:
            Expression tree, or None for an empty query.

        Raises:
            QueryParseError: If the query is malformed.
        """
        if not query or not query.strip():
            return None

        self._query = query
        self._tokens = QueryLexer(query).tokenize()
        self._index = 0
        self._fields: List[Optional[str]] = [None]

        expression = self._parse_or()

        token = self._peek()
        if token.kind != EOF:
            raise self._error(f"Unexpected {token.value!r}", token)

        logger.debug(f"Parsed query {query!r} -> {expression}")
        return expression

    # token helpers

    def _peek(self) -> QueryToken:
        return self._tokens[self._index]

    def _next(self) -> QueryToken:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _error(self, message: str, token: QueryToken) -> QueryParseError:
        return QueryParseError(
            f"{message} at position {token.position}",
            query=self._query,
            position=token.position
        )

    # grammar

    def _parse_or(self) -> Optional[Expression]:
        operands = [self._parse_and()]
        while self._peek().kind == OR:
            self._next()
            operands.append(self._parse_and())

        operands = [op for op in operands if op is not None]
        if len(operands) <= 1:
            return operands[0] if operands else None
        return BooleanQuery(should=tuple(operands))

    def _parse_and(self) -> Optional[Expression]:
        operands = [self._parse_sequence()]
        while self._peek().kind == AND:
            self._next()
            operands.append(self._parse_sequence())

        operands = [op for op in operands if op is not None]
        if len(operands) <= 1:
            return operands[0] if operands else None
        return BooleanQuery(must=tuple(operands))

    def _parse_sequence(self) -> Optional[Expression]:
        token = self._peek()
        if token.kind not in CLAUSE_START:
            found = "end of query" if token.kind == EOF else repr(token.value)
            raise self._error(f"Expected a search clause, found {found}", token)

        must: List[Expression] = []
        should: List[Expression] = []
        must_not: List[Expression] = []

        while self._peek().kind in CLAUSE_START:
            occur, node = self._parse_clause()
            if node is None:
                continue
            {"must": must, "should": should, "must_not": must_not}[occur].append(node)

        if not must and not must_not:
            if not should:
                return None
            if len(should) == 1:
                return should[0]

        return BooleanQuery(must=tuple(must), should=tuple(should), must_not=tuple(must_not))

    def _parse_clause(self) -> Tuple[str, Optional[Expression]]:
        token = self._peek()
        occur = "should"

        if token.kind in (PLUS, MINUS, NOT):
            self._next()
            occur = "must" if token.kind == PLUS else "must_not"
            nxt = self._peek()
            if nxt.kind in (PLUS, MINUS, NOT):
                raise self._error("Consecutive operators", nxt)
            if nxt.kind not in CLAUSE_START:
                raise self._error(f"Operator {token.value!r} must be followed by a clause", token)

        return occur, self._parse_primary()

    def _parse_primary(self) -> Optional[Expression]:
        token = self._next()

        if token.kind == FIELD:
            value = self._peek()
            if value.kind not in (WORD, PHRASE, REGEX, LPAREN):
                raise self._error(f"Missing value for field {token.value!r}", token)
            if value.kind == WORD and value.value.startswith(RANGE_PREFIXES):
                raise self._error("Range queries are not supported", value)
            self._fields.append(token.value)
            try:
                return self._parse_primary()
            finally:
                self._fields.pop()

        if token.kind == LPAREN:
            if self._peek().kind == RPAREN:
                raise self._error("Empty group", token)
            inner = self._parse_or()
            closing = self._next()
            if closing.kind != RPAREN:
                raise self._error("Missing closing parenthesis", token)
            return self._apply_boost(inner)

        if token.kind == WORD:
            return self._word_node(token)

        if token.kind == PHRASE:
            return self._apply_boost(self._phrase_node(token.value))

        if token.kind == REGEX:
            return self._apply_boost(self._regex_node(token))

        raise self._error(f"Unexpected {token.value!r}", token)

    # node construction

    @property
    def _field(self) -> Optional[str]:
        return self._fields[-1]

    def _apply_boost(self, node: Optional[Expression]) -> Optional[Expression]:
        while self._peek().kind == BOOST:
            boost = float(self._next().value)
            if node is not None:
                node = replace(node, boost=node.boost * boost)
        return node

    def _word_node(self, token: QueryToken) -> Optional[Expression]:
        fuzzy = None
        boost = 1.0
        while self._peek().kind in (BOOST, FUZZY):
            suffix = self._next()
            if suffix.kind == BOOST:
                boost *= float(suffix.value)
            else:
                fuzzy = int(suffix.value)

        if token.wildcard:
            node = WildcardQuery(pattern=self._normalize_pattern(token.value), field=self._field)
        elif fuzzy is not None:
            if fuzzy < 1 or fuzzy > MAX_FUZZY_DISTANCE:
                raise self._error(f"Fuzzy distance must be between 1 and {MAX_FUZZY_DISTANCE}", token)
            terms = analyze(token.value)
            if len(terms) != 1:
                raise self._error("Fuzzy operator applies to a single term", token)
            node = FuzzyQuery(term=terms[0][0], distance=fuzzy, field=self._field)
        else:
            node = self._phrase_node(token.value)

        if node is not None and boost != 1.0:
            node = replace(node, boost=node.boost * boost)
        return node

    def _phrase_node(self, text: str) -> Optional[Expression]:
        analyzed = analyze(text)
        if not analyzed:
            return None
        if len(analyzed) == 1:
            return TermQuery(term=analyzed[0][0], field=self._field)

        first = analyzed[0][1]
        return PhraseQuery(
            terms=tuple(term for term, _ in analyzed),
            offsets=tuple(position - first for _, position in analyzed),
            field=self._field
        )

    def _regex_node(self, token: QueryToken) -> RegexQuery:
        if not token.value:
            raise self._error("Empty regular expression", token)
        try:
            re.compile(token.value)
        except re.error as e:
            raise self._error(f"Invalid regular expression: {e}", token)
        return RegexQuery(pattern=token.value, field=self._field)

    @staticmethod
    def _normalize_pattern(pattern: str) -> str:
        """Normalize the literal parts of a wildcard pattern."""
        pieces = re.split(r"([*?])", pattern)
        return "".join(
            piece if piece in ("*", "?") else normalize_term(piece)
            for piece in pieces
        )
