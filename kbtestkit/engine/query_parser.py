"""
Keyword query parser

Supported syntax (clauses separated by whitespace, default operator OR):
    *:*                 match all documents
    field:value         term (multi-token values become phrases)
    field:"some words"  phrase
    field:*             field exists
    value*              prefix match
    bare words          searched in the schema's default field
    +clause / -clause   required / prohibited
    AND, OR, NOT        boolean keywords
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from kbtestkit.engine.schema import IndexSchema
from kbtestkit.engine.store import StoredDocument


class QueryParseError(ValueError):
    """Query string could not be parsed"""


class Occur(Enum):
    """How a clause participates in a boolean query"""
    SHOULD = "should"
    MUST = "must"
    MUST_NOT = "must_not"


@dataclass(frozen=True)
class FieldQuery:
    """A single field-level condition"""
    field: Optional[str]  # None means the default search field
    terms: tuple = ()
    prefix: bool = False
    exists: bool = False
    match_all: bool = False


@dataclass
class Clause:
    occur: Occur
    query: FieldQuery


@dataclass
class BooleanQuery:
    """Parsed query, evaluated against stored documents"""
    clauses: List[Clause] = field(default_factory=list)

    def positive_terms(self) -> List[str]:
        """Terms that contribute to scoring"""
        terms = []
        for clause in self.clauses:
            if clause.occur != Occur.MUST_NOT:
                terms.extend(clause.query.terms)
        return terms


class QueryParser:
    """Parses query strings against a schema"""

    def __init__(self, schema: IndexSchema):
        self.schema = schema

    def parse(self, text: str) -> BooleanQuery:
        """Parse a query string.

        Raises:
            QueryParseError: On empty input, unbalanced quotes or dangling operators
        """
        tokens = self._split(text)
        if not tokens:
            raise QueryParseError("Empty query")

        query = BooleanQuery()
        pending_occur: Optional[Occur] = None
        for position, token in enumerate(tokens):
            if token in ("AND", "&&"):
                self._require_operand(tokens, position, token)
                if query.clauses and query.clauses[-1].occur == Occur.SHOULD:
                    query.clauses[-1].occur = Occur.MUST
                pending_occur = pending_occur or Occur.MUST
                continue
            if token in ("OR", "||"):
                self._require_operand(tokens, position, token)
                continue
            if token in ("NOT", "!"):
                self._require_operand(tokens, position, token)
                pending_occur = Occur.MUST_NOT
                continue

            occur = pending_occur or Occur.SHOULD
            pending_occur = None
            if token[0] == '+':
                occur, token = Occur.MUST, token[1:]
            elif token[0] == '-':
                occur, token = Occur.MUST_NOT, token[1:]
            query.clauses.append(Clause(occur=occur, query=self._parse_clause(token)))

        return query

    def _require_operand(self, tokens: List[str], position: int, operator: str):
        """Boolean keywords need a clause after them"""
        if position == len(tokens) - 1:
            raise QueryParseError(f"Operator '{operator}' is missing an operand")

    def _split(self, text: str) -> List[str]:
        """Split on whitespace, keeping quoted phrases together"""
        tokens = []
        current = []
        in_quotes = False
        for ch in text:
            if ch == '"':
                in_quotes = not in_quotes
                current.append(ch)
            elif ch.isspace() and not in_quotes:
                if current:
                    tokens.append(''.join(current))
                    current = []
            else:
                current.append(ch)
        if in_quotes:
            raise QueryParseError(f"Unbalanced quotes in query: {text}")
        if current:
            tokens.append(''.join(current))
        return tokens

    def _parse_clause(self, token: str) -> FieldQuery:
        """Parse one clause such as field:value"""
        if not token:
            raise QueryParseError("Empty clause")
        if token == "*:*":
            return FieldQuery(field=None, match_all=True)

        field_name = None
        value = token
        if ':' in token and not token.startswith('"'):
            field_name, value = token.split(':', 1)
            if not field_name:
                raise QueryParseError(f"Missing field name in clause '{token}'")
            if not value:
                raise QueryParseError(f"Missing value in clause '{token}'")

        if value == '*':
            if field_name is None:
                raise QueryParseError("Bare '*' is not a valid clause")
            return FieldQuery(field=field_name, exists=True)

        prefix = False
        if value.startswith('"') and value.endswith('"') and len(value) >= 2:
            value = value[1:-1]
        elif value.endswith('*'):
            prefix = True
            value = value[:-1]

        terms = tuple(self.schema.tokenize(value))
        if not terms:
            raise QueryParseError(f"Clause '{token}' contains no searchable terms")
        return FieldQuery(field=field_name, terms=terms, prefix=prefix)


class QueryMatcher:
    """Evaluates a parsed query against documents"""

    def __init__(self, schema: IndexSchema):
        self.schema = schema

    def matches(self, query: BooleanQuery, document: StoredDocument) -> bool:
        """Check whether a document satisfies the query"""
        required = [c for c in query.clauses if c.occur == Occur.MUST]
        optional = [c for c in query.clauses if c.occur == Occur.SHOULD]
        prohibited = [c for c in query.clauses if c.occur == Occur.MUST_NOT]

        if any(self._matches_field_query(c.query, document) for c in prohibited):
            return False
        if not all(self._matches_field_query(c.query, document) for c in required):
            return False
        if optional and not required:
            return any(self._matches_field_query(c.query, document) for c in optional)
        return True

    def document_tokens(self, document: StoredDocument, field_name: Optional[str]) -> List[str]:
        """Tokens of a field, or of the default search field"""
        if field_name is None or field_name == self.schema.default_search_field:
            if self.schema.copy_to_default:
                values = [value for _, value in document.fields]
            else:
                values = document.values(self.schema.default_search_field)
        else:
            values = document.values(field_name)

        tokens = []
        for value in values:
            tokens.extend(self.schema.tokenize(value))
        return tokens

    def _matches_field_query(self, query: FieldQuery, document: StoredDocument) -> bool:
        """Check a single condition"""
        if query.match_all:
            return True
        if query.exists:
            return bool(document.values(query.field))

        field_name = query.field
        if field_name is not None and field_name != self.schema.default_search_field:
            # Phrases must match within a single value
            return any(
                self._contains(self.schema.tokenize(value), query)
                for value in document.values(field_name)
            )
        return self._contains(self.document_tokens(document, field_name), query)

    def _contains(self, tokens: List[str], query: FieldQuery) -> bool:
        """Check for the query terms as a contiguous run of tokens"""
        width = len(query.terms)
        for start in range(len(tokens) - width + 1):
            window = tokens[start:start + width]
            if query.prefix:
                if window[:-1] == list(query.terms[:-1]) and window[-1].startswith(query.terms[-1]):
                    return True
            elif tuple(window) == query.terms:
                return True
        return False
