"""
Point-in-time searcher over committed documents

Uses rank_bm25 for keyword scoring. BM25Plus is used rather than BM25Okapi:
with the handful of documents a test indexes, Okapi's idf goes negative for
any term present in more than half the corpus.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np
from rank_bm25 import BM25Plus

from kbtestkit.engine.query_parser import BooleanQuery, QueryMatcher
from kbtestkit.engine.schema import IndexSchema
from kbtestkit.engine.store import StoredDocument

logger = logging.getLogger(__name__)


@dataclass
class ScoredDocument:
    """A matching document and its relevance score"""
    document: StoredDocument
    score: float


@dataclass
class SearchResult:
    """One page of matches"""
    num_found: int
    start: int
    docs: List[ScoredDocument] = field(default_factory=list)
    max_score: Optional[float] = None


class IndexSearcher:
    """Searches a snapshot of the index taken when the searcher was opened.

    Searchers are reference-counted by the harness; release() must be called
    once the request that acquired it is done.
    """

    def __init__(self, documents: List[StoredDocument], schema: IndexSchema,
                 on_release: Optional[Callable[['IndexSearcher'], None]] = None):
        self.documents = documents
        self.schema = schema
        self.matcher = QueryMatcher(schema)
        self._on_release = on_release
        self.released = False

    def search(self, query: BooleanQuery, start: int = 0, rows: int = 10,
               sort: Optional[List[Tuple[str, bool]]] = None) -> SearchResult:
        """Execute query and return the requested page.

        Args:
            query: Parsed query
            start: Offset of first returned match
            rows: Maximum number of matches returned
            sort: (field, descending) pairs; None orders by score

        Returns:
            SearchResult with total match count and the page
        """
        matched = [
            (position, doc) for position, doc in enumerate(self.documents)
            if self.matcher.matches(query, doc)
        ]
        if not matched:
            return SearchResult(num_found=0, start=start)

        scores = self._score(query, [position for position, _ in matched])
        # Score descending, ties keep insertion order
        order = np.lexsort((np.arange(len(matched)), -scores))
        ranked = [ScoredDocument(matched[i][1], float(scores[i])) for i in order]

        if sort:
            ranked = self._apply_sort(ranked, sort)

        return SearchResult(
            num_found=len(ranked),
            start=start,
            docs=ranked[start:start + rows] if rows > 0 else [],
            max_score=float(scores.max())
        )

    def _score(self, query: BooleanQuery, positions: List[int]) -> np.ndarray:
        """BM25 scores for the matched positions"""
        terms = query.positive_terms()
        if not terms:
            return np.ones(len(positions))

        corpus = [self.matcher.document_tokens(doc, None) for doc in self.documents]
        if not any(corpus):
            return np.ones(len(positions))
        bm25 = BM25Plus(corpus)
        all_scores = bm25.get_scores(terms)
        return np.asarray(all_scores, dtype=float)[positions]

    def _apply_sort(self, ranked: List[ScoredDocument],
                    sort: List[Tuple[str, bool]]) -> List[ScoredDocument]:
        """Stable multi-key sort; documents missing a sort field go last"""
        for field_name, descending in reversed(sort):
            if field_name == "score":
                ranked = sorted(ranked, key=lambda d: d.score, reverse=descending)
                continue
            present = [d for d in ranked if d.document.values(field_name)]
            missing = [d for d in ranked if not d.document.values(field_name)]
            present.sort(key=lambda d: _sort_key(d.document.values(field_name)[0]),
                         reverse=descending)
            ranked = present + missing
        return ranked

    def release(self):
        """Return the searcher to the harness (idempotent)"""
        if self.released:
            return
        self.released = True
        self.documents = []
        if self._on_release is not None:
            self._on_release(self)


def _sort_key(value: str) -> tuple:
    """Numbers sort numerically and ahead of strings"""
    try:
        return (0, float(value), "")
    except ValueError:
        return (1, 0.0, value)
