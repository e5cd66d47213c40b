"""
BM25 lexical search over a term index.

Okapi BM25 with the "+1" IDF variant, which keeps IDF positive even for
terms present in most chunks:

    idf(t)     = ln((N - df + 0.5) / (df + 0.5) + 1)
    score(t,d) = idf(t) * f * (k1 + 1) / (f + k1 * (1 - b + b * |d| / avgdl))

Phrase search restricts candidates to chunks containing every phrase token
and boosts them by how tightly the tokens occur in order.
"""

import bisect
import logging
import math

from ..models.document import BM25Result
from .term_index import TermIndex, TermPosting
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

DEFAULT_K1 = 1.5
DEFAULT_B = 0.75


class BM25Searcher:
    """Read-only searcher bound to one term index snapshot.

    Example:
        searcher = BM25Searcher(build_term_index(chunks))
        searcher.search("sliding window", limit=10)
        # [BM25Result(chunk_id="3f2a...", score=2.31), ...]
    """

    def __init__(self, index: TermIndex, k1: float = DEFAULT_K1, b: float = DEFAULT_B):
        self._index = index
        self._k1 = k1
        self._b = b
        # term -> chunk_id -> posting, for per-chunk lookups in phrase scoring
        self._postings_by_chunk: dict[str, dict[str, TermPosting]] = {
            term: {p.chunk_id: p for p in postings}
            for term, postings in index.terms.items()
        }

    @property
    def index(self) -> TermIndex:
        return self._index

    def search(self, query: str, limit: int = 20) -> list[BM25Result]:
        """Rank chunks by summed BM25 term scores.

        Args:
            query: Free text; tokenized like the index.
            limit: Maximum number of results.

        Returns:
            Results by descending score. Empty when nothing tokenizes or matches.
        """
        tokens = tokenize(query)
        if not tokens:
            return []

        scores: dict[str, float] = {}
        for token in tokens:
            postings = self._index.terms.get(token)
            if not postings:
                continue
            idf = self._idf(len(postings))
            for posting in postings:
                scores[posting.chunk_id] = scores.get(posting.chunk_id, 0.0) + self._term_score(
                    idf, posting
                )

        return self._top(scores, limit)

    def search_phrase(self, phrase: str, limit: int = 20) -> list[BM25Result]:
        """Proximity-aware search; falls back to :meth:`search` when it can't apply."""
        tokens = tokenize(phrase)
        if len(tokens) < 2:
            return self.search(phrase, limit)

        candidates = self._chunks_with_all_tokens(tokens)
        if not candidates:
            return self.search(phrase, limit)

        scores: dict[str, float] = {}
        for chunk_id in candidates:
            score = self._phrase_score(chunk_id, tokens)
            if score > 0:
                scores[chunk_id] = score

        return self._top(scores, limit)

    def score_chunk(self, tokens: list[str], chunk_id: str) -> float:
        """Plain BM25 score of one chunk for already tokenized query terms."""
        total = 0.0
        for token in tokens:
            posting = self._postings_by_chunk.get(token, {}).get(chunk_id)
            if posting is None:
                continue
            total += self._term_score(self._idf(self._index.document_frequency(token)), posting)
        return total

    def term_coverage(self, query: str, chunk_id: str) -> float:
        """Fraction of distinct query tokens that occur in the chunk, in [0, 1]."""
        tokens = set(tokenize(query))
        if not tokens:
            return 0.0
        matched = sum(1 for t in tokens if chunk_id in self._postings_by_chunk.get(t, {}))
        return matched / len(tokens)

    def _idf(self, df: int) -> float:
        n = self._index.total_docs
        return math.log((n - df + 0.5) / (df + 0.5) + 1)

    def _term_score(self, idf: float, posting: TermPosting) -> float:
        avg_dl = self._index.avg_doc_length or 1.0
        doc_len = self._index.doc_lengths.get(posting.chunk_id, avg_dl)
        f = posting.frequency
        norm = f + self._k1 * (1 - self._b + self._b * (doc_len / avg_dl))
        return idf * (f * (self._k1 + 1)) / norm

    def _chunks_with_all_tokens(self, tokens: list[str]) -> list[str]:
        first = self._index.terms.get(tokens[0])
        if not first:
            return []

        # Keep posting order of the first token so ties stay deterministic
        ordered = [p.chunk_id for p in first]
        candidates = set(ordered)
        for token in tokens[1:]:
            candidates &= self._postings_by_chunk.get(token, {}).keys()
            if not candidates:
                return []
        return [chunk_id for chunk_id in ordered if chunk_id in candidates]

    def _phrase_score(self, chunk_id: str, tokens: list[str]) -> float:
        positions = [self._postings_by_chunk[t][chunk_id].positions for t in tokens]
        base = self.score_chunk(tokens, chunk_id)

        min_span = math.inf
        for first_pos in positions[0]:
            current = first_pos
            for token_positions in positions[1:]:
                i = bisect.bisect_right(token_positions, current)
                if i == len(token_positions):
                    break
                current = token_positions[i]
            else:
                min_span = min(min_span, current - first_pos)

        if min_span == math.inf:
            return base * 0.5

        ideal_span = len(tokens) - 1
        return base * (1 + ideal_span / (min_span + 1))

    @staticmethod
    def _top(scores: dict[str, float], limit: int) -> list[BM25Result]:
        # sorted() is stable: equal scores keep first-seen order
        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        return [BM25Result(chunk_id=chunk_id, score=score) for chunk_id, score in ranked[:limit]]
