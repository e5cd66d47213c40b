"""Inverted term index for lexical search."""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.document import Chunk
from .tokenizer import tokenize

logger = logging.getLogger(__name__)


@dataclass
class TermPosting:
    """Occurrences of one term in one chunk."""
    chunk_id: str
    frequency: int
    positions: list[int]


@dataclass
class TermIndex:
    """Term -> postings map plus the length statistics BM25 needs.

    Built wholesale by :func:`build_term_index`; never mutated afterwards.
    """
    terms: dict[str, list[TermPosting]] = field(default_factory=dict)
    doc_lengths: dict[str, int] = field(default_factory=dict)
    avg_doc_length: float = 0.0
    total_docs: int = 0

    @property
    def unique_terms(self) -> int:
        return len(self.terms)

    def document_frequency(self, term: str) -> int:
        return len(self.terms.get(term, ()))


def build_term_index(chunks: Iterable[Chunk]) -> TermIndex:
    """Index ``title + " " + content`` of every chunk.

    Args:
        chunks: Chunk corpus. Ids must be unique; repeats are skipped.

    Returns:
        Term index with per-chunk token counts and corpus average.
    """
    terms: dict[str, list[TermPosting]] = {}
    doc_lengths: dict[str, int] = {}
    total_length = 0

    for chunk in chunks:
        if chunk.id in doc_lengths:
            logger.warning(f"Duplicate chunk id {chunk.id} skipped in term index")
            continue

        tokens = tokenize(f"{chunk.title} {chunk.content}")
        doc_lengths[chunk.id] = len(tokens)
        total_length += len(tokens)

        occurrences: dict[str, list[int]] = {}
        for position, token in enumerate(tokens):
            occurrences.setdefault(token, []).append(position)

        for token, positions in occurrences.items():
            terms.setdefault(token, []).append(
                TermPosting(chunk_id=chunk.id, frequency=len(positions), positions=positions)
            )

    total_docs = len(doc_lengths)
    index = TermIndex(
        terms=terms,
        doc_lengths=doc_lengths,
        avg_doc_length=total_length / total_docs if total_docs else 0.0,
        total_docs=total_docs,
    )
    logger.info(
        f"Term index built: {index.total_docs} chunks, {index.unique_terms} terms, "
        f"avg length {index.avg_doc_length:.1f}"
    )
    return index


def serialize_term_index(index: TermIndex) -> str:
    """Serialize as (term->postings list, doc length list, avg, total)."""
    return json.dumps(
        {
            "terms": [
                [term, [[p.chunk_id, p.frequency, p.positions] for p in postings]]
                for term, postings in index.terms.items()
            ],
            "docLengths": list(index.doc_lengths.items()),
            "avgDocLength": index.avg_doc_length,
            "totalDocs": index.total_docs,
        },
        separators=(",", ":"),
    )


def deserialize_term_index(data: str | bytes | dict) -> TermIndex:
    """Inverse of :func:`serialize_term_index`; accepts an already parsed dict."""
    parsed = data if isinstance(data, dict) else json.loads(data)
    try:
        terms = {
            term: [
                TermPosting(chunk_id=chunk_id, frequency=freq, positions=list(positions))
                for chunk_id, freq, positions in postings
            ]
            for term, postings in parsed["terms"]
        }
        doc_lengths = {chunk_id: length for chunk_id, length in parsed["docLengths"]}
        return TermIndex(
            terms=terms,
            doc_lengths=doc_lengths,
            avg_doc_length=float(parsed["avgDocLength"]),
            total_docs=int(parsed["totalDocs"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed term index payload: {e}") from e
