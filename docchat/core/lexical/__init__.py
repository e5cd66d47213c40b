"""Lexical retrieval: tokenizer, inverted term index and BM25."""
from .bm25 import BM25Searcher
from .term_index import (
    TermIndex,
    TermPosting,
    build_term_index,
    deserialize_term_index,
    serialize_term_index,
)
from .tokenizer import STOP_WORDS, tokenize

__all__ = [
    "BM25Searcher",
    "TermIndex",
    "TermPosting",
    "build_term_index",
    "deserialize_term_index",
    "serialize_term_index",
    "STOP_WORDS",
    "tokenize",
]
