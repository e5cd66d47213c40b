"""Tokenization shared by the term indexer and the BM25 searcher."""

import re

NON_WORD = re.compile(r"[^\w\s\-_]")

STOP_WORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "shall", "can", "need", "to", "of",
    "in", "for", "on", "with", "at", "by", "from", "as", "into", "through",
    "and", "but", "if", "or", "because", "until", "while", "it", "this",
    "that", "these", "those", "i", "me", "my", "we", "you", "your",
    "our", "its", "they", "them", "their", "not", "no", "so", "than",
    "then", "there", "here", "about", "also",
})


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, drop 1-char tokens and stop words.

    Hyphens and underscores survive so identifiers like ``rate-limit`` and
    ``api_key`` stay single tokens.
    """
    if not text:
        return []
    cleaned = NON_WORD.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) > 1 and t not in STOP_WORDS]
