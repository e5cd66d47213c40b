"""Tests for tokenization and the inverted term index."""

import json

import pytest

from docchat.core.lexical.term_index import (
    build_term_index,
    deserialize_term_index,
    serialize_term_index,
)
from docchat.core.lexical.tokenizer import tokenize

from conftest import make_chunk


@pytest.fixture
def chunks():
    return [
        make_chunk("c1", "Rate Limiting", "Redis keeps a sliding window counter per client."),
        make_chunk("c2", "Installation", "Install the CLI and run the onboarding wizard."),
        make_chunk("c3", "Redis", "Configure the Redis URL with the REDIS_URL variable. Redis is required."),
    ]


def test_tokenize_drops_stop_words_and_punctuation():
    assert tokenize("How do I set the `api_key`?") == ["how", "set", "api_key"]
    assert tokenize("rate-limit, a b") == ["rate-limit"]
    assert tokenize("") == []


def test_positions_and_frequencies(chunks):
    index = build_term_index(chunks)

    postings = {p.chunk_id: p for p in index.terms["redis"]}
    assert set(postings) == {"c1", "c3"}
    assert postings["c3"].frequency == 3
    # title tokens come first, so "redis" is position 0 in c3
    assert postings["c3"].positions[0] == 0
    assert index.document_frequency("redis") == 2
    assert index.document_frequency("kubernetes") == 0


def test_average_length_matches_doc_lengths(chunks):
    index = build_term_index(chunks)

    assert index.total_docs == 3
    assert index.avg_doc_length == pytest.approx(sum(index.doc_lengths.values()) / index.total_docs)


def test_duplicate_ids_are_indexed_once(chunks):
    index = build_term_index(chunks + [make_chunk("c1", "Other", "Completely different words here.")])

    assert index.total_docs == 3
    assert "completely" not in index.terms


def test_empty_index():
    index = build_term_index([])

    assert index.total_docs == 0
    assert index.avg_doc_length == 0.0
    assert index.unique_terms == 0


def test_serialization_round_trip(chunks):
    index = build_term_index(chunks)
    restored = deserialize_term_index(serialize_term_index(index))

    assert restored == index


def test_deserialize_accepts_parsed_dict(chunks):
    index = build_term_index(chunks)
    assert deserialize_term_index(json.loads(serialize_term_index(index))) == index


def test_deserialize_rejects_malformed_payload():
    with pytest.raises(ValueError):
        deserialize_term_index('{"terms": [["redis"]]}')
