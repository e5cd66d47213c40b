"""Tests for BM25 keyword and phrase search."""

import math

import pytest

from docchat.core.lexical.bm25 import BM25Searcher
from docchat.core.lexical.term_index import build_term_index

from conftest import make_chunk


@pytest.fixture
def searcher():
    chunks = [
        make_chunk("ordered", "Sliding Window", "The sliding window algorithm counts requests per client."),
        make_chunk("scattered", "Windows", "A window opens while the slider moves; sliding doors close."),
        make_chunk("reversed", "Reversed", "Every window keeps sliding forward in time for each key."),
        make_chunk("unrelated", "Installation", "Install the package and run the onboarding wizard."),
    ]
    return BM25Searcher(build_term_index(chunks))


def test_single_chunk_match_has_positive_score():
    searcher = BM25Searcher(build_term_index([make_chunk("only", "Redis", "Redis stores counters.")]))

    results = searcher.search("redis")
    assert [r.chunk_id for r in results] == ["only"]
    assert results[0].score > 0


def test_absent_term_returns_empty(searcher):
    assert searcher.search("kubernetes") == []


def test_query_of_only_stop_words_returns_empty(searcher):
    assert searcher.search("the and of") == []


def test_idf_uses_plus_one_variant():
    chunks = [make_chunk(f"c{i}", "Doc", "common words everywhere") for i in range(3)]
    searcher = BM25Searcher(build_term_index(chunks))

    # df == N still yields a positive idf
    results = searcher.search("common")
    assert len(results) == 3
    assert all(r.score > 0 for r in results)
    expected_idf = math.log((3 - 3 + 0.5) / (3 + 0.5) + 1)
    assert results[0].score == pytest.approx(expected_idf * (1 * 2.5) / (1 + 1.5))


def test_results_sorted_and_limited(searcher):
    results = searcher.search("sliding window", limit=2)

    assert len(results) == 2
    assert results[0].score >= results[1].score


def test_phrase_search_prefers_in_order_adjacent_tokens(searcher):
    results = searcher.search_phrase("sliding window")

    assert results[0].chunk_id == "ordered"
    ids = [r.chunk_id for r in results]
    assert "unrelated" not in ids


def test_phrase_without_in_order_span_is_penalized(searcher):
    plain = {r.chunk_id: r.score for r in searcher.search("sliding window")}
    phrase = {r.chunk_id: r.score for r in searcher.search_phrase("sliding window")}

    # "reversed" only has "window ... sliding", never in order
    assert phrase["reversed"] == pytest.approx(plain["reversed"] * 0.5)
    # "ordered" has an adjacent in-order span (span 1): factor 1 + 1/(1 + 1)
    assert phrase["ordered"] == pytest.approx(plain["ordered"] * 1.5)


def test_phrase_falls_back_to_plain_search(searcher):
    assert searcher.search_phrase("window") == searcher.search("window")
    # no chunk has both tokens
    assert searcher.search_phrase("window wizard") == searcher.search("window wizard")


def test_term_coverage(searcher):
    assert searcher.term_coverage("sliding window", "ordered") == 1.0
    assert searcher.term_coverage("sliding wizard", "ordered") == 0.5
    assert searcher.term_coverage("the", "ordered") == 0.0
