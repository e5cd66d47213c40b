"""Tests for the rule-based query classifier."""

import pytest

from docchat.core.models.query import QueryIntent, RetrievalStrategy
from docchat.core.services.query_classifier import (
    QueryClassifier,
    classify_query,
    has_code_reference,
    is_specific_lookup,
    is_troubleshooting_query,
)


def test_how_to_configure_auth():
    result = classify_query("How do I configure auth?")

    assert result.intent is QueryIntent.CONCEPTUAL
    assert result.strategy is RetrievalStrategy.SEMANTIC
    assert result.expanded.startswith("How do I configure auth?")
    assert "authentication" in result.expanded
    assert len(result.expanded) > len(result.original)


@pytest.mark.parametrize(
    "query, intent, strategy",
    [
        ("Gateway error when starting", QueryIntent.TROUBLESHOOTING, RetrievalStrategy.HYBRID),
        ("Redis vs Postgres for sessions", QueryIntent.COMPARISON, RetrievalStrategy.SEMANTIC),
        ("where is the `loadConfig` function", QueryIntent.LOOKUP, RetrievalStrategy.KEYWORD),
        ("rate limit", QueryIntent.LOOKUP, RetrievalStrategy.HYBRID),
        ("gateway pairing steps for new mobile devices", QueryIntent.CONCEPTUAL, RetrievalStrategy.SEMANTIC),
    ],
)
def test_intent_and_strategy(query, intent, strategy):
    result = classify_query(query)
    assert result.intent is intent
    assert result.strategy is strategy


def test_troubleshooting_takes_precedence_over_lookup():
    # matches both the troubleshooting and the backtick lookup families
    assert classify_query("`doctor` command is broken").intent is QueryIntent.TROUBLESHOOTING


def test_extract_keywords():
    keywords = QueryClassifier().extract_keywords("How does the `api_key` setting work with the api_key in db?")

    assert keywords[0] == "api_key"
    assert keywords.count("api_key") == 1
    assert "setting" in keywords
    assert "how" not in keywords
    assert "db" not in keywords  # too short


def test_expand_matches_whole_words_only():
    classifier = QueryClassifier()

    assert classifier.expand("configure the db") == "configure the db database"
    assert classifier.expand("authorize") == "authorize"


def test_custom_synonyms():
    classifier = QueryClassifier({"k8s": ["kubernetes"]})
    assert classifier.expand("deploy on k8s") == "deploy on k8s kubernetes"


def test_predicates():
    assert has_code_reference("what does `openclaw onboard` do")
    assert not has_code_reference("what does onboarding do")
    assert is_specific_lookup("show me the config file")
    assert is_troubleshooting_query("login is broken")
    assert not is_troubleshooting_query("login flow overview")
