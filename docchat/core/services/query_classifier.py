"""Query classifier - intent, strategy, keywords and expansion."""

import logging
import re

from ..lexical.tokenizer import NON_WORD
from ..models.query import ClassifiedQuery, QueryIntent, RetrievalStrategy

logger = logging.getLogger(__name__)

TROUBLESHOOTING_PATTERNS = [
    re.compile(r"\b(error|bug|issue|problem|fail|broken|not working|doesn't work)\b", re.I),
    re.compile(r"\b(fix|solve|resolve|debug|troubleshoot)\b", re.I),
    re.compile(r"\b(help|stuck|can't|cannot|unable)\b", re.I),
]

COMPARISON_PATTERNS = [
    re.compile(r"\b(vs|versus|compared to|difference between|or)\b", re.I),
    re.compile(r"\b(better|best|recommend|should i use|which)\b", re.I),
    re.compile(r"\b(pros|cons|advantages|disadvantages)\b", re.I),
]

LOOKUP_PATTERNS = [
    re.compile(r"`[^`]+`"),
    re.compile(r"\.(ts|tsx|js|jsx|py|rs|go|md)\b", re.I),
    re.compile(r"\b(function|class|const|var|let|type|interface)\s+\w+", re.I),
    re.compile(r"\b(find|where is|show me|locate)\b.*\b(file|function|class|method|config)\b", re.I),
    re.compile(r"error\s*(code|:)?\s*\d+", re.I),
    re.compile(r"\b(api|endpoint|route|path)\s*[:=]?\s*[/\w]+", re.I),
]

CONCEPTUAL_PATTERNS = [
    re.compile(r"^(how|what|why|when|explain|describe)\b", re.I),
    re.compile(r"\b(overview|introduction|getting started|basics)\b", re.I),
    re.compile(r"\b(understand|learn|concept|idea)\b", re.I),
]

# Evaluated in order; first family with a match wins
INTENT_PATTERNS = [
    (QueryIntent.TROUBLESHOOTING, TROUBLESHOOTING_PATTERNS),
    (QueryIntent.COMPARISON, COMPARISON_PATTERNS),
    (QueryIntent.LOOKUP, LOOKUP_PATTERNS),
    (QueryIntent.CONCEPTUAL, CONCEPTUAL_PATTERNS),
]

CODE_REFERENCE_PATTERNS = [
    re.compile(r"`[^`]+`"),
    re.compile(r"\b(function|class|const)\s+\w+", re.I),
]

BACKTICK_SPAN = re.compile(r"`([^`]+)`")

# Abbreviation -> synonyms; the first synonym is the expansion
SYNONYMS: dict[str, list[str]] = {
    "auth": ["authentication", "login", "sign in", "credentials"],
    "config": ["configuration", "settings", "options", "setup"],
    "api": ["endpoint", "route", "interface"],
    "db": ["database", "storage", "data"],
    "env": ["environment", "variables", "secrets"],
    "deploy": ["deployment", "hosting", "publish"],
    "err": ["error", "exception", "failure"],
}

KEYWORD_STOP_WORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "shall", "can", "need", "dare",
    "to", "of", "in", "for", "on", "with", "at", "by", "from", "as",
    "into", "through", "during", "before", "after", "above", "below",
    "between", "under", "again", "further", "then", "once", "here",
    "there", "when", "where", "why", "how", "all", "each", "few",
    "more", "most", "other", "some", "such", "no", "nor", "not",
    "only", "own", "same", "so", "than", "too", "very", "just",
    "and", "but", "if", "or", "because", "until", "while", "it",
    "this", "that", "these", "those", "i", "me", "my", "we", "you",
})

SHORT_QUERY_WORDS = 3
MIN_KEYWORD_LENGTH = 3


class QueryClassifier:
    """Rule-based classifier: ordered regex families, then length default."""

    def __init__(self, synonyms: dict[str, list[str]] | None = None):
        self._synonyms = synonyms or SYNONYMS
        self._synonym_patterns = [
            (re.compile(rf"\b{re.escape(abbrev)}\b", re.I), expansions[0])
            for abbrev, expansions in self._synonyms.items()
            if expansions
        ]

    def classify(self, query: str) -> ClassifiedQuery:
        intent = self.detect_intent(query)
        classified = ClassifiedQuery(
            original=query,
            expanded=self.expand(query),
            intent=intent,
            strategy=self.select_strategy(query, intent),
            keywords=tuple(self.extract_keywords(query)),
        )
        logger.debug(
            f"Classified '{query[:50]}': intent={intent.value} "
            f"strategy={classified.strategy.value} keywords={list(classified.keywords)}"
        )
        return classified

    def detect_intent(self, query: str) -> QueryIntent:
        for intent, patterns in INTENT_PATTERNS:
            if any(p.search(query) for p in patterns):
                return intent

        # Short queries are usually lookups
        if len(query.split()) <= SHORT_QUERY_WORDS:
            return QueryIntent.LOOKUP
        return QueryIntent.CONCEPTUAL

    def select_strategy(self, query: str, intent: QueryIntent) -> RetrievalStrategy:
        if intent is QueryIntent.LOOKUP:
            if has_code_reference(query):
                return RetrievalStrategy.KEYWORD
            return RetrievalStrategy.HYBRID
        if intent in (QueryIntent.CONCEPTUAL, QueryIntent.COMPARISON):
            return RetrievalStrategy.SEMANTIC
        return RetrievalStrategy.HYBRID

    def extract_keywords(self, query: str) -> list[str]:
        """Backticked spans first, then filtered lowercase words, deduplicated."""
        code_refs = BACKTICK_SPAN.findall(query)
        words = [
            w
            for w in NON_WORD.sub(" ", query.lower()).split()
            if len(w) >= MIN_KEYWORD_LENGTH and w not in KEYWORD_STOP_WORDS
        ]
        # dict preserves first-seen order
        return list(dict.fromkeys(code_refs + words))

    def expand(self, query: str) -> str:
        """Append the primary synonym of every abbreviation found as a whole word."""
        expanded = query
        for pattern, expansion in self._synonym_patterns:
            if pattern.search(query):
                expanded += f" {expansion}"
        return expanded.strip()


_default_classifier = QueryClassifier()


def classify_query(query: str) -> ClassifiedQuery:
    """Classify with the default rules."""
    return _default_classifier.classify(query)


def has_code_reference(query: str) -> bool:
    return any(p.search(query) for p in CODE_REFERENCE_PATTERNS)


def is_specific_lookup(query: str) -> bool:
    """Whether the query points at a specific file, symbol or endpoint."""
    return any(p.search(query) for p in LOOKUP_PATTERNS)


def is_troubleshooting_query(query: str) -> bool:
    return any(p.search(query) for p in TROUBLESHOOTING_PATTERNS)
