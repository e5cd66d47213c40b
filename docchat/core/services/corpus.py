"""Parser for the documentation corpus convention.

A corpus is a markdown document made of sections::

    # Page Title
    Source: https://docs.example.com/path

    Body content...
"""

import logging
import re
from urllib.parse import urlparse

from ..models.document import DocPage

logger = logging.getLogger(__name__)

MIN_PAGE_LENGTH = 50

_SECTION_SPLIT = re.compile(r"\n(?=# [^\n]+\nSource:)")
_TITLE = re.compile(r"^# ([^\n]+)")
_SOURCE = re.compile(r"\nSource: (https?://[^\n]+)")


def clean_markdown(markdown: str) -> str:
    """Normalize markdown for embedding."""
    text = re.sub(r"```\w+\s*", "```\n", markdown)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()


def parse_corpus(text: str, origin: str = "corpus") -> list[DocPage]:
    """Split a corpus document into pages.

    Sections without a title, without a ``Source:`` URL, or with under
    ``MIN_PAGE_LENGTH`` characters of content are skipped.

    Args:
        text: Raw corpus document.
        origin: Label used in log messages.

    Returns:
        Parsed pages in document order.
    """
    pages: list[DocPage] = []

    for section in _SECTION_SPLIT.split(text):
        if not section.strip():
            continue

        title_match = _TITLE.match(section)
        source_match = _SOURCE.search(section)
        if not title_match or not source_match:
            continue

        title = title_match.group(1).strip()
        url = source_match.group(1).strip()

        body_start = section.find("\n", source_match.end())
        body = clean_markdown(section[body_start:]) if body_start != -1 else ""
        if len(body) < MIN_PAGE_LENGTH:
            logger.warning(f"Skipping '{title}' from {origin}: content too short ({len(body)} chars)")
            continue

        pages.append(DocPage(url=url, path=urlparse(url).path, title=title, content=body))

    logger.info(f"Parsed {len(pages)} pages from {origin}")
    return pages
