"""Sliding-window chunker for documentation pages."""

import hashlib
import logging

from ..models.document import Chunk, DocPage

logger = logging.getLogger(__name__)

# Preferred window endings, best first
BREAK_POINTS = (". ", ".\n", "\n\n", "\n", " ")
MIN_CHUNK_LENGTH = 50


def generate_chunk_id(url: str, index: int) -> str:
    """Deterministic id so re-indexing identical content yields identical ids."""
    return hashlib.sha256(f"{url}:{index}".encode("utf-8")).hexdigest()[:16]


class Chunker:
    """Split pages into overlapping chunks sized for embedding."""

    def __init__(self, chunk_size: int = 1000, overlap: int = 200):
        """Initialize chunker.

        Args:
            chunk_size: Target chunk size in characters.
            overlap: Characters shared by consecutive windows.
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size // 2:
            raise ValueError("overlap must be non-negative and below half of chunk_size")
        self._chunk_size = chunk_size
        self._overlap = overlap

    def chunk(self, page: DocPage) -> list[Chunk]:
        """Split one page.

        Pages no longer than ``chunk_size`` become one chunk. Longer pages are
        cut with a sliding window that prefers sentence or paragraph ends.

        Args:
            page: Page to split.

        Returns:
            Chunks in page order.
        """
        content = page.content
        if len(content) <= self._chunk_size:
            return [self._make_chunk(page, content, 0)]

        chunks: list[Chunk] = []
        start = 0
        while start < len(content):
            end = self._window_end(content, start)

            text = content[start:end].strip()
            if len(text) >= MIN_CHUNK_LENGTH:
                chunks.append(self._make_chunk(page, text, len(chunks)))

            if end >= len(content):
                break
            start = end - self._overlap

        logger.debug(f"Chunked '{page.title}' into {len(chunks)} chunks")
        return chunks

    def chunk_all(self, pages: list[DocPage]) -> list[Chunk]:
        chunks: list[Chunk] = []
        for page in pages:
            chunks.extend(self.chunk(page))
        return chunks

    def _window_end(self, content: str, start: int) -> int:
        end = min(start + self._chunk_size, len(content))
        if end == len(content):
            return end

        min_end = start + self._chunk_size // 2
        for bp in BREAK_POINTS:
            pos = content.rfind(bp, start, end)
            # A break too close to the start would produce a tiny window
            if pos != -1 and pos > min_end:
                return pos + len(bp)
        return end

    @staticmethod
    def _make_chunk(page: DocPage, text: str, index: int) -> Chunk:
        title = page.title if index == 0 else f"{page.title} (Part {index + 1})"
        return Chunk(
            id=generate_chunk_id(page.url, index),
            path=page.path,
            title=title,
            content=text,
            url=page.url,
        )
