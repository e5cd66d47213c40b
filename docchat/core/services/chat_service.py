"""Chat service - coordinates retrieval, answer generation and query logging."""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional

from ..errors import InvalidQueryError
from ..models.observability import FeedbackEntry, FeedbackRating, QueryLog, generate_query_id
from ..models.query import RetrievalStrategy
from ..models.retrieval import Passage, RetrievalOutcome
from ..protocols.llm import LLMProtocol
from ..protocols.query_log import QueryLogProtocol
from .search_service import AUTO_STRATEGY, SearchService

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = (
    "I couldn't find relevant documentation excerpts for that question. "
    "Try rephrasing or search the docs."
)
MAX_PASSAGE_CHARS = 1200
MAX_COMMENT_LENGTH = 1000


def format_context(passages: list[Passage]) -> str:
    """Format passages as context for LLM."""
    return "\n\n---\n\n".join(
        f"[{p.title}]({p.url})\n{p.content[:MAX_PASSAGE_CHARS]}" for p in passages
    )


class ChatService:
    """Answers one question per call; holds no per-conversation state."""

    def __init__(
        self,
        llm: LLMProtocol,
        search_service: SearchService,
        query_log: Optional[QueryLogProtocol] = None,
        max_message_length: int = 2000,
    ):
        """Initialize chat service.

        Args:
            llm: LLM client.
            search_service: Retrieval pipeline.
            query_log: Optional best-effort query log.
            max_message_length: Longest accepted message, in characters.
        """
        self._llm = llm
        self._search = search_service
        self._query_log = query_log
        self._max_message_length = max_message_length
        self._pending_logs: set[asyncio.Future] = set()

    def validate_message(self, message: object) -> str:
        """Return the trimmed message or raise :class:`InvalidQueryError`."""
        if not isinstance(message, str) or not message.strip():
            raise InvalidQueryError("message required")
        trimmed = message.strip()
        if len(trimmed) > self._max_message_length:
            raise InvalidQueryError(
                f"Message too long (max {self._max_message_length} characters)"
            )
        return trimmed

    async def process_message(
        self,
        user_message: str,
        strategy: str | RetrievalStrategy = AUTO_STRATEGY,
        model: Optional[str] = None,
    ) -> AsyncIterator[tuple[str, Optional[RetrievalOutcome]]]:
        """Retrieve passages and stream an answer.

        Flow:
            1. Validate input (before any retrieval work)
            2. Run the retrieval pipeline
            3. No passages: yield the fixed no-results message
            4. Otherwise stream the LLM answer, grounded or broad per confidence

        Args:
            user_message: User's question.
            strategy: ``auto`` or a forced retrieval strategy.
            model: Override the configured chat model.

        Yields:
            ``(token, outcome)``; outcome is only set on the first yield.
        """
        message = self.validate_message(user_message)
        query_id = generate_query_id()
        started = time.monotonic()
        timestamp = time.time()

        outcome = await asyncio.to_thread(self._search.search, message, strategy)

        if outcome.is_empty:
            logger.info(f"No results for '{message[:50]}...', replying with no-results message")
            self._log_query(query_id, timestamp, started, outcome, model, success=False,
                            error="No results found")
            yield ("", outcome)
            yield (NO_RESULTS_MESSAGE, None)
            return

        if outcome.low_confidence:
            logger.info(
                f"Low confidence ({outcome.gate_source.value}={outcome.gate_score:.2f}) "
                f"for '{message[:50]}...', using broad answer mode"
            )

        yield ("", outcome)

        async for token in self._llm.chat_stream(
            user_message=message,
            context=format_context(outcome.passages),
            grounded=not outcome.low_confidence,
            model=model,
        ):
            yield (token, None)

        self._log_query(query_id, timestamp, started, outcome, model, success=True)

    def record_feedback(
        self, query_id: str, rating: str, comment: Optional[str] = None
    ) -> FeedbackEntry:
        """Validate and store user feedback for an answered query."""
        if not query_id or not query_id.strip():
            raise InvalidQueryError("queryId is required")
        try:
            parsed = FeedbackRating(rating)
        except ValueError:
            allowed = ", ".join(r.value for r in FeedbackRating)
            raise InvalidQueryError(f"rating must be one of: {allowed}")

        comment = comment.strip() if comment else None
        if comment and len(comment) > MAX_COMMENT_LENGTH:
            raise InvalidQueryError(f"comment must be {MAX_COMMENT_LENGTH} characters or less")

        entry = FeedbackEntry(query_id=query_id.strip(), rating=parsed, comment=comment or None)
        if self._query_log is not None:
            try:
                self._query_log.record_feedback(entry)
            except Exception as e:
                logger.warning(f"Failed to record feedback: {e}")
        return entry

    def _log_query(
        self,
        query_id: str,
        timestamp: float,
        started: float,
        outcome: RetrievalOutcome,
        model: Optional[str],
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Schedule a query log write without waiting for it."""
        if self._query_log is None:
            return

        log = QueryLog(
            id=query_id,
            timestamp=timestamp,
            query=outcome.query.original,
            intent=outcome.query.intent.value,
            strategy=outcome.strategy.value,
            retrieval_ms=outcome.retrieval_ms,
            rerank_ms=outcome.rerank_ms,
            total_ms=(time.monotonic() - started) * 1000,
            result_count=len(outcome.passages),
            top_chunk_ids=[p.id for p in outcome.passages[:5]],
            top_scores=outcome.top_scores[:5],
            confidence=outcome.confidence.value,
            rerank_status=outcome.rerank_status.value,
            model=model or "",
            success=success,
            error_message=error,
        )

        future = asyncio.get_running_loop().run_in_executor(None, self._write_log, log)
        self._pending_logs.add(future)
        future.add_done_callback(self._pending_logs.discard)

    def _write_log(self, log: QueryLog) -> None:
        try:
            self._query_log.log_query(log)
        except Exception as e:
            logger.warning(f"Failed to log query {log.id}: {e}")

    async def drain_logs(self) -> None:
        """Wait for scheduled log writes (used on shutdown and in tests)."""
        if self._pending_logs:
            await asyncio.gather(*list(self._pending_logs), return_exceptions=True)
