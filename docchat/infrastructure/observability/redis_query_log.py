"""Query logging, feedback collection and coverage analytics on Redis."""

import hashlib
import json
import logging
from datetime import date, datetime
from typing import Optional

import redis

from docchat.core.models.observability import CoverageGap, FeedbackEntry, QueryLog

logger = logging.getLogger(__name__)

QUERY_KEY = "obs:query:"
FEEDBACK_KEY = "obs:feedback:"
STATS_DAILY_KEY = "obs:stats:daily:"
COVERAGE_GAPS_KEY = "obs:gaps"

QUERY_LOG_TTL = 60 * 60 * 24 * 30
STATS_TTL = 60 * 60 * 24 * 90
LOW_SCORE_THRESHOLD = 0.5


def date_key(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")


def _query_hash(query: str) -> str:
    return hashlib.sha1(query.encode("utf-8")).hexdigest()[:12]


class RedisQueryLogService:
    """Best-effort query log. Every method logs and swallows its own failures."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    def log_query(self, log: QueryLog) -> None:
        """Store a query log, bump daily counters and track weak results."""
        try:
            self._redis.set(f"{QUERY_KEY}{log.id}", json.dumps(log.to_dict()), ex=QUERY_LOG_TTL)
            self._update_daily_stats(log)
            if log.result_count == 0 or (log.top_scores and log.top_scores[0] < LOW_SCORE_THRESHOLD):
                self._track_coverage_gap(log)
        except redis.RedisError as e:
            logger.error(f"Failed to log query {log.id}: {e}")

    def record_feedback(self, feedback: FeedbackEntry) -> None:
        try:
            self._redis.set(
                f"{FEEDBACK_KEY}{feedback.query_id}",
                json.dumps(feedback.to_dict()),
                ex=QUERY_LOG_TTL,
            )
            stats_key = f"{STATS_DAILY_KEY}{date_key(feedback.timestamp)}"
            self._redis.hincrby(stats_key, f"feedback:{feedback.rating.value}", 1)
            self._redis.expire(stats_key, STATS_TTL)
        except redis.RedisError as e:
            logger.error(f"Failed to record feedback for {feedback.query_id}: {e}")

    def get_query_log(self, query_id: str) -> Optional[dict]:
        try:
            data = self._redis.get(f"{QUERY_KEY}{query_id}")
        except redis.RedisError as e:
            logger.error(f"Failed to read query log {query_id}: {e}")
            return None
        return json.loads(data) if data else None

    def get_daily_stats(self, day: Optional[date] = None) -> dict[str, int]:
        """Counters for one day: total, success, failed, strategy:*, intent:*, feedback:*."""
        day = day or date.today()
        try:
            raw = self._redis.hgetall(f"{STATS_DAILY_KEY}{day.isoformat()}")
        except redis.RedisError as e:
            logger.error(f"Failed to read daily stats for {day}: {e}")
            return {}
        return {field: int(value) for field, value in raw.items()}

    def get_coverage_gaps(self, limit: int = 20) -> list[CoverageGap]:
        """Queries that most often returned no or weak results."""
        try:
            entries = self._redis.zrevrange(COVERAGE_GAPS_KEY, 0, limit - 1, withscores=True)
            gaps = []
            for query, count in entries:
                meta = self._redis.hgetall(f"{COVERAGE_GAPS_KEY}:meta:{_query_hash(query)}")
                gaps.append(
                    CoverageGap(
                        query=query,
                        count=int(count),
                        last_seen=float(meta.get("last_seen", 0)),
                        avg_score=float(meta.get("avg_score", 0)),
                    )
                )
            return gaps
        except redis.RedisError as e:
            logger.error(f"Failed to read coverage gaps: {e}")
            return []

    def _update_daily_stats(self, log: QueryLog) -> None:
        stats_key = f"{STATS_DAILY_KEY}{date_key(log.timestamp)}"
        pipe = self._redis.pipeline()
        pipe.hincrby(stats_key, "total", 1)
        pipe.hincrby(stats_key, "success" if log.success else "failed", 1)
        pipe.hincrby(stats_key, f"strategy:{log.strategy}", 1)
        pipe.hincrby(stats_key, f"intent:{log.intent}", 1)
        pipe.expire(stats_key, STATS_TTL)
        pipe.execute()

    def _track_coverage_gap(self, log: QueryLog) -> None:
        normalized = log.query.lower().strip()
        meta_key = f"{COVERAGE_GAPS_KEY}:meta:{_query_hash(normalized)}"

        self._redis.zincrby(COVERAGE_GAPS_KEY, 1, normalized)

        meta = self._redis.hgetall(meta_key)
        current_avg = float(meta.get("avg_score", 0))
        current_count = int(meta.get("count", 0))
        top_score = log.top_scores[0] if log.top_scores else 0.0
        new_avg = (current_avg * current_count + top_score) / (current_count + 1)

        self._redis.hset(
            meta_key,
            mapping={
                "last_seen": str(log.timestamp),
                "avg_score": str(new_avg),
                "count": str(current_count + 1),
            },
        )
        self._redis.expire(meta_key, STATS_TTL)
