"""Result fusion strategies."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from ..models.document import BM25Result, Chunk, FusedResult, RetrievalResult

logger = logging.getLogger(__name__)

DEFAULT_RRF_K = 60
DEFAULT_SEMANTIC_WEIGHT = 0.7
DEFAULT_KEYWORD_WEIGHT = 0.3


@dataclass
class _Accumulator:
    semantic_rank: Optional[int] = None
    semantic_score: Optional[float] = None
    keyword_rank: Optional[int] = None
    keyword_score: Optional[float] = None
    fused_score: float = 0.0


def reciprocal_rank_fusion(
    semantic_results: Sequence[RetrievalResult],
    keyword_results: Sequence[BM25Result],
    chunks: Mapping[str, Chunk],
    k: int = DEFAULT_RRF_K,
) -> list[FusedResult]:
    """Combine ranked lists with RRF(d) = sum over lists of 1 / (k + rank(d)).

    Only ranks matter, so the two lists need no score calibration.

    Args:
        semantic_results: Semantic hits, best first.
        keyword_results: BM25 hits, best first.
        chunks: Chunk data for ids not carried by the semantic hits.
        k: Rank damping constant; larger k flattens the contribution curve.

    Returns:
        Fused results by descending fused score.
    """
    acc: dict[str, _Accumulator] = {}

    for rank, result in enumerate(semantic_results, start=1):
        entry = acc.setdefault(result.chunk_id, _Accumulator())
        entry.semantic_rank = rank
        entry.semantic_score = result.score
        entry.fused_score += 1 / (k + rank)

    for rank, result in enumerate(keyword_results, start=1):
        entry = acc.setdefault(result.chunk_id, _Accumulator())
        entry.keyword_rank = rank
        entry.keyword_score = result.score
        entry.fused_score += 1 / (k + rank)

    return _materialize(acc, semantic_results, chunks)


def weighted_score_fusion(
    semantic_results: Sequence[RetrievalResult],
    keyword_results: Sequence[BM25Result],
    chunks: Mapping[str, Chunk],
    semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    keyword_weight: float = DEFAULT_KEYWORD_WEIGHT,
) -> list[FusedResult]:
    """Blend min-max normalized scores: w_s * sem_norm + w_k * kw_norm.

    Reported per-side scores are the normalized ones.
    """
    acc: dict[str, _Accumulator] = {}

    semantic_norm = normalize_scores([(r.chunk_id, r.score) for r in semantic_results])
    keyword_norm = normalize_scores([(r.chunk_id, r.score) for r in keyword_results])

    for rank, (chunk_id, score) in enumerate(semantic_norm, start=1):
        entry = acc.setdefault(chunk_id, _Accumulator())
        entry.semantic_rank = rank
        entry.semantic_score = score
        entry.fused_score += score * semantic_weight

    for rank, (chunk_id, score) in enumerate(keyword_norm, start=1):
        entry = acc.setdefault(chunk_id, _Accumulator())
        entry.keyword_rank = rank
        entry.keyword_score = score
        entry.fused_score += score * keyword_weight

    return _materialize(acc, semantic_results, chunks)


def single_source_results(
    semantic_results: Sequence[RetrievalResult],
    keyword_results: Sequence[BM25Result],
    chunks: Mapping[str, Chunk],
) -> list[FusedResult]:
    """Wrap whichever single list is non-empty, keeping its raw scores.

    Used when only one retriever ran or produced hits.
    """
    acc: dict[str, _Accumulator] = {}
    if semantic_results:
        for rank, result in enumerate(semantic_results, start=1):
            acc[result.chunk_id] = _Accumulator(
                semantic_rank=rank, semantic_score=result.score, fused_score=result.score
            )
    else:
        for rank, result in enumerate(keyword_results, start=1):
            acc[result.chunk_id] = _Accumulator(
                keyword_rank=rank, keyword_score=result.score, fused_score=result.score
            )
    return _materialize(acc, semantic_results, chunks)


def normalize_scores(results: Sequence[tuple[str, float]]) -> list[tuple[str, float]]:
    """Min-max normalize to [0, 1]. One result, or zero range, maps to 1.0."""
    if not results:
        return []
    if len(results) == 1:
        return [(results[0][0], 1.0)]

    scores = [score for _, score in results]
    low, high = min(scores), max(scores)
    spread = high - low
    if spread == 0:
        return [(chunk_id, 1.0) for chunk_id, _ in results]
    return [(chunk_id, (score - low) / spread) for chunk_id, score in results]


def _materialize(
    acc: dict[str, _Accumulator],
    semantic_results: Sequence[RetrievalResult],
    chunks: Mapping[str, Chunk],
) -> list[FusedResult]:
    semantic_chunks = {r.chunk_id: r.chunk for r in semantic_results}

    results = []
    for chunk_id, entry in acc.items():
        chunk = semantic_chunks.get(chunk_id) or chunks.get(chunk_id)
        if chunk is None:
            # Every id should resolve; a miss means the stores are out of sync
            logger.warning(f"Fusion dropped chunk {chunk_id}: no chunk data found")
            continue

        results.append(
            FusedResult(
                id=chunk_id,
                chunk=chunk.without_vector(),
                semantic_rank=entry.semantic_rank,
                semantic_score=entry.semantic_score,
                keyword_rank=entry.keyword_rank,
                keyword_score=entry.keyword_score,
                fused_score=entry.fused_score,
            )
        )

    # Stable: equal fused scores keep insertion order
    results.sort(key=lambda r: r.fused_score, reverse=True)
    return results


class FusionStrategy(ABC):
    """Base class for fusion strategies."""

    name: str = ""

    @abstractmethod
    def fuse(
        self,
        semantic_results: Sequence[RetrievalResult],
        keyword_results: Sequence[BM25Result],
        chunks: Mapping[str, Chunk],
    ) -> list[FusedResult]:
        """Merge two ranked lists into one."""
        ...


class ReciprocalRankFusion(FusionStrategy):
    """Rank-only fusion, the default."""

    name = "rrf"

    def __init__(self, k: int = DEFAULT_RRF_K):
        self._k = k

    def fuse(self, semantic_results, keyword_results, chunks):
        return reciprocal_rank_fusion(semantic_results, keyword_results, chunks, self._k)


class WeightedScoreFusion(FusionStrategy):
    """Score blending for when both retrievers produce calibrated scores."""

    name = "weighted"

    def __init__(
        self,
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
        keyword_weight: float = DEFAULT_KEYWORD_WEIGHT,
    ):
        self._semantic_weight = semantic_weight
        self._keyword_weight = keyword_weight

    def fuse(self, semantic_results, keyword_results, chunks):
        return weighted_score_fusion(
            semantic_results,
            keyword_results,
            chunks,
            self._semantic_weight,
            self._keyword_weight,
        )


def create_fusion_strategy(
    method: str,
    rrf_k: int = DEFAULT_RRF_K,
    semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    keyword_weight: float = DEFAULT_KEYWORD_WEIGHT,
) -> FusionStrategy:
    """Build a strategy from its config name (``rrf`` or ``weighted``)."""
    if method == ReciprocalRankFusion.name:
        return ReciprocalRankFusion(rrf_k)
    if method == WeightedScoreFusion.name:
        return WeightedScoreFusion(semantic_weight, keyword_weight)
    raise ValueError(f"Unknown fusion method: {method}")
