"""Fusion strategies."""
from .fusion import (
    FusionStrategy,
    ReciprocalRankFusion,
    WeightedScoreFusion,
    create_fusion_strategy,
    reciprocal_rank_fusion,
    weighted_score_fusion,
)

__all__ = [
    "FusionStrategy",
    "ReciprocalRankFusion",
    "WeightedScoreFusion",
    "create_fusion_strategy",
    "reciprocal_rank_fusion",
    "weighted_score_fusion",
]
