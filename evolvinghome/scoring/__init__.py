"""
EvolvingHome Scoring Module

Deterministic 0-100 home energy score and the side effects around it.
"""

from .engine import (
    SCORE_MAX,
    SCORE_MIN,
    ScoreDecision,
    category_delta,
    compute_score,
    decide_recalculation,
    distinct_categories,
    parse_category,
)
from .service import MANUAL_TRIGGER, HomeScoreService

__all__ = [
    "SCORE_MAX",
    "SCORE_MIN",
    "ScoreDecision",
    "category_delta",
    "compute_score",
    "decide_recalculation",
    "distinct_categories",
    "parse_category",
    "MANUAL_TRIGGER",
    "HomeScoreService",
]
