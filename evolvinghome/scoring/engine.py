"""
Score Engine

Computes a home's 0-100 energy score from its EPC baseline and the set of
improvement categories it has logged. Pure and deterministic: no clock, no
I/O, and the order of the improvement list never matters.

    score = clamp(baseline + Σ delta(category) for each distinct category, 0, 100)

Each category counts once, however many improvements of that category
exist, so repeated logs cannot inflate the score.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Set, Union

from ..core.config import Settings, get_settings
from ..core.errors import InvariantViolation, ValidationError
from ..core.models import HomeRecord, Improvement, ImprovementCategory
from ..utils.validation import validate_efficiency

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100

ImprovementLike = Union[Improvement, ImprovementCategory, str]


def compute_score(
    home: Union[HomeRecord, float, int, None],
    improvements: Optional[Iterable[ImprovementLike]] = None,
    settings: Optional[Settings] = None,
) -> int:
    """
    Compute the energy score for a home.

    Args:
        home: HomeRecord, or its baseline efficiency directly
        improvements: Improvements (or bare categories); None means none
        settings: Source of the per-category deltas

    Returns:
        Integer score in [0, 100]

    Raises:
        ValidationError: Baseline missing or outside [0, 100], or an
            unknown improvement category
    """
    settings = settings or get_settings()
    baseline = home.baseline_efficiency if isinstance(home, HomeRecord) else home
    baseline = validate_efficiency(baseline)

    categories = distinct_categories(improvements)
    raw = baseline + sum(category_delta(c, settings) for c in categories)
    score = int(round(min(max(raw, SCORE_MIN), SCORE_MAX)))

    if not SCORE_MIN <= score <= SCORE_MAX:
        raise InvariantViolation(f"Score {score} outside [{SCORE_MIN}, {SCORE_MAX}]")
    return score


def distinct_categories(improvements: Optional[Iterable[ImprovementLike]]) -> Set[ImprovementCategory]:
    """The set of categories present in ``improvements``."""
    categories = set()
    for item in improvements or ():
        categories.add(parse_category(item))
    return categories


def category_delta(category: ImprovementCategory, settings: Optional[Settings] = None) -> float:
    """Points a category adds. Settings guarantee every category has a delta."""
    settings = settings or get_settings()
    return settings.score_deltas[category]


def parse_category(item: ImprovementLike) -> ImprovementCategory:
    if isinstance(item, Improvement):
        return item.category
    if isinstance(item, ImprovementCategory):
        return item
    try:
        return ImprovementCategory(str(item).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown improvement category: '{item}'",
            field="category",
            suggestions=[c.value for c in ImprovementCategory],
        )


@dataclass(frozen=True)
class ScoreDecision:
    """Result of comparing a freshly computed score with the stored one."""

    old_score: int
    new_score: int
    trigger: str

    @property
    def changed(self) -> bool:
        return self.new_score != self.old_score

    def history_details(self) -> Dict[str, Any]:
        return {"old_score": self.old_score, "trigger": self.trigger}


def decide_recalculation(
    home: HomeRecord,
    improvements: Optional[Iterable[ImprovementLike]],
    trigger: str,
    settings: Optional[Settings] = None,
) -> ScoreDecision:
    """
    Recompute the score and decide whether a recalculation must be recorded.

    The caller appends a history entry and persists the score only when
    ``decision.changed`` is true.
    """
    new_score = compute_score(home, improvements, settings)
    return ScoreDecision(old_score=int(home.score), new_score=new_score, trigger=trigger)
