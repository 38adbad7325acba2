"""
Home score lifecycle.

Owns the side effects around the pure score engine:
- claim_home: initial score + ``initial_claim`` history entry
- log_improvement: immutable Improvement with before/after scores,
  followed by a recalculation recorded under the improvement's category
- recalculate: persist the score and append a ``recalculation`` entry
  only when the score actually changed

History timestamps are strictly increasing per home, even when the clock
does not advance between two writes. Writes for one home are serialised
per service instance.
"""

import logging
import threading
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple, Union

from ..core.config import Settings, get_settings
from ..core.errors import NotFound, ValidationError
from ..core.models import HomeRecord, Improvement, ImprovementCategory, ScoreHistoryEntry, ScoreReason
from ..db.store import HomeStore
from .engine import parse_category, compute_score, decide_recalculation

logger = logging.getLogger(__name__)

MANUAL_TRIGGER = "manual_recalc"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HomeScoreService:
    """
    Score side effects for claimed homes.

    Usage:
        service = HomeScoreService(InMemoryStore())
        home = service.claim_home(HomeRecord(address="1 High St", postcode="TV1 2AB",
                                             baseline_efficiency=62))
        service.log_improvement(home.id, ImprovementCategory.HEAT_PUMP, title="Air source heat pump")
        score, updated = service.recalculate(home.id)
    """

    def __init__(
        self,
        store: HomeStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def claim_home(self, home: HomeRecord) -> HomeRecord:
        """
        Store a newly claimed home with its initial score.

        Raises:
            ValidationError: Missing or out-of-range baseline efficiency
        """
        score = compute_score(home, [], self.settings)
        home.score = score
        home.score_updated_at = None
        created = self.store.create_home(home)

        entry = self._append(
            created.id,
            score,
            ScoreReason.INITIAL_CLAIM.value,
            {"baseline_efficiency": created.baseline_efficiency},
        )
        self.store.update_score(created.id, score, entry.created_at)
        created.score_updated_at = entry.created_at

        logger.info(f"Claimed home {created.id} with score {score}", extra={"home_id": created.id})
        return created

    def log_improvement(
        self,
        home_id: str,
        category: Union[ImprovementCategory, str],
        title: str = "",
        logged_by: Optional[str] = None,
        cost: Optional[float] = None,
        grant_applied: bool = False,
        grant_amount: Optional[float] = None,
        estimated_annual_savings: Optional[float] = None,
        completed_at: Optional[date] = None,
        auto_recalculate: bool = True,
    ) -> Improvement:
        """
        Log an improvement for a home.

        ``before_score`` is the stored score at logging time and
        ``after_score`` the engine output with this improvement applied.
        With ``auto_recalculate`` the home is recalculated straight away and
        any change is recorded under the improvement's category, with the
        improvement id and its before/after scores in the details.

        Raises:
            NotFound: Unknown home
            ValidationError: Unknown category or negative cost
        """
        home = self._get_home(home_id)
        category = parse_category(category)
        for name, value in (("cost", cost), ("grant_amount", grant_amount)):
            if value is not None and value < 0:
                raise ValidationError(f"{name} cannot be negative: {value}", field=name)

        existing = self.store.list_improvements(home_id)
        after_score = compute_score(home, [*existing, category], self.settings)

        improvement = self.store.add_improvement(
            Improvement(
                home_id=home_id,
                category=category,
                title=title or category.value.replace("_", " ").title(),
                logged_by=logged_by,
                cost=cost,
                grant_applied=grant_applied,
                grant_amount=grant_amount,
                estimated_annual_savings=estimated_annual_savings,
                before_score=home.score,
                after_score=after_score,
                completed_at=completed_at or self._clock().date(),
            )
        )
        logger.info(
            f"Logged {category.value} for home {home_id}: {home.score} -> {after_score}",
            extra={"home_id": home_id, "category": category.value},
        )

        if auto_recalculate:
            self._recalculate(
                home_id,
                trigger=category.value,
                reason=category.value,
                details={
                    "improvement_id": improvement.id,
                    "score_before": improvement.before_score,
                    "score_after": improvement.after_score,
                },
            )
        return improvement

    def recalculate(self, home_id: str, trigger: str = MANUAL_TRIGGER) -> Tuple[int, bool]:
        """
        Recompute a home's score.

        Returns:
            (score, updated). When the score is unchanged nothing is written.

        Raises:
            NotFound: Unknown home
            ValidationError: Stored baseline is missing or out of range
        """
        return self._recalculate(home_id, trigger)

    def history(self, home_id: str) -> list:
        """Score history for a home, oldest first."""
        self._get_home(home_id)
        return self.store.list_history(home_id)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _get_home(self, home_id: str) -> HomeRecord:
        home = self.store.get_home(home_id)
        if home is None:
            raise NotFound(f"Home not found: {home_id}")
        return home

    def _lock_for(self, home_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks.setdefault(home_id, threading.RLock())

    def _recalculate(
        self,
        home_id: str,
        trigger: str,
        reason: str = ScoreReason.RECALCULATION.value,
        details: Optional[dict] = None,
    ) -> Tuple[int, bool]:
        with self._lock_for(home_id):
            home = self._get_home(home_id)
            improvements = self.store.list_improvements(home_id)
            decision = decide_recalculation(home, improvements, trigger, self.settings)

            if not decision.changed:
                logger.debug(f"Score for home {home_id} unchanged at {decision.new_score}",
                             extra={"home_id": home_id})
                return decision.new_score, False

            entry = self._append(
                home_id,
                decision.new_score,
                reason,
                {**decision.history_details(), **(details or {})},
            )
            self.store.update_score(home_id, decision.new_score, entry.created_at)

        logger.info(
            f"Score for home {home_id}: {decision.old_score} -> {decision.new_score} ({trigger})",
            extra={"home_id": home_id},
        )
        return decision.new_score, True

    def _append(self, home_id: str, score: int, reason: str, details: Optional[dict]) -> ScoreHistoryEntry:
        # reading the last timestamp and appending must not interleave
        with self._lock_for(home_id):
            now = self._clock()
            history = self.store.list_history(home_id)
            if history and history[-1].created_at and now <= history[-1].created_at:
                now = history[-1].created_at + timedelta(microseconds=1)

            return self.store.append_history(
                ScoreHistoryEntry(home_id=home_id, score=score, reason=reason, created_at=now, details=details)
            )
