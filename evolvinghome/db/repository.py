"""
Repository pattern for database access.

Maps core records to Supabase rows (tables ``homes``, ``improvements``,
``score_history``) and exposes them through the ``HomeStore`` contract.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..core.errors import UpstreamUnavailable
from ..core.models import HomeRecord, Improvement, ScoreHistoryEntry
from .client import SupabaseClient, get_client

logger = logging.getLogger(__name__)


class HomeRepository:
    """Repository for home records."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_client()

    def create(self, home: HomeRecord) -> HomeRecord:
        """Create a new home record."""
        result = self._client.insert_home(_without_empty_id(home.to_dict()))
        if not result:
            raise UpstreamUnavailable("Home insert returned no row", service="supabase")
        return HomeRecord.from_dict(result)

    def get(self, home_id: str) -> Optional[HomeRecord]:
        """Get home by ID."""
        result = self._client.get_home(home_id)
        return HomeRecord.from_dict(result) if result else None

    def update_score(self, home_id: str, score: int, updated_at: datetime) -> None:
        self._client.update_home(home_id, {"score": score, "score_updated_at": updated_at.isoformat()})


class ImprovementRepository:
    """Repository for logged improvements (insert and read only)."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_client()

    def create(self, improvement: Improvement) -> Improvement:
        result = self._client.insert_improvement(_without_empty_id(improvement.to_dict()))
        if not result:
            raise UpstreamUnavailable("Improvement insert returned no row", service="supabase")
        return Improvement.from_dict(result)

    def for_home(self, home_id: str) -> List[Improvement]:
        return [Improvement.from_dict(r) for r in self._client.get_improvements(home_id)]


class ScoreHistoryRepository:
    """Repository for the append-only score history."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_client()

    def append(self, entry: ScoreHistoryEntry) -> ScoreHistoryEntry:
        result = self._client.insert_history(_without_empty_id(entry.to_dict()))
        if not result:
            raise UpstreamUnavailable("History insert returned no row", service="supabase")
        return ScoreHistoryEntry.from_dict(result)

    def for_home(self, home_id: str) -> List[ScoreHistoryEntry]:
        return [ScoreHistoryEntry.from_dict(r) for r in self._client.get_history(home_id)]


class SupabaseStore:
    """
    HomeStore backed by Supabase.

    Usage:
        store = SupabaseStore()
        service = HomeScoreService(store)
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        client = client or get_client()
        self.homes = HomeRepository(client)
        self.improvements = ImprovementRepository(client)
        self.history = ScoreHistoryRepository(client)

    def create_home(self, home: HomeRecord) -> HomeRecord:
        return self.homes.create(home)

    def get_home(self, home_id: str) -> Optional[HomeRecord]:
        return self.homes.get(home_id)

    def update_score(self, home_id: str, score: int, updated_at: datetime) -> None:
        self.homes.update_score(home_id, score, updated_at)

    def add_improvement(self, improvement: Improvement) -> Improvement:
        return self.improvements.create(improvement)

    def list_improvements(self, home_id: str) -> List[Improvement]:
        return self.improvements.for_home(home_id)

    def append_history(self, entry: ScoreHistoryEntry) -> ScoreHistoryEntry:
        return self.history.append(entry)

    def list_history(self, home_id: str) -> List[ScoreHistoryEntry]:
        return self.history.for_home(home_id)


def _without_empty_id(data: dict) -> dict:
    """Let the database assign ids for new rows."""
    if data.get("id") is None:
        data = {k: v for k, v in data.items() if k != "id"}
    return data
