"""
Persistent store contract and an in-memory implementation.

The core reads homes, appends improvements and score history, and updates
the mutable score column. Score history is append-only: the contract has
no method to update or delete an entry.
"""

import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from ..core.models import HomeRecord, Improvement, ScoreHistoryEntry


class HomeStore(Protocol):
    """Storage contract consumed by the score service."""

    def create_home(self, home: HomeRecord) -> HomeRecord:
        ...

    def get_home(self, home_id: str) -> Optional[HomeRecord]:
        ...

    def update_score(self, home_id: str, score: int, updated_at: datetime) -> None:
        ...

    def add_improvement(self, improvement: Improvement) -> Improvement:
        ...

    def list_improvements(self, home_id: str) -> List[Improvement]:
        ...

    def append_history(self, entry: ScoreHistoryEntry) -> ScoreHistoryEntry:
        ...

    def list_history(self, home_id: str) -> List[ScoreHistoryEntry]:
        """Entries for ``home_id``, oldest first."""
        ...


class InMemoryStore:
    """
    Thread-safe in-process store for tests and local runs.

    Concurrent score updates are last-write-wins; every history append is
    kept.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._homes: Dict[str, HomeRecord] = {}
        self._improvements: Dict[str, List[Improvement]] = {}
        self._history: Dict[str, List[ScoreHistoryEntry]] = {}

    def create_home(self, home: HomeRecord) -> HomeRecord:
        with self._lock:
            stored = replace(home, id=home.id or str(uuid.uuid4()))
            self._homes[stored.id] = stored
            return replace(stored)

    def get_home(self, home_id: str) -> Optional[HomeRecord]:
        with self._lock:
            home = self._homes.get(home_id)
            return replace(home) if home else None

    def update_score(self, home_id: str, score: int, updated_at: datetime) -> None:
        with self._lock:
            home = self._homes[home_id]
            home.score = score
            home.score_updated_at = updated_at

    def add_improvement(self, improvement: Improvement) -> Improvement:
        with self._lock:
            stored = replace(improvement, id=improvement.id or str(uuid.uuid4()))
            self._improvements.setdefault(stored.home_id, []).append(stored)
            return stored

    def list_improvements(self, home_id: str) -> List[Improvement]:
        with self._lock:
            return list(self._improvements.get(home_id, []))

    def append_history(self, entry: ScoreHistoryEntry) -> ScoreHistoryEntry:
        with self._lock:
            stored = replace(entry, id=entry.id or str(uuid.uuid4()))
            self._history.setdefault(stored.home_id, []).append(stored)
            return stored

    def list_history(self, home_id: str) -> List[ScoreHistoryEntry]:
        with self._lock:
            return sorted(self._history.get(home_id, []), key=lambda e: e.created_at)
