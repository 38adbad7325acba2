"""
Database module for EvolvingHome.

Persistent-store contract for homes, improvements and the append-only
score history, with Supabase and in-memory implementations.
"""

from .client import get_client, SupabaseClient
from .store import HomeStore, InMemoryStore
from .repository import (
    HomeRepository,
    ImprovementRepository,
    ScoreHistoryRepository,
    SupabaseStore,
)

__all__ = [
    "get_client",
    "SupabaseClient",
    "HomeStore",
    "InMemoryStore",
    "HomeRepository",
    "ImprovementRepository",
    "ScoreHistoryRepository",
    "SupabaseStore",
]
