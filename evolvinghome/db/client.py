"""
Supabase client for EvolvingHome.

Transport failures (httpx) and PostgREST errors from any query surface as
``UpstreamUnavailable(service="supabase")``.
"""

import logging
import os
from functools import lru_cache
from typing import List, Optional

import httpx
from dotenv import load_dotenv
from postgrest.exceptions import APIError
from supabase import Client, create_client

from ..core.config import get_settings
from ..core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


class SupabaseClient:
    """Wrapper for the Supabase client with lazy initialization."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        self._url = url
        self._key = key
        self._client = client

    @property
    def client(self) -> Client:
        """Get or create Supabase client."""
        if self._client is None:
            url = self._url or os.getenv("SUPABASE_URL")
            key = self._key or os.getenv("SUPABASE_KEY")

            if not url or not key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_KEY must be set in environment"
                )

            self._client = create_client(url, key)
        return self._client

    @staticmethod
    def _execute(query, action: str):
        try:
            return query.execute()
        except (httpx.HTTPError, APIError) as e:
            logger.warning(f"Supabase {action} failed: {e}")
            raise UpstreamUnavailable(f"Supabase {action} failed: {e}", service="supabase") from e

    # ============================================
    # Homes
    # ============================================

    def insert_home(self, data: dict) -> Optional[dict]:
        """Insert a new home record."""
        result = self._execute(self.client.table("homes").insert(data), "insert into homes")
        return result.data[0] if result.data else None

    def get_home(self, home_id: str) -> Optional[dict]:
        """Get home by ID."""
        result = self._execute(
            self.client.table("homes")
            .select("*")
            .eq("id", home_id),
            "select from homes",
        )
        return result.data[0] if result.data else None

    def update_home(self, home_id: str, data: dict) -> Optional[dict]:
        """Update mutable home columns (score, score_updated_at)."""
        result = self._execute(
            self.client.table("homes")
            .update(data)
            .eq("id", home_id),
            "update of homes",
        )
        return result.data[0] if result.data else None

    # ============================================
    # Improvements
    # ============================================

    def insert_improvement(self, data: dict) -> Optional[dict]:
        """Insert an improvement. Improvements are never updated."""
        result = self._execute(self.client.table("improvements").insert(data), "insert into improvements")
        return result.data[0] if result.data else None

    def get_improvements(self, home_id: str) -> List[dict]:
        """All improvements logged for a home."""
        result = self._execute(
            self.client.table("improvements")
            .select("*")
            .eq("home_id", home_id),
            "select from improvements",
        )
        return result.data or []

    # ============================================
    # Score History (append-only)
    # ============================================

    def insert_history(self, data: dict) -> Optional[dict]:
        """Append a score history entry."""
        result = self._execute(self.client.table("score_history").insert(data), "insert into score_history")
        return result.data[0] if result.data else None

    def get_history(self, home_id: str) -> List[dict]:
        """History entries for a home, oldest first."""
        result = self._execute(
            self.client.table("score_history")
            .select("*")
            .eq("home_id", home_id)
            .order("created_at"),
            "select from score_history",
        )
        return result.data or []


@lru_cache(maxsize=1)
def get_client() -> SupabaseClient:
    """Get the process-wide Supabase client."""
    settings = get_settings()
    return SupabaseClient(url=settings.supabase_url, key=settings.supabase_key)
