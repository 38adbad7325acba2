"""
Tests for the persistence layer.

Most tests run against a mocked Supabase client. ``TestLiveSupabase``
requires a live connection and is skipped unless SUPABASE_URL is set.

Run with: pytest tests/test_database.py -v
"""

import os
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from dotenv import load_dotenv
from postgrest.exceptions import APIError

from evolvinghome.core.errors import ErrorKind, UpstreamUnavailable, capture
from evolvinghome.core.models import (
    Coordinate,
    HomeRecord,
    Improvement,
    ImprovementCategory,
    PropertyType,
    ScoreHistoryEntry,
)
from evolvinghome.db import InMemoryStore, SupabaseClient, SupabaseStore
from evolvinghome.db.repository import _without_empty_id
from evolvinghome.scoring.service import HomeScoreService

load_dotenv()

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class DictSupabaseClient(SupabaseClient):
    """SupabaseClient whose tables are plain lists of row dicts."""

    def __init__(self):
        super().__init__(client=MagicMock())
        self.tables = {"homes": [], "improvements": [], "score_history": []}

    def _insert(self, table, data):
        row = dict(data, id=str(uuid.uuid4()))
        self.tables[table].append(row)
        return dict(row)

    def insert_home(self, data):
        return self._insert("homes", data)

    def get_home(self, home_id):
        return next((dict(r) for r in self.tables["homes"] if r["id"] == home_id), None)

    def update_home(self, home_id, data):
        for row in self.tables["homes"]:
            if row["id"] == home_id:
                row.update(data)
                return dict(row)
        return None

    def insert_improvement(self, data):
        return self._insert("improvements", data)

    def get_improvements(self, home_id):
        return [dict(r) for r in self.tables["improvements"] if r["home_id"] == home_id]

    def insert_history(self, data):
        return self._insert("score_history", data)

    def get_history(self, home_id):
        rows = [dict(r) for r in self.tables["score_history"] if r["home_id"] == home_id]
        return sorted(rows, key=lambda r: r["created_at"])


def _home(**overrides) -> HomeRecord:
    fields = dict(
        address="1 Test Villas",
        postcode="TV1 2AB",
        coordinate=Coordinate(51.5074, -0.1278),
        total_floor_area_m2=240.0,
        baseline_efficiency=62,
        property_type=PropertyType.SEMI_DETACHED,
    )
    fields.update(overrides)
    return HomeRecord(**fields)


class TestSupabaseClient:
    """Query construction against the supabase-py builder chain."""

    @pytest.fixture
    def raw(self):
        return MagicMock()

    @pytest.fixture
    def client(self, raw):
        return SupabaseClient(client=raw)

    def test_insert_home_returns_first_row(self, client, raw):
        raw.table.return_value.insert.return_value.execute.return_value.data = [{"id": "h1"}]

        assert client.insert_home({"address": "1 Test Villas"}) == {"id": "h1"}
        raw.table.assert_called_with("homes")
        raw.table.return_value.insert.assert_called_with({"address": "1 Test Villas"})

    def test_insert_returns_none_without_rows(self, client, raw):
        raw.table.return_value.insert.return_value.execute.return_value.data = []
        assert client.insert_improvement({"home_id": "h1"}) is None

    def test_get_home_filters_by_id(self, client, raw):
        chain = raw.table.return_value.select.return_value.eq
        chain.return_value.execute.return_value.data = [{"id": "h1"}]

        assert client.get_home("h1") == {"id": "h1"}
        chain.assert_called_with("id", "h1")

    def test_history_ordered_by_created_at(self, client, raw):
        eq = raw.table.return_value.select.return_value.eq.return_value
        eq.order.return_value.execute.return_value.data = None

        assert client.get_history("h1") == []
        raw.table.assert_called_with("score_history")
        eq.order.assert_called_with("created_at")

    def test_update_home(self, client, raw):
        update = raw.table.return_value.update
        update.return_value.eq.return_value.execute.return_value.data = [{"id": "h1", "score": 72}]

        assert client.update_home("h1", {"score": 72})["score"] == 72
        update.assert_called_with({"score": 72})

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)

        with pytest.raises(ValueError, match="SUPABASE_URL"):
            SupabaseClient().client

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
        APIError({"message": "relation does not exist", "code": "42P01"}),
    ])
    def test_query_failures_become_upstream_unavailable(self, client, raw, error):
        raw.table.return_value.select.return_value.eq.return_value.execute.side_effect = error

        with pytest.raises(UpstreamUnavailable) as exc_info:
            client.get_home("h1")
        assert exc_info.value.service == "supabase"
        assert exc_info.value.__cause__ is error

    def test_insert_failure(self, client, raw):
        raw.table.return_value.insert.return_value.execute.side_effect = httpx.ConnectError("down")
        with pytest.raises(UpstreamUnavailable, match="insert into score_history"):
            client.insert_history({"home_id": "h1", "score": 62})

    def test_outage_surfaces_as_outcome(self, raw, settings):
        raw.table.return_value.select.return_value.eq.return_value.execute.side_effect = httpx.ConnectError("down")
        service = HomeScoreService(SupabaseStore(SupabaseClient(client=raw)), settings)

        outcome = capture(service.recalculate, "h1")

        assert outcome.kind == ErrorKind.UPSTREAM_UNAVAILABLE
        assert outcome.error.service == "supabase"


class TestSupabaseStore:
    """HomeStore contract over Supabase rows."""

    @pytest.fixture
    def store(self):
        return SupabaseStore(DictSupabaseClient())

    def test_home_round_trip(self, store):
        created = store.create_home(_home())
        loaded = store.get_home(created.id)

        assert loaded.id == created.id
        assert loaded.coordinate == Coordinate(51.5074, -0.1278)
        assert loaded.property_type == PropertyType.SEMI_DETACHED
        assert loaded.baseline_efficiency == 62

    def test_missing_home(self, store):
        assert store.get_home("nope") is None

    def test_update_score(self, store):
        created = store.create_home(_home())
        store.update_score(created.id, 72, T0)

        loaded = store.get_home(created.id)
        assert loaded.score == 72
        assert loaded.score_updated_at == T0

    def test_improvement_round_trip(self, store):
        home = store.create_home(_home())
        stored = store.add_improvement(Improvement(
            home_id=home.id,
            category=ImprovementCategory.HEAT_PUMP,
            title="Heat Pump",
            cost=9500,
            before_score=62,
            after_score=72,
        ))

        [loaded] = store.list_improvements(home.id)
        assert loaded.id == stored.id
        assert loaded.category == ImprovementCategory.HEAT_PUMP
        assert (loaded.before_score, loaded.after_score) == (62, 72)

    def test_history_oldest_first(self, store):
        home = store.create_home(_home())
        for offset, score in ((2, 72), (0, 62), (1, 67)):
            store.append_history(ScoreHistoryEntry(
                home_id=home.id, score=score, reason="recalculation",
                created_at=T0 + timedelta(seconds=offset),
            ))

        assert [e.score for e in store.list_history(home.id)] == [62, 67, 72]

    def test_empty_insert_is_upstream_unavailable(self):
        client = DictSupabaseClient()
        client.insert_home = lambda data: None

        with pytest.raises(UpstreamUnavailable):
            SupabaseStore(client).create_home(_home())

    def test_new_rows_leave_id_to_database(self):
        assert _without_empty_id({"id": None, "score": 1}) == {"score": 1}
        assert _without_empty_id({"id": "h1", "score": 1}) == {"id": "h1", "score": 1}


class TestInMemoryStore:
    """The in-process store returns copies and keeps history append-only."""

    def test_returned_home_is_a_copy(self):
        store = InMemoryStore()
        created = store.create_home(_home())
        created.score = 99

        assert store.get_home(created.id).score == 0

    def test_ids_assigned(self):
        store = InMemoryStore()
        assert store.create_home(_home()).id != store.create_home(_home()).id

    def test_no_history_mutation_api(self):
        assert not any(hasattr(InMemoryStore, name) for name in ("update_history", "delete_history"))


@pytest.mark.skipif(not os.getenv("SUPABASE_URL"), reason="SUPABASE_URL not set - skipping database tests")
class TestLiveSupabase:
    """Round trip against a real Supabase project."""

    def test_claim_and_history(self):
        store = SupabaseStore()
        home = store.create_home(_home(address=f"Test Home {uuid.uuid4().hex[:8]}"))
        store.append_history(ScoreHistoryEntry(
            home_id=home.id, score=62, reason="initial_claim", created_at=datetime.now(timezone.utc),
        ))

        assert store.get_home(home.id).address == home.address
        assert [e.score for e in store.list_history(home.id)] == [62]
