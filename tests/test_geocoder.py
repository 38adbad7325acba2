"""
Tests for postcode geocoding and the TTL cache.

Nominatim is never contacted: the requests session is a MagicMock.
"""

from unittest.mock import MagicMock

import pytest
import requests

from evolvinghome.core.errors import GeocodeNotFound, UpstreamUnavailable, ValidationError
from evolvinghome.core.models import Coordinate
from evolvinghome.geo.cache import TTLCache
from evolvinghome.geo.geocoder import NominatimGeocoder


def _session(payload=None, side_effect=None) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    if side_effect is not None:
        session.request.side_effect = side_effect
    else:
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        session.request.return_value = response
    return session


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestNominatimGeocoder:
    """Nominatim structured postcode search."""

    def test_returns_coordinate(self, settings):
        session = _session([{"lat": "51.5074", "lon": "-0.1278"}])
        geocoder = NominatimGeocoder(settings, session=session)

        assert geocoder.geocode("TV1 2AB") == Coordinate(51.5074, -0.1278)

    def test_query_parameters(self, settings):
        session = _session([{"lat": "51.5", "lon": "-0.1"}])
        NominatimGeocoder(settings, session=session).geocode("tv12ab")

        method, url = session.request.call_args.args[:2]
        kwargs = session.request.call_args.kwargs
        assert method == "GET"
        assert url == settings.nominatim_url
        assert kwargs["params"]["postalcode"] == "TV1 2AB"
        assert kwargs["params"]["countrycodes"] == "gb"
        assert kwargs["timeout"] == settings.upstream_timeout_s

    def test_empty_result_is_not_found(self, settings):
        geocoder = NominatimGeocoder(settings, session=_session([]))
        with pytest.raises(GeocodeNotFound):
            geocoder.geocode("TV1 2AB")

    def test_timeout_is_upstream_unavailable(self, settings):
        geocoder = NominatimGeocoder(settings, session=_session(side_effect=requests.Timeout()))
        with pytest.raises(UpstreamUnavailable) as exc_info:
            geocoder.geocode("TV1 2AB")
        assert exc_info.value.service == "nominatim"

    def test_connection_error_is_upstream_unavailable(self, settings):
        geocoder = NominatimGeocoder(settings, session=_session(side_effect=requests.ConnectionError()))
        with pytest.raises(UpstreamUnavailable):
            geocoder.geocode("TV1 2AB")

    def test_http_error_is_upstream_unavailable(self, settings):
        session = _session([])
        session.request.return_value.raise_for_status.side_effect = requests.HTTPError("503")
        with pytest.raises(UpstreamUnavailable):
            NominatimGeocoder(settings, session=session).geocode("TV1 2AB")

    def test_unexpected_payload(self, settings):
        geocoder = NominatimGeocoder(settings, session=_session({"error": "nope"}))
        with pytest.raises(UpstreamUnavailable):
            geocoder.geocode("TV1 2AB")

    def test_malformed_postcode_never_calls_upstream(self, settings):
        session = _session([])
        with pytest.raises(ValidationError):
            NominatimGeocoder(settings, session=session).geocode("not a postcode")
        session.request.assert_not_called()

    def test_results_are_cached(self, settings):
        session = _session([{"lat": "51.5074", "lon": "-0.1278"}])
        geocoder = NominatimGeocoder(settings, session=session)

        first = geocoder.geocode("TV1 2AB")
        second = geocoder.geocode("tv1 2ab")

        assert first == second
        assert session.request.call_count == 1

    def test_misses_are_not_cached(self, settings):
        session = _session([])
        geocoder = NominatimGeocoder(settings, session=session)
        for _ in range(2):
            with pytest.raises(GeocodeNotFound):
                geocoder.geocode("TV1 2AB")
        assert session.request.call_count == 2


class TestTTLCache:
    """Injectable cache with staleness and eviction."""

    def test_get_set(self):
        cache = TTLCache(ttl_s=60)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert "a" in cache

    def test_entries_expire(self):
        clock = FakeClock()
        cache = TTLCache(ttl_s=60, clock=clock)
        cache.set("a", 1)

        clock.now = 59.0
        assert cache.get("a") == 1
        clock.now = 60.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_oldest_evicted_when_full(self):
        cache = TTLCache(ttl_s=60, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.get("c") == 3

    def test_zero_ttl_disables(self):
        cache = TTLCache(ttl_s=0)
        cache.set("a", 1)
        assert cache.get("a") is None

    def test_purge_expired(self):
        clock = FakeClock()
        cache = TTLCache(ttl_s=10, clock=clock)
        cache.set("a", 1)
        clock.now = 5.0
        cache.set("b", 2)
        clock.now = 12.0
        assert cache.purge_expired() == 1
        assert cache.get("b") == 2

    def test_hit_miss_counters(self):
        cache = TTLCache(ttl_s=60)
        cache.get("missing")
        cache.set("a", 1)
        cache.get("a")
        assert (cache.hits, cache.misses) == (1, 1)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TTLCache(ttl_s=60, max_entries=0)
