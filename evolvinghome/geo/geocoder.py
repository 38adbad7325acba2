"""
Postcode geocoding.

Resolves a UK postcode to a WGS84 coordinate via OpenStreetMap Nominatim.
Positive results are kept in an injectable TTL cache keyed by
(postcode, country); misses are never cached.

Usage:
    geocoder = NominatimGeocoder()
    coordinate = geocoder.geocode("SW1A 1AA")
"""

import logging
from typing import Optional, Protocol

import requests

from ..core.config import Settings, get_settings
from ..core.errors import GeocodeNotFound, UpstreamUnavailable
from ..core.models import Coordinate
from ..utils.http import build_session, request_json
from ..utils.validation import validate_postcode
from .cache import TTLCache

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    """Geocoding provider contract."""

    def geocode(self, postcode: str, country: Optional[str] = None) -> Coordinate:
        """Return the coordinate for ``postcode`` or raise GeocodeNotFound."""
        ...


class NominatimGeocoder:
    """
    Geocoder backed by the Nominatim structured search API.

    Raises ValidationError for malformed postcodes, GeocodeNotFound when
    Nominatim has no match, and UpstreamUnavailable when it cannot be
    reached within the configured timeout.
    """

    SERVICE = "nominatim"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache[Coordinate]] = None,
    ):
        self.settings = settings or get_settings()
        self._session = session or build_session(self.settings.user_agent)
        self.cache = cache if cache is not None else TTLCache(ttl_s=self.settings.geocode_cache_ttl_s)

    def geocode(self, postcode: str, country: Optional[str] = None) -> Coordinate:
        normalized = validate_postcode(postcode)
        country = (country or self.settings.geocode_country).upper()
        key = (normalized, country)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        results = request_json(
            self._session,
            "GET",
            self.settings.nominatim_url,
            service=self.SERVICE,
            timeout=self.settings.upstream_timeout_s,
            params={
                "postalcode": normalized,
                "countrycodes": country.lower(),
                "format": "json",
                "limit": 1,
            },
        )

        if not isinstance(results, list):
            raise UpstreamUnavailable("Nominatim returned an unexpected payload", service=self.SERVICE)
        if not results:
            logger.info(f"No geocode match for {normalized}", extra={"postcode": normalized})
            raise GeocodeNotFound(f"Postcode not found: {normalized}")

        try:
            coordinate = Coordinate(lat=float(results[0]["lat"]), lon=float(results[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable("Nominatim result has no usable lat/lon", service=self.SERVICE) from e

        self.cache.set(key, coordinate)
        return coordinate
