"""
Irradiance providers.

An irradiance factor is the expected annual yield per installed kWp
(kWh/kWp/year) before system losses. The core applies its own
system-efficiency factor, so providers report loss-free yield.

Providers:
- PVGISIrradianceProvider: EU JRC PVGIS ``PVcalc`` for a 1 kWp system
- LatitudeIrradianceProvider: offline UK table interpolated by latitude
"""

import logging
from typing import Optional, Protocol

import requests

from ..core.config import Settings, get_settings
from ..core.errors import UpstreamUnavailable
from ..core.models import Coordinate
from ..geo.cache import TTLCache
from ..utils.http import build_session, request_json

logger = logging.getLogger(__name__)


class IrradianceProvider(Protocol):
    """Irradiance provider contract."""

    source: str

    def annual_yield(self, coordinate: Coordinate) -> float:
        """kWh per installed kWp per year at ``coordinate``."""
        ...


class PVGISIrradianceProvider:
    """
    Irradiance factor from PVGIS.

    Requests a 1 kWp fixed system with zero losses at the configured tilt
    and aspect, so ``E_y`` is directly kWh/kWp/year. Results are cached
    per 0.01° cell (about 1 km) for ``irradiance_cache_ttl_s``.
    """

    SERVICE = "pvgis"
    source = "pvgis"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache[float]] = None,
    ):
        self.settings = settings or get_settings()
        self._session = session or build_session(self.settings.user_agent)
        self.cache = cache if cache is not None else TTLCache(ttl_s=self.settings.irradiance_cache_ttl_s)

    def annual_yield(self, coordinate: Coordinate) -> float:
        key = (
            round(coordinate.lat, 2),
            round(coordinate.lon, 2),
            self.settings.pv_tilt_deg,
            self.settings.pv_aspect_deg,
        )
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        payload = request_json(
            self._session,
            "GET",
            self.settings.pvgis_url,
            service=self.SERVICE,
            timeout=self.settings.upstream_timeout_s,
            params={
                "lat": coordinate.lat,
                "lon": coordinate.lon,
                "peakpower": 1,
                "loss": 0,
                "angle": self.settings.pv_tilt_deg,
                "aspect": self.settings.pv_aspect_deg,
                "outputformat": "json",
            },
        )

        factor = _extract_annual_yield(payload)
        if factor is None or factor < 0:
            raise UpstreamUnavailable("PVGIS response has no usable annual yield", service=self.SERVICE)

        self.cache.set(key, factor)
        return factor


def _extract_annual_yield(payload: object) -> Optional[float]:
    """Pull ``outputs.totals.fixed.E_y`` (older responses: ``totals.E_y``)."""
    if not isinstance(payload, dict):
        return None
    totals = (payload.get("outputs") or {}).get("totals") or {}
    value = (totals.get("fixed") or {}).get("E_y", totals.get("E_y"))
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class LatitudeIrradianceProvider:
    """
    Offline irradiance factor for Great Britain.

    Usage:
        provider = LatitudeIrradianceProvider()
        provider.annual_yield(Coordinate(51.5, -0.12))  # ≈ 1030
    """

    source = "uk_latitude_table"

    # Loss-free specific yield (kWh/kWp/yr) for a 35° south-facing array
    UK_SPECIFIC_YIELD = {
        50.1: 1120,  # Penzance
        51.5: 1030,  # London / Cardiff
        52.5: 990,   # Birmingham
        53.5: 950,   # Manchester / Leeds
        55.0: 920,   # Newcastle
        55.9: 890,   # Glasgow / Edinburgh
        57.5: 860,   # Inverness
        60.2: 800,   # Lerwick
    }

    def annual_yield(self, coordinate: Coordinate) -> float:
        return self._interpolate(coordinate.lat)

    def _interpolate(self, latitude: float) -> float:
        lats = sorted(self.UK_SPECIFIC_YIELD)

        if latitude <= lats[0]:
            return float(self.UK_SPECIFIC_YIELD[lats[0]])
        if latitude >= lats[-1]:
            return float(self.UK_SPECIFIC_YIELD[lats[-1]])

        for low, high in zip(lats, lats[1:]):
            if low <= latitude <= high:
                fraction = (latitude - low) / (high - low)
                y_low, y_high = self.UK_SPECIFIC_YIELD[low], self.UK_SPECIFIC_YIELD[high]
                return float(y_low + fraction * (y_high - y_low))

        return float(self.UK_SPECIFIC_YIELD[51.5])
