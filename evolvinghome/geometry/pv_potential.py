"""
Solar Potential Estimator

Estimates annual PV generation and economics for a roof:
- Installed capacity from roof area × panel density (or a declared kWp,
  capped so it never implies more panel area than the roof holds)
- Annual generation from the location's irradiance factor
- Savings at the blended import/export unit price
- Install cost, simple payback and CO₂ avoided

Every result carries the assumption set used, so it can be reproduced.
"""

import logging
import math
from typing import Any, Optional

from ..core.config import Settings, get_settings
from ..core.errors import InvariantViolation, UpstreamUnavailable
from ..core.models import Coordinate, SolarAssumptions, SolarPotentialResult
from ..utils.validation import validate_coordinates, validate_positive
from .irradiance import IrradianceProvider, LatitudeIrradianceProvider

logger = logging.getLogger(__name__)


class SolarPotentialEstimator:
    """
    Estimate solar potential for a roof.

    Usage:
        estimator = SolarPotentialEstimator(PVGISIrradianceProvider())
        result = estimator.estimate(51.5074, -0.1278, roof_area_m2=40)
        result = estimator.estimate(51.5074, -0.1278, roof_area_m2=40, peak_power_kwp=4)
    """

    def __init__(
        self,
        irradiance_provider: Optional[IrradianceProvider] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.irradiance_provider = irradiance_provider or LatitudeIrradianceProvider()

    def estimate(
        self,
        lat: Any,
        lon: Any,
        roof_area_m2: Any,
        peak_power_kwp: Any = None,
    ) -> SolarPotentialResult:
        """
        Estimate annual generation, savings and payback.

        Args:
            lat: Latitude (WGS84)
            lon: Longitude (WGS84)
            roof_area_m2: Usable roof area (must be > 0)
            peak_power_kwp: Declared installed capacity; derived from roof
                area when omitted

        Returns:
            SolarPotentialResult rounded to its documented precision

        Raises:
            ValidationError: Bad coordinates, roof area or peak power
            UpstreamUnavailable: Irradiance provider unreachable
        """
        lat, lon = validate_coordinates(lat, lon)
        roof_area = validate_positive(roof_area_m2, "roof_area_m2", "m²")
        s = self.settings

        max_capacity = roof_area * s.panel_density_kwp_per_m2
        capped = False
        if peak_power_kwp is None:
            capacity = max_capacity
        else:
            capacity = validate_positive(peak_power_kwp, "peak_power_kwp", "kWp")
            if capacity > max_capacity + 1e-9:
                logger.info(
                    f"Declared {capacity:.2f} kWp exceeds roof capacity {max_capacity:.2f} kWp, capping"
                )
                capacity = max_capacity
                capped = True

        factor = self.irradiance_provider.annual_yield(Coordinate(lat, lon))
        if not isinstance(factor, (int, float)) or not math.isfinite(factor) or factor < 0:
            raise UpstreamUnavailable(f"Irradiance provider returned {factor!r}", service="irradiance")

        unit_price = s.effective_unit_price
        generation = capacity * factor * s.system_efficiency
        savings = generation * unit_price
        install_cost = install_cost_estimate(capacity, s)
        payback = install_cost / savings if savings > 0 else None

        result = SolarPotentialResult(
            peak_power_kwp=round(capacity, 2),
            annual_generation_kwh=round(generation, 1),
            annual_savings=round(savings, 2),
            co2_avoided_kg=round(generation * s.grid_co2_kg_per_kwh, 1),
            install_cost=round(install_cost, 2),
            payback_years=round(payback, 2) if payback is not None else None,
            assumptions=SolarAssumptions(
                irradiance_factor_kwh_per_kwp=round(float(factor), 1),
                system_efficiency=s.system_efficiency,
                unit_price=round(unit_price, 4),
                panel_density_kwp_per_m2=s.panel_density_kwp_per_m2,
                install_cost_per_kwp=s.install_cost_per_kwp,
                install_fixed_cost=s.install_fixed_cost,
                grid_co2_kg_per_kwh=s.grid_co2_kg_per_kwh,
                irradiance_source=getattr(self.irradiance_provider, "source", "unknown"),
            ),
            capacity_capped=capped,
            roof_area_m2=round(roof_area, 2),
        )
        _check_result(result)
        return result


def install_cost_estimate(peak_power_kwp: float, settings: Optional[Settings] = None) -> float:
    """Fixed cost plus a per-kWp cost."""
    settings = settings or get_settings()
    return settings.install_fixed_cost + settings.install_cost_per_kwp * peak_power_kwp


def _check_result(result: SolarPotentialResult) -> None:
    values = (
        result.peak_power_kwp,
        result.annual_generation_kwh,
        result.annual_savings,
        result.co2_avoided_kg,
        result.install_cost,
    )
    if any(v < 0 for v in values):
        raise InvariantViolation(f"Negative solar output: {result}")


def estimate_solar_potential(
    lat: Any,
    lon: Any,
    roof_area_m2: Any,
    peak_power_kwp: Any = None,
    irradiance_provider: Optional[IrradianceProvider] = None,
    settings: Optional[Settings] = None,
) -> SolarPotentialResult:
    """Quick solar estimate (offline latitude table unless a provider is given)."""
    estimator = SolarPotentialEstimator(irradiance_provider, settings)
    return estimator.estimate(lat, lon, roof_area_m2, peak_power_kwp)
