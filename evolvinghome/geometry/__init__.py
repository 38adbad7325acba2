"""
EvolvingHome Geometry Module

Rooftop and solar estimation:
- Usable roof area from floor area, storeys and built form
- Irradiance factors (PVGIS or an offline UK latitude table)
- Annual PV generation, savings, payback and CO₂ avoided
"""

from .roof_capacity import estimate_roof_capacity, usable_fraction
from .irradiance import IrradianceProvider, LatitudeIrradianceProvider, PVGISIrradianceProvider
from .pv_potential import SolarPotentialEstimator, estimate_solar_potential, install_cost_estimate

__all__ = [
    "estimate_roof_capacity",
    "usable_fraction",
    "IrradianceProvider",
    "LatitudeIrradianceProvider",
    "PVGISIrradianceProvider",
    "SolarPotentialEstimator",
    "estimate_solar_potential",
    "install_cost_estimate",
]
