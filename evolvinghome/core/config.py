"""
Configuration management for EvolvingHome.

Every calibration constant the estimators use lives here so it can be
tuned per deployment without code changes.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ImprovementCategory, PropertyType


DEFAULT_SCORE_DELTAS: dict[ImprovementCategory, float] = {
    ImprovementCategory.HEAT_PUMP: 10,
    ImprovementCategory.LOFT_INSULATION: 8,
    ImprovementCategory.WALL_INSULATION: 8,
    ImprovementCategory.SOLAR_PV: 12,
    ImprovementCategory.GLAZING: 5,
    ImprovementCategory.DRAUGHT_PROOFING: 3,
    ImprovementCategory.CYLINDER_INSULATION: 2,
    ImprovementCategory.SMART_THERMOSTAT: 2,
    ImprovementCategory.TRVS: 2,
    ImprovementCategory.LED_LIGHTING: 1,
    ImprovementCategory.PIPE_INSULATION: 1,
    ImprovementCategory.RADIATOR_REFLECTORS: 1,
    ImprovementCategory.OTHER: 0,
}

DEFAULT_ROOF_FRACTIONS: dict[PropertyType, float] = {
    PropertyType.DETACHED: 0.80,
    PropertyType.BUNGALOW: 0.85,
    PropertyType.SEMI_DETACHED: 0.65,
    PropertyType.TERRACED: 0.50,
    PropertyType.FLAT: 0.40,
    PropertyType.OTHER: 0.45,
}


class Settings(BaseSettings):
    """
    Application settings.

    Can be configured via environment variables (prefix ``EVOLVINGHOME_``)
    or a .env file. Mapping fields accept JSON, e.g.
    ``EVOLVINGHOME_SCORE_DELTAS='{"heat_pump": 11, ...}'``.
    """

    model_config = SettingsConfigDict(
        env_prefix="EVOLVINGHOME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Score engine
    score_deltas: dict[ImprovementCategory, float] = Field(
        default_factory=lambda: dict(DEFAULT_SCORE_DELTAS),
        description="Points added once per improvement category",
    )

    # Roof capacity
    roof_usable_fractions: dict[PropertyType, float] = Field(
        default_factory=lambda: dict(DEFAULT_ROOF_FRACTIONS),
        description="Share of the footprint usable for panels per property type",
    )

    # Solar
    panel_density_kwp_per_m2: float = Field(default=0.20, gt=0, description="Installed kWp per m² of panel")
    system_efficiency: float = Field(default=0.80, ge=0.75, le=0.85, description="Inverter, wiring, shading and orientation losses folded into one factor")
    electricity_unit_price: float = Field(default=0.28, ge=0, description="Import tariff (GBP/kWh)")
    export_unit_price: float = Field(default=0.15, ge=0, description="Export tariff (GBP/kWh)")
    self_consumption_fraction: float = Field(default=0.5, ge=0, le=1)
    install_cost_per_kwp: float = Field(default=1200.0, ge=0, description="Variable install cost (GBP/kWp)")
    install_fixed_cost: float = Field(default=2000.0, ge=0, description="Scaffolding, inverter and commissioning (GBP)")
    grid_co2_kg_per_kwh: float = Field(default=0.231, ge=0, description="UK grid carbon intensity")
    pv_tilt_deg: float = Field(default=35.0, description="Typical UK roof pitch")
    pv_aspect_deg: float = Field(default=0.0, description="PVGIS aspect, 0 = south")

    # Upstream collaborators
    upstream_timeout_s: float = Field(default=5.0, gt=0)
    footprint_search_radius_m: float = Field(default=50.0, gt=0)
    geocode_country: str = Field(default="GB")
    geocode_cache_ttl_s: float = Field(default=7 * 24 * 3600, ge=0)
    irradiance_cache_ttl_s: float = Field(default=30 * 24 * 3600, ge=0)
    nominatim_url: str = Field(default="https://nominatim.openstreetmap.org/search")
    overpass_url: str = Field(default="https://overpass-api.de/api/interpreter")
    pvgis_url: str = Field(default="https://re.jrc.ec.europa.eu/api/v5_3/PVcalc")
    user_agent: str = Field(default="EvolvingHome/1.0 (hello@evolvinghome.ai)")

    # Persistence
    supabase_url: str | None = Field(default=None)
    supabase_key: str | None = Field(default=None)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: str | None = Field(default=None, description="Also write JSON lines here when set")

    @field_validator("score_deltas")
    @classmethod
    def _cover_all_categories(cls, value: dict) -> dict:
        missing = [c.value for c in ImprovementCategory if c not in value]
        if missing:
            raise ValueError(f"score_deltas missing categories: {', '.join(missing)}")
        return value

    @field_validator("roof_usable_fractions")
    @classmethod
    def _cover_all_property_types(cls, value: dict) -> dict:
        missing = [p.value for p in PropertyType if p not in value]
        if missing:
            raise ValueError(f"roof_usable_fractions missing property types: {', '.join(missing)}")
        for prop, fraction in value.items():
            if not 0 < fraction <= 1:
                raise ValueError(f"usable fraction for {prop.value} must be in (0, 1], got {fraction}")
        return value

    @property
    def effective_unit_price(self) -> float:
        """Blended value of a generated kWh (self-consumed + exported)."""
        f = self.self_consumption_fraction
        return f * self.electricity_unit_price + (1 - f) * self.export_unit_price


# Global settings instance
settings = Settings()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (for dependency injection)."""
    return settings
