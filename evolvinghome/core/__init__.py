"""Core models, configuration, errors and coordinate utilities."""

from .models import (
    Assessment,
    BuildingFootprint,
    Coordinate,
    HomeRecord,
    Improvement,
    ImprovementCategory,
    PropertyType,
    RoofCapacityEstimate,
    ScoreHistoryEntry,
    ScoreReason,
    SolarAssumptions,
    SolarPotentialResult,
)
from .config import Settings, get_settings, settings
from .errors import (
    ErrorKind,
    EvolvingHomeError,
    GeocodeNotFound,
    InvariantViolation,
    NoBuildingFound,
    NotFound,
    Outcome,
    UpstreamUnavailable,
    ValidationError,
    capture,
)
from .coordinates import LocalProjection, PolygonMeasure, haversine_m, measure_polygon

__all__ = [
    "Assessment",
    "BuildingFootprint",
    "Coordinate",
    "HomeRecord",
    "Improvement",
    "ImprovementCategory",
    "PropertyType",
    "RoofCapacityEstimate",
    "ScoreHistoryEntry",
    "ScoreReason",
    "SolarAssumptions",
    "SolarPotentialResult",
    "Settings",
    "get_settings",
    "settings",
    "ErrorKind",
    "EvolvingHomeError",
    "GeocodeNotFound",
    "InvariantViolation",
    "NoBuildingFound",
    "NotFound",
    "Outcome",
    "UpstreamUnavailable",
    "ValidationError",
    "capture",
    "LocalProjection",
    "PolygonMeasure",
    "haversine_m",
    "measure_polygon",
]
