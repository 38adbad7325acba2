"""
Domain models for EvolvingHome.

Covers the records the core reads from the persistent store (homes,
improvements, score history) and the transient results it computes
(building footprints, roof capacity, solar potential).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


# =============================================================================
# ENUMS
# =============================================================================


class ImprovementCategory(str, Enum):
    """Energy-conservation measure (ECM) categories a homeowner can log."""

    HEAT_PUMP = "heat_pump"
    LOFT_INSULATION = "loft_insulation"
    WALL_INSULATION = "wall_insulation"
    SOLAR_PV = "solar_pv"
    GLAZING = "glazing"
    DRAUGHT_PROOFING = "draught_proofing"
    CYLINDER_INSULATION = "cylinder_insulation"
    SMART_THERMOSTAT = "smart_thermostat"
    TRVS = "trvs"
    LED_LIGHTING = "led_lighting"
    PIPE_INSULATION = "pipe_insulation"
    RADIATOR_REFLECTORS = "radiator_reflectors"
    OTHER = "other"


class PropertyType(str, Enum):
    """Built form of a dwelling, as used for roof access."""

    DETACHED = "detached"
    SEMI_DETACHED = "semi-detached"
    TERRACED = "terraced"
    FLAT = "flat"
    BUNGALOW = "bungalow"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "PropertyType":
        """Map free text (EPC built form, form input) to a property type.

        Unrecognised values map to OTHER and never fail.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("_", "-")
        return _PROPERTY_TYPE_ALIASES.get(text, cls.OTHER)


_PROPERTY_TYPE_ALIASES = {
    "detached": PropertyType.DETACHED,
    "house": PropertyType.DETACHED,
    "detached-house": PropertyType.DETACHED,
    "semi-detached": PropertyType.SEMI_DETACHED,
    "semi": PropertyType.SEMI_DETACHED,
    "semidetached-house": PropertyType.SEMI_DETACHED,
    "semi-detached-house": PropertyType.SEMI_DETACHED,
    "terraced": PropertyType.TERRACED,
    "terrace": PropertyType.TERRACED,
    "mid-terrace": PropertyType.TERRACED,
    "end-terrace": PropertyType.TERRACED,
    "enclosed-mid-terrace": PropertyType.TERRACED,
    "enclosed-end-terrace": PropertyType.TERRACED,
    "flat": PropertyType.FLAT,
    "apartments": PropertyType.FLAT,
    "maisonette": PropertyType.FLAT,
    "bungalow": PropertyType.BUNGALOW,
    "other": PropertyType.OTHER,
}


class ScoreReason(str, Enum):
    """Why a score history entry was written."""

    INITIAL_CLAIM = "initial_claim"
    RECALCULATION = "recalculation"


# =============================================================================
# LOCATION
# =============================================================================


@dataclass(frozen=True)
class Coordinate:
    """WGS84 point."""

    lat: float
    lon: float

    def rounded(self, places: int = 4) -> "Coordinate":
        return Coordinate(round(self.lat, places), round(self.lon, places))

    def to_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lon)


# =============================================================================
# PERSISTED RECORDS (owned by the store)
# =============================================================================


@dataclass
class HomeRecord:
    """A claimed home. The store owns its lifecycle."""

    address: str
    postcode: str
    id: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    total_floor_area_m2: Optional[float] = None
    baseline_efficiency: Optional[float] = None  # EPC efficiency 0-100
    property_type: PropertyType = PropertyType.OTHER
    score: int = 0
    score_updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "postcode": self.postcode,
            "lat": self.coordinate.lat if self.coordinate else None,
            "lng": self.coordinate.lon if self.coordinate else None,
            "total_floor_area": self.total_floor_area_m2,
            "epc_efficiency": self.baseline_efficiency,
            "property_type": self.property_type.value,
            "score": self.score,
            "score_updated_at": _iso(self.score_updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HomeRecord":
        lat, lng = data.get("lat"), data.get("lng")
        return cls(
            id=data.get("id"),
            address=data.get("address", ""),
            postcode=data.get("postcode", ""),
            coordinate=Coordinate(float(lat), float(lng)) if lat is not None and lng is not None else None,
            total_floor_area_m2=data.get("total_floor_area"),
            baseline_efficiency=data.get("epc_efficiency"),
            property_type=PropertyType.parse(data.get("property_type")),
            score=int(data.get("score") or 0),
            score_updated_at=_parse_datetime(data.get("score_updated_at")),
        )


@dataclass(frozen=True)
class Improvement:
    """A logged improvement. Immutable once written."""

    home_id: str
    category: ImprovementCategory
    title: str = ""
    id: Optional[str] = None
    logged_by: Optional[str] = None
    cost: Optional[float] = None
    grant_applied: bool = False
    grant_amount: Optional[float] = None
    estimated_annual_savings: Optional[float] = None
    before_score: Optional[int] = None
    after_score: Optional[int] = None
    completed_at: Optional[date] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["ecm_type"] = data.pop("category").value
        data["score_before"] = data.pop("before_score")
        data["score_after"] = data.pop("after_score")
        data["completed_at"] = self.completed_at.isoformat() if self.completed_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Improvement":
        completed = data.get("completed_at")
        if isinstance(completed, str):
            completed = date.fromisoformat(completed[:10])
        return cls(
            id=data.get("id"),
            home_id=data["home_id"],
            category=ImprovementCategory(data["ecm_type"]),
            title=data.get("title") or "",
            logged_by=data.get("logged_by"),
            cost=data.get("cost"),
            grant_applied=bool(data.get("grant_applied")),
            grant_amount=data.get("grant_amount"),
            estimated_annual_savings=data.get("estimated_annual_savings"),
            before_score=data.get("score_before"),
            after_score=data.get("score_after"),
            completed_at=completed,
        )


@dataclass(frozen=True)
class ScoreHistoryEntry:
    """Append-only audit record of a score change."""

    home_id: str
    score: int
    reason: str  # ScoreReason value or an ImprovementCategory value
    created_at: datetime
    details: Optional[dict] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "home_id": self.home_id,
            "score": self.score,
            "reason": self.reason,
            "details": self.details,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreHistoryEntry":
        return cls(
            id=data.get("id"),
            home_id=data["home_id"],
            score=int(data["score"]),
            reason=data["reason"],
            details=data.get("details"),
            created_at=_parse_datetime(data.get("created_at")),
        )


# =============================================================================
# COMPUTED RESULTS (transient)
# =============================================================================


@dataclass(frozen=True)
class BuildingFootprint:
    """Ground-plan polygon of a building plus derived geometry."""

    vertices: tuple[Coordinate, ...]  # closed ring, first vertex repeated last
    centroid: Coordinate
    area_m2: float
    floors: int
    building_type: Optional[str] = None  # raw OSM `building` tag
    property_type: PropertyType = PropertyType.OTHER
    perimeter_m: float = 0.0
    orientation_deg: float = 0.0  # bearing of the longest wall
    orientation_label: str = "north-facing"
    levels_tag: Optional[int] = None
    roof_shape: Optional[str] = None
    osm_id: Optional[str] = None
    contains_point: bool = False
    distance_m: float = 0.0

    def to_dict(self) -> dict:
        return {
            "vertices": [[v.lat, v.lon] for v in self.vertices],
            "centroid": [self.centroid.lat, self.centroid.lon],
            "area_m2": self.area_m2,
            "floors": self.floors,
            "building_type": self.building_type,
            "property_type": self.property_type.value,
            "perimeter_m": self.perimeter_m,
            "orientation_deg": self.orientation_deg,
            "orientation_label": self.orientation_label,
            "levels_tag": self.levels_tag,
            "roof_shape": self.roof_shape,
            "osm_id": self.osm_id,
            "contains_point": self.contains_point,
            "distance_m": self.distance_m,
        }


@dataclass(frozen=True)
class RoofCapacityEstimate:
    """Usable rooftop area for panels."""

    roof_area_m2: float
    usable_fraction: float
    property_type: PropertyType
    footprint_m2: float

    def to_dict(self) -> dict:
        return {
            "roof_area_m2": self.roof_area_m2,
            "usable_fraction": self.usable_fraction,
            "property_type": self.property_type.value,
            "footprint_m2": self.footprint_m2,
        }


@dataclass(frozen=True)
class SolarAssumptions:
    """Inputs needed to reproduce a solar estimate."""

    irradiance_factor_kwh_per_kwp: float
    system_efficiency: float
    unit_price: float
    panel_density_kwp_per_m2: float
    install_cost_per_kwp: float
    install_fixed_cost: float
    grid_co2_kg_per_kwh: float
    irradiance_source: str = "unknown"


@dataclass(frozen=True)
class SolarPotentialResult:
    """Annual solar yield and economics for a roof.

    Precision: capacity 2 dp, generation 1 dp, savings 2 dp, CO2 1 dp,
    install cost 2 dp, payback 2 dp (None when savings are zero).
    """

    peak_power_kwp: float
    annual_generation_kwh: float
    annual_savings: float
    co2_avoided_kg: float
    install_cost: float
    payback_years: Optional[float]
    assumptions: SolarAssumptions
    capacity_capped: bool = False
    roof_area_m2: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Assessment:
    """Output of the postcode-to-solar pipeline, one field per stage."""

    postcode: str
    coordinate: Coordinate
    roof: RoofCapacityEstimate
    solar: SolarPotentialResult
    footprint: Optional[BuildingFootprint] = None
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "postcode": self.postcode,
            "coordinate": [self.coordinate.lat, self.coordinate.lon],
            "footprint": self.footprint.to_dict() if self.footprint else None,
            "roof": self.roof.to_dict(),
            "solar": self.solar.to_dict(),
            "notes": list(self.notes),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
