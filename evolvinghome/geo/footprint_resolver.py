"""
Footprint Resolver for EvolvingHome

Resolves the real-world building footprint nearest to a location from
OpenStreetMap and measures it on a local metric plane.

Key features:
- Postcode or coordinate input (postcode goes through the geocoder)
- Point-in-polygon match first, nearest centroid within radius second
- Multipolygon relations resolved to their first outer ring
- Shoelace area on projected vertices, never in degree space
- Floor count from declared total floor area

Usage:
    resolver = BuildingResolver(OverpassFootprintProvider(), geocoder=NominatimGeocoder())

    footprint = resolver.resolve(Coordinate(51.5074, -0.1278))
    footprint = resolver.resolve_postcode("SW1A 1AA", total_floor_area_m2=240)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

import requests

from ..core.config import Settings, get_settings
from ..core.coordinates import (
    LocalProjection,
    close_ring,
    distinct_vertex_count,
    haversine_m,
    measure_polygon,
    orientation_label,
    polygon_contains,
)
from ..core.errors import InvariantViolation, NoBuildingFound, UpstreamUnavailable, ValidationError
from ..core.models import BuildingFootprint, Coordinate, PropertyType
from ..utils.http import build_session, request_json
from ..utils.validation import validate_coordinates, validate_positive
from .geocoder import Geocoder

logger = logging.getLogger(__name__)


# OSM `building=*` values that tell us the built form
OSM_PROPERTY_TYPES: Dict[str, PropertyType] = {
    "detached": PropertyType.DETACHED,
    "semidetached_house": PropertyType.SEMI_DETACHED,
    "terrace": PropertyType.TERRACED,
    "apartments": PropertyType.FLAT,
    "bungalow": PropertyType.BUNGALOW,
}


@dataclass(frozen=True)
class FootprintCandidate:
    """A raw building polygon as returned by a footprint provider."""

    vertices: Tuple[Coordinate, ...]
    tags: Dict[str, str] = field(default_factory=dict)
    osm_id: Optional[str] = None


class FootprintProvider(Protocol):
    """Footprint provider contract: polygons around a point."""

    def buildings_near(self, coordinate: Coordinate, radius_m: float) -> List[FootprintCandidate]:
        ...


class OverpassFootprintProvider:
    """
    Footprint provider backed by the OSM Overpass API.

    Raises UpstreamUnavailable when Overpass cannot be reached within the
    configured timeout; an empty list means no buildings in range.
    """

    SERVICE = "overpass"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self._session = session or build_session(self.settings.user_agent)

    def buildings_near(self, coordinate: Coordinate, radius_m: float) -> List[FootprintCandidate]:
        server_timeout = max(1, int(self.settings.upstream_timeout_s))
        query = f"""
        [out:json][timeout:{server_timeout}];
        (
            way["building"](around:{radius_m},{coordinate.lat},{coordinate.lon});
            relation["building"](around:{radius_m},{coordinate.lat},{coordinate.lon});
        );
        out body geom;
        """
        payload = request_json(
            self._session,
            "POST",
            self.settings.overpass_url,
            service=self.SERVICE,
            timeout=self.settings.upstream_timeout_s,
            data={"data": query},
        )
        if not isinstance(payload, dict):
            raise UpstreamUnavailable("Overpass returned an unexpected payload", service=self.SERVICE)

        candidates = []
        for element in payload.get("elements", []):
            candidate = self._element_to_candidate(element)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def _element_to_candidate(self, element: dict) -> Optional[FootprintCandidate]:
        """Convert an Overpass way or relation to a candidate."""
        tags = element.get("tags", {}) or {}
        if "building" not in tags:
            return None

        if element.get("type") == "way":
            geometry = element.get("geometry") or []
        elif element.get("type") == "relation":
            # Multipolygon: take the first outer ring
            outers = [
                m.get("geometry") for m in element.get("members", [])
                if m.get("role") == "outer" and m.get("geometry")
            ]
            geometry = outers[0] if outers else []
        else:
            return None

        if not geometry:
            return None

        vertices = tuple(Coordinate(lat=float(p["lat"]), lon=float(p["lon"])) for p in geometry)
        return FootprintCandidate(
            vertices=vertices,
            tags={k: str(v) for k, v in tags.items()},
            osm_id=f"{element.get('type')}/{element.get('id')}",
        )


@dataclass
class _Measured:
    candidate: FootprintCandidate
    area_m2: float
    perimeter_m: float
    centroid: Coordinate
    bearing_deg: float
    contains_point: bool
    distance_m: float


class BuildingResolver:
    """
    Resolve the building footprint at a location.

    Priority:
    1. Building whose polygon contains the point (smallest if nested)
    2. Building with the nearest centroid within the search radius

    Handles edge cases:
    - Unclosed rings (closed before measuring)
    - Degenerate polygons (<3 distinct vertices or zero area) are skipped
    - Missing floor area (floor count falls back to building:levels, then 1)
    """

    def __init__(
        self,
        provider: FootprintProvider,
        geocoder: Optional[Geocoder] = None,
        settings: Optional[Settings] = None,
    ):
        self.provider = provider
        self.geocoder = geocoder
        self.settings = settings or get_settings()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def resolve(
        self,
        coordinate: Coordinate,
        total_floor_area_m2: Optional[float] = None,
        search_radius_m: Optional[float] = None,
    ) -> BuildingFootprint:
        """
        Resolve the footprint nearest to ``coordinate``.

        Args:
            coordinate: Point to resolve (typically a geocoded postcode)
            total_floor_area_m2: Declared total floor area, used for floor count
            search_radius_m: Override for the configured search radius

        Returns:
            BuildingFootprint with planar area in m²

        Raises:
            ValidationError: Bad coordinate, radius or floor area
            NoBuildingFound: Nothing usable within the radius
            UpstreamUnavailable: Footprint provider unreachable
        """
        lat, lon = validate_coordinates(coordinate.lat, coordinate.lon)
        point = Coordinate(lat, lon)
        radius = validate_positive(
            search_radius_m if search_radius_m is not None else self.settings.footprint_search_radius_m,
            "search_radius_m",
            "m",
        )
        if total_floor_area_m2 is not None:
            total_floor_area_m2 = validate_positive(total_floor_area_m2, "total_floor_area_m2", "m²")

        candidates = self.provider.buildings_near(point, radius)
        measured = [m for m in (self._measure(c, point) for c in candidates) if m is not None]

        best = self._select(measured, radius)
        if best is None:
            logger.info(f"No building within {radius:.0f} m of ({lat:.5f}, {lon:.5f})")
            raise NoBuildingFound(f"No building found within {radius:.0f} m of ({lat}, {lon})")

        return self._to_footprint(best, total_floor_area_m2)

    def resolve_postcode(
        self,
        postcode: str,
        total_floor_area_m2: Optional[float] = None,
        search_radius_m: Optional[float] = None,
    ) -> BuildingFootprint:
        """Geocode ``postcode`` and resolve the footprint at that point."""
        if self.geocoder is None:
            raise ValidationError(
                "Postcode lookups need a geocoder",
                field="postcode",
                suggestions=["Pass a coordinate instead"],
            )
        coordinate = self.geocoder.geocode(postcode)
        return self.resolve(coordinate, total_floor_area_m2, search_radius_m)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _measure(self, candidate: FootprintCandidate, point: Coordinate) -> Optional[_Measured]:
        ring = close_ring(candidate.vertices)
        if distinct_vertex_count(ring) < 3:
            logger.debug(f"Skipping degenerate footprint {candidate.osm_id}")
            return None

        projection = LocalProjection.centered_on(ring)
        measure = measure_polygon(ring, projection)
        # footprints are reported to 2 dp; anything that rounds to 0 is unusable
        if round(measure.area_m2, 2) <= 0:
            logger.debug(f"Skipping zero-area footprint {candidate.osm_id}")
            return None

        return _Measured(
            candidate=candidate,
            area_m2=measure.area_m2,
            perimeter_m=measure.perimeter_m,
            centroid=measure.centroid,
            bearing_deg=measure.longest_wall_bearing_deg,
            contains_point=polygon_contains(ring, point),
            distance_m=haversine_m(point, measure.centroid),
        )

    @staticmethod
    def _select(measured: List[_Measured], radius_m: float) -> Optional[_Measured]:
        containing = [m for m in measured if m.contains_point]
        if containing:
            return min(containing, key=lambda m: (m.area_m2, m.candidate.osm_id or ""))

        nearby = [m for m in measured if m.distance_m <= radius_m]
        if not nearby:
            return None
        return min(nearby, key=lambda m: (m.distance_m, m.candidate.osm_id or ""))

    def _to_footprint(self, m: _Measured, total_floor_area_m2: Optional[float]) -> BuildingFootprint:
        area = round(m.area_m2, 2)
        if area <= 0:
            raise InvariantViolation(f"Footprint {m.candidate.osm_id} has non-positive area {m.area_m2}")

        tags = m.candidate.tags
        building_type = tags.get("building")
        levels = _parse_levels(tags.get("building:levels"))

        return BuildingFootprint(
            vertices=close_ring(m.candidate.vertices),
            centroid=m.centroid,
            area_m2=area,
            floors=derive_floor_count(total_floor_area_m2, m.area_m2, levels),
            building_type=building_type,
            property_type=OSM_PROPERTY_TYPES.get(building_type or "", PropertyType.OTHER),
            perimeter_m=round(m.perimeter_m, 2),
            orientation_deg=round(m.bearing_deg, 1),
            orientation_label=orientation_label(m.bearing_deg),
            levels_tag=levels,
            roof_shape=tags.get("roof:shape"),
            osm_id=m.candidate.osm_id,
            contains_point=m.contains_point,
            distance_m=round(m.distance_m, 1),
        )


def derive_floor_count(
    total_floor_area_m2: Optional[float],
    footprint_area_m2: float,
    levels_tag: Optional[int] = None,
) -> int:
    """
    Floor count for a resolved footprint.

    round(total / footprint) floored at 1 when a total is declared;
    otherwise the OSM ``building:levels`` tag when it is at least 1;
    otherwise 1.
    """
    if total_floor_area_m2 and footprint_area_m2 > 0:
        return max(1, round(total_floor_area_m2 / footprint_area_m2))
    if levels_tag and levels_tag >= 1:
        return levels_tag
    return 1


def _parse_levels(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return None
