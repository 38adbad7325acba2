"""
Boundary operations.

Every operation returns an ``Outcome``: request handlers and the CLI branch
on ``outcome.kind`` and never see a raised core error.

Usage:
    ops = Operations.default()

    outcome = ops.resolve_building(postcode="SW1A 1AA")
    outcome = ops.estimate_solar(Coordinate(51.5, -0.12), roof_area_m2=30)
    outcome = ops.assess_postcode("SW1A 1AA", property_type="terraced", floor_area_m2=90)
"""

import logging
from typing import Any, Iterable, Optional

from .core.config import Settings, get_settings
from .core.errors import NotFound, Outcome, UpstreamUnavailable, ValidationError, capture
from .core.models import Assessment, BuildingFootprint, Coordinate, PropertyType
from .geo.footprint_resolver import BuildingResolver, OverpassFootprintProvider
from .geo.geocoder import Geocoder, NominatimGeocoder
from .geometry.irradiance import PVGISIrradianceProvider
from .geometry.pv_potential import SolarPotentialEstimator
from .geometry.roof_capacity import estimate_roof_capacity
from .scoring.engine import compute_score
from .utils.validation import validate_positive, validate_postcode

logger = logging.getLogger(__name__)


class Operations:
    """The four boundary operations plus the postcode pipeline."""

    def __init__(
        self,
        geocoder: Geocoder,
        resolver: BuildingResolver,
        solar_estimator: SolarPotentialEstimator,
        settings: Optional[Settings] = None,
    ):
        self.geocoder = geocoder
        self.resolver = resolver
        self.solar_estimator = solar_estimator
        self.settings = settings or get_settings()

    @classmethod
    def default(cls, settings: Optional[Settings] = None) -> "Operations":
        """Wire the network-backed collaborators (Nominatim, Overpass, PVGIS)."""
        settings = settings or get_settings()
        geocoder = NominatimGeocoder(settings)
        return cls(
            geocoder=geocoder,
            resolver=BuildingResolver(OverpassFootprintProvider(settings), geocoder, settings),
            solar_estimator=SolarPotentialEstimator(PVGISIrradianceProvider(settings), settings),
            settings=settings,
        )

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def resolve_building(
        self,
        coordinate: Optional[Coordinate] = None,
        postcode: Optional[str] = None,
        total_floor_area_m2: Optional[float] = None,
    ) -> Outcome[BuildingFootprint]:
        """Footprint at a coordinate or a postcode (exactly one of the two)."""
        if (coordinate is None) == (postcode is None):
            return Outcome.failure(ValidationError(
                "Give either a coordinate or a postcode",
                field="location",
            ))
        if postcode is not None:
            return capture(self.resolver.resolve_postcode, postcode, total_floor_area_m2)
        return capture(self.resolver.resolve, coordinate, total_floor_area_m2)

    def estimate_roof_capacity(
        self,
        floor_area_m2: Any,
        floors: Any = 1,
        property_type: Any = PropertyType.OTHER,
    ):
        return capture(estimate_roof_capacity, floor_area_m2, floors, property_type, self.settings)

    def estimate_solar(
        self,
        coordinate: Coordinate,
        roof_area_m2: Any = None,
        peak_power_kwp: Any = None,
    ):
        """
        Solar potential from a roof area, a declared peak power, or both.

        With only a peak power the roof is assumed just large enough to
        hold it, so no capping applies.
        """
        if roof_area_m2 is None:
            if peak_power_kwp is None:
                return Outcome.failure(ValidationError(
                    "Give a roof area or a peak power",
                    field="roof_area_m2",
                ))
            outcome = capture(_roof_for_peak_power, peak_power_kwp, self.settings)
            if not outcome.ok:
                return outcome
            roof_area_m2 = outcome.value
        return capture(
            self.solar_estimator.estimate,
            coordinate.lat,
            coordinate.lon,
            roof_area_m2,
            peak_power_kwp,
        )

    def compute_score(self, home: Any, improvements: Optional[Iterable[Any]] = None) -> Outcome[int]:
        return capture(compute_score, home, improvements, self.settings)

    def assess_postcode(
        self,
        postcode: str,
        property_type: Any = PropertyType.OTHER,
        floor_area_m2: Optional[float] = None,
        floors: Optional[int] = None,
    ) -> Outcome[Assessment]:
        """Postcode → coordinate → footprint (best effort) → roof → solar."""
        return capture(self._assess, postcode, property_type, floor_area_m2, floors)

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def _assess(
        self,
        postcode: str,
        property_type: Any,
        floor_area_m2: Optional[float],
        floors: Optional[int],
    ) -> Assessment:
        postcode = validate_postcode(postcode)
        coordinate = self.geocoder.geocode(postcode)
        notes = []

        footprint = None
        try:
            footprint = self.resolver.resolve(coordinate, floor_area_m2)
        except (NotFound, UpstreamUnavailable) as e:
            logger.info(f"No footprint for {postcode}: {e}", extra={"postcode": postcode})
            notes.append(f"Footprint unavailable: {e.message}")

        prop = PropertyType.parse(property_type)
        if prop is PropertyType.OTHER and footprint is not None:
            prop = footprint.property_type

        if floor_area_m2 is not None:
            storeys = floors or (footprint.floors if footprint else 1)
            roof = estimate_roof_capacity(floor_area_m2, storeys, prop, self.settings)
        elif footprint is not None:
            notes.append("Roof estimated from the mapped footprint")
            roof = estimate_roof_capacity(footprint.area_m2, 1, prop, self.settings)
        else:
            raise ValidationError(
                "Floor area is needed when no building footprint is available",
                field="floor_area_m2",
            )

        solar = self.solar_estimator.estimate(coordinate.lat, coordinate.lon, roof.roof_area_m2)
        return Assessment(
            postcode=postcode,
            coordinate=coordinate,
            roof=roof,
            solar=solar,
            footprint=footprint,
            notes=notes,
        )


def _roof_for_peak_power(peak_power_kwp: Any, settings: Settings) -> float:
    peak = validate_positive(peak_power_kwp, "peak_power_kwp", "kWp")
    return peak / settings.panel_density_kwp_per_m2
