"""
Roof Capacity Estimator

Estimates the rooftop area usable for PV panels from floor area, floor
count and built form. Shared or constrained roofs (flats, terraces) get a
smaller usable share than detached houses and bungalows.
"""

from typing import Any, Optional

from ..core.config import Settings, get_settings
from ..core.errors import InvariantViolation
from ..core.models import PropertyType, RoofCapacityEstimate
from ..utils.validation import validate_floor_count, validate_positive


def usable_fraction(property_type: PropertyType, settings: Optional[Settings] = None) -> float:
    """
    Share of the footprint usable for panels.

    Every PropertyType has an entry (enforced by Settings); OTHER is the
    conservative default for anything unrecognised.
    """
    settings = settings or get_settings()
    fractions = settings.roof_usable_fractions
    if property_type is PropertyType.DETACHED:
        return fractions[PropertyType.DETACHED]
    elif property_type is PropertyType.SEMI_DETACHED:
        return fractions[PropertyType.SEMI_DETACHED]
    elif property_type is PropertyType.TERRACED:
        return fractions[PropertyType.TERRACED]
    elif property_type is PropertyType.FLAT:
        return fractions[PropertyType.FLAT]
    elif property_type is PropertyType.BUNGALOW:
        return fractions[PropertyType.BUNGALOW]
    return fractions[PropertyType.OTHER]


def estimate_roof_capacity(
    floor_area_m2: Any,
    floors: Any = 1,
    property_type: Any = PropertyType.OTHER,
    settings: Optional[Settings] = None,
) -> RoofCapacityEstimate:
    """
    Estimate usable roof area.

    footprint = floor_area / max(floors, 1)
    roof_area = footprint × usable_fraction(property_type)

    Args:
        floor_area_m2: Total floor area (must be > 0)
        floors: Number of storeys; anything below 1 counts as 1
        property_type: PropertyType or free text (unknown text never fails)
        settings: Calibration source

    Returns:
        RoofCapacityEstimate (roof area rounded to 2 dp)

    Raises:
        ValidationError: If floor_area_m2 <= 0 or not a number, or floors is not a number
    """
    settings = settings or get_settings()
    area = validate_positive(floor_area_m2, "floor_area_m2", "m²")
    storeys = validate_floor_count(floors)
    prop = PropertyType.parse(property_type)

    fraction = usable_fraction(prop, settings)
    footprint = area / storeys
    roof_area = round(footprint * fraction, 2)

    if not 0 < fraction <= 1 or roof_area > round(footprint, 2):
        raise InvariantViolation(f"Roof area {roof_area} exceeds footprint {footprint} (fraction {fraction})")

    return RoofCapacityEstimate(
        roof_area_m2=roof_area,
        usable_fraction=fraction,
        property_type=prop,
        footprint_m2=round(footprint, 2),
    )
