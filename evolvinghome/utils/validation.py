"""
Input validation utilities for EvolvingHome.

Provides validation for postcodes, coordinates and physical quantities.

Usage:
    from evolvinghome.utils.validation import (
        validate_postcode,
        validate_coordinates,
        ValidationError,
    )

    postcode = validate_postcode("sw1a1aa")      # -> "SW1A 1AA"
    lat, lon = validate_coordinates(51.5074, -0.1278)
"""

import logging
import math
import re
from typing import Any, Optional, Tuple

from ..core.errors import ValidationError

logger = logging.getLogger(__name__)


# Outward code + inward code, e.g. "SW1A 1AA", "TV1 2AB", "M1 1AE"
UK_POSTCODE_PATTERN = re.compile(r"^([A-Z]{1,2}\d[A-Z\d]?)\s*(\d[A-Z]{2})$")

# Great Britain + Northern Ireland, loose bounds
UK_BOUNDS = {
    "min_lat": 49.0,
    "max_lat": 61.0,
    "min_lon": -11.0,
    "max_lon": 2.0,
}


def validate_postcode(postcode: str) -> str:
    """
    Validate and normalise a UK postcode.

    Args:
        postcode: Postcode in any case, with or without the space

    Returns:
        Postcode in canonical form ("OUTWARD INWARD")

    Raises:
        ValidationError: If the postcode is empty or malformed
    """
    if not postcode or not str(postcode).strip():
        raise ValidationError(
            "Postcode cannot be empty",
            field="postcode",
            suggestions=["Enter a UK postcode like 'SW1A 1AA'"],
        )

    cleaned = " ".join(str(postcode).upper().split())
    match = UK_POSTCODE_PATTERN.match(cleaned)
    if not match:
        raise ValidationError(
            f"Invalid postcode format: '{postcode}'",
            field="postcode",
            suggestions=["UK postcodes look like 'SW1A 1AA' or 'M1 1AE'"],
        )

    return f"{match.group(1)} {match.group(2)}"


def validate_coordinates(
    latitude: Any,
    longitude: Any,
    warn_outside_uk: bool = False,
) -> Tuple[float, float]:
    """
    Validate geographic coordinates.

    Args:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        warn_outside_uk: Log a warning for points outside the UK

    Returns:
        Tuple of (latitude, longitude) as floats

    Raises:
        ValidationError: If coordinates are not finite numbers in range
    """
    lat = _to_finite_float(latitude, "latitude")
    lon = _to_finite_float(longitude, "longitude")

    if not (-90 <= lat <= 90):
        raise ValidationError(
            f"Invalid latitude {lat}: must be between -90 and 90",
            field="latitude",
        )

    if not (-180 <= lon <= 180):
        raise ValidationError(
            f"Invalid longitude {lon}: must be between -180 and 180",
            field="longitude",
        )

    if warn_outside_uk and not is_in_uk(lat, lon):
        logger.warning(f"Coordinates ({lat}, {lon}) are outside the UK")

    return (lat, lon)


def is_in_uk(latitude: float, longitude: float) -> bool:
    return (
        UK_BOUNDS["min_lat"] <= latitude <= UK_BOUNDS["max_lat"]
        and UK_BOUNDS["min_lon"] <= longitude <= UK_BOUNDS["max_lon"]
    )


def validate_positive(value: Any, field: str, unit: str = "") -> float:
    """
    Validate a strictly positive quantity (areas, capacities).

    Raises:
        ValidationError: If value is missing, not a number, or <= 0
    """
    number = _to_finite_float(value, field)
    if number <= 0:
        suffix = f" {unit}" if unit else ""
        raise ValidationError(
            f"{field} must be greater than zero, got {number}{suffix}",
            field=field,
        )
    return number


def validate_efficiency(value: Optional[Any]) -> float:
    """
    Validate a baseline EPC efficiency rating.

    Raises:
        ValidationError: If absent or outside [0, 100]
    """
    if value is None:
        raise ValidationError(
            "Baseline efficiency rating is missing",
            field="baseline_efficiency",
            suggestions=["Claim the home with EPC data or enter the rating manually"],
        )
    rating = _to_finite_float(value, "baseline_efficiency")
    if not 0 <= rating <= 100:
        raise ValidationError(
            f"Baseline efficiency {rating} is outside 0-100",
            field="baseline_efficiency",
        )
    return rating


def validate_floor_count(value: Any) -> int:
    """
    Validate a storey count. Missing or below 1 counts as 1.

    Raises:
        ValidationError: If value is present but not a finite number
    """
    if value is None:
        return 1
    return max(int(_to_finite_float(value, "floors")), 1)


def _to_finite_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number: got '{value}'", field=field)
    try:
        number = float(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{field} must be a number: got '{value}'", field=field)
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be finite: got '{value}'", field=field)
    return number
