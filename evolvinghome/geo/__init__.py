"""
EvolvingHome Geo Module

Postcode geocoding and building footprint resolution.

Key features:
- Nominatim postcode lookup with an injectable TTL cache
- OSM Overpass building polygons (ways and multipolygon relations)
- Point-in-polygon match, nearest-building fallback within a radius
- Planar footprint area on a local projection
"""

from .cache import TTLCache
from .geocoder import Geocoder, NominatimGeocoder
from .footprint_resolver import (
    BuildingResolver,
    FootprintCandidate,
    FootprintProvider,
    OverpassFootprintProvider,
    derive_floor_count,
)

__all__ = [
    "TTLCache",
    "Geocoder",
    "NominatimGeocoder",
    "BuildingResolver",
    "FootprintCandidate",
    "FootprintProvider",
    "OverpassFootprintProvider",
    "derive_floor_count",
]
