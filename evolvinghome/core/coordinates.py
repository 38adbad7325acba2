"""
Coordinate transformation and polygon measurement utilities.

Geographic degrees are not uniform distance units, so footprint geometry is
always measured after projecting the vertices into a local azimuthal
equidistant plane centred on the polygon (metres, negligible distortion at
building scale).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from pyproj import CRS, Transformer
from shapely.geometry import Point, Polygon

from .models import Coordinate

EARTH_RADIUS_M = 6_371_000.0
WGS84 = "EPSG:4326"


class LocalProjection:
    """
    Project WGS84 coordinates onto a metric plane around an origin.

    Usage:
        projection = LocalProjection.centered_on(vertices)
        xy = projection.to_local(vertices)   # (N, 2) array in metres
    """

    def __init__(self, origin: Coordinate):
        self.origin = origin
        self.crs = CRS.from_proj4(
            f"+proj=aeqd +lat_0={origin.lat} +lon_0={origin.lon} "
            "+x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
        )
        self._wgs84_to_local = Transformer.from_crs(WGS84, self.crs, always_xy=True)
        self._local_to_wgs84 = Transformer.from_crs(self.crs, WGS84, always_xy=True)

    @classmethod
    def centered_on(cls, vertices: Sequence[Coordinate]) -> "LocalProjection":
        return cls(approximate_centroid(vertices))

    def to_local(self, vertices: Sequence[Coordinate]) -> np.ndarray:
        """Convert vertices to an (N, 2) array of (x east, y north) metres."""
        lons = np.array([v.lon for v in vertices], dtype=float)
        lats = np.array([v.lat for v in vertices], dtype=float)
        xs, ys = self._wgs84_to_local.transform(lons, lats)
        return np.column_stack([np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)])

    def point_to_local(self, point: Coordinate) -> tuple[float, float]:
        x, y = self._wgs84_to_local.transform(point.lon, point.lat)
        return (float(x), float(y))

    def to_wgs84(self, x: float, y: float) -> Coordinate:
        lon, lat = self._local_to_wgs84.transform(x, y)
        return Coordinate(lat=float(lat), lon=float(lon))


@dataclass(frozen=True)
class PolygonMeasure:
    """Planar measurements of a footprint ring."""

    area_m2: float
    perimeter_m: float
    centroid: Coordinate
    longest_wall_m: float
    longest_wall_bearing_deg: float


def close_ring(vertices: Sequence[Coordinate]) -> tuple[Coordinate, ...]:
    """Return the ring with the first vertex repeated at the end."""
    ring = tuple(vertices)
    if ring and ring[0] != ring[-1]:
        ring = ring + (ring[0],)
    return ring


def open_ring(vertices: Sequence[Coordinate]) -> tuple[Coordinate, ...]:
    """Return the ring without the closing repeat."""
    ring = tuple(vertices)
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


def distinct_vertex_count(vertices: Sequence[Coordinate]) -> int:
    return len(set(open_ring(vertices)))


def approximate_centroid(vertices: Sequence[Coordinate]) -> Coordinate:
    """Vertex mean; good enough as a projection origin."""
    ring = open_ring(vertices)
    if not ring:
        raise ValueError("Cannot take the centroid of an empty ring")
    return Coordinate(
        lat=sum(v.lat for v in ring) / len(ring),
        lon=sum(v.lon for v in ring) / len(ring),
    )


def shoelace_area(xy: np.ndarray) -> float:
    """
    Signed polygon area via the shoelace formula.

    Positive for counter-clockwise rings. Accepts open or closed rings.
    """
    if len(xy) < 3:
        return 0.0
    x = xy[:, 0]
    y = xy[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def ring_perimeter(xy: np.ndarray) -> float:
    """Length of the closed ring in the same units as ``xy``."""
    if len(xy) < 2:
        return 0.0
    edges = np.roll(xy, -1, axis=0) - xy
    lengths = np.hypot(edges[:, 0], edges[:, 1])
    if np.allclose(xy[0], xy[-1]):
        lengths = lengths[:-1]
    return float(lengths.sum())


def longest_edge(xy: np.ndarray) -> tuple[float, float]:
    """
    Return (length, bearing) of the longest edge.

    Bearing is degrees clockwise from north, 0-360.
    """
    best_length, best_bearing = 0.0, 0.0
    n = len(xy)
    for i in range(n):
        dx, dy = xy[(i + 1) % n] - xy[i]
        length = math.hypot(dx, dy)
        if length > best_length:
            best_length = length
            best_bearing = math.degrees(math.atan2(dx, dy)) % 360
    return best_length, best_bearing


def orientation_label(bearing_deg: float) -> str:
    """Map a bearing to an 8-point compass label, e.g. 'south-facing'."""
    labels = ["north", "northeast", "east", "southeast", "south", "southwest", "west", "northwest"]
    index = int(((bearing_deg % 360) + 22.5) // 45) % 8
    return f"{labels[index]}-facing"


def measure_polygon(vertices: Sequence[Coordinate], projection: LocalProjection | None = None) -> PolygonMeasure:
    """
    Project a WGS84 ring and measure it.

    Args:
        vertices: Ring in WGS84, closed or open
        projection: Optional projection; defaults to one centred on the ring

    Returns:
        PolygonMeasure with absolute shoelace area in m²
    """
    ring = open_ring(vertices)
    projection = projection or LocalProjection.centered_on(ring)
    xy = projection.to_local(ring)

    area = abs(shoelace_area(xy))
    if area > 0:
        centroid_xy = Polygon(xy).centroid
        centroid = projection.to_wgs84(centroid_xy.x, centroid_xy.y)
    else:
        centroid = approximate_centroid(ring)
    wall_m, bearing = longest_edge(xy)

    return PolygonMeasure(
        area_m2=area,
        perimeter_m=ring_perimeter(xy),
        centroid=centroid,
        longest_wall_m=wall_m,
        longest_wall_bearing_deg=bearing,
    )


def polygon_contains(vertices: Sequence[Coordinate], point: Coordinate) -> bool:
    """Point-in-polygon test in a local plane (boundary counts as inside)."""
    ring = open_ring(vertices)
    if len(ring) < 3:
        return False
    projection = LocalProjection.centered_on(ring)
    polygon = Polygon(projection.to_local(ring))
    if not polygon.is_valid:
        polygon = polygon.buffer(0)
    return polygon.covers(Point(projection.point_to_local(point)))


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in metres."""
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lon - a.lon)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))
