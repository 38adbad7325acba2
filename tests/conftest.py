"""
Pytest configuration and fixtures for EvolvingHome tests.

Provides reusable test fixtures for:
- Settings with default calibration
- Fake geocoder, footprint and irradiance collaborators
- A 120 m² square footprint around central London
- In-memory store and score service
"""

import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from evolvinghome.core.config import Settings
from evolvinghome.core.errors import GeocodeNotFound
from evolvinghome.core.models import Coordinate, HomeRecord, PropertyType
from evolvinghome.db.store import InMemoryStore
from evolvinghome.geo.footprint_resolver import BuildingResolver, FootprintCandidate
from evolvinghome.geometry.pv_potential import SolarPotentialEstimator
from evolvinghome.operations import Operations
from evolvinghome.scoring.service import HomeScoreService
from evolvinghome.utils.validation import validate_postcode


LONDON = Coordinate(51.5074, -0.1278)
METRES_PER_DEGREE_LAT = 111_320.0


def square_around(center: Coordinate, side_m: float) -> List[Coordinate]:
    """Open square ring of ``side_m`` metres centred on ``center``."""
    half_lat = (side_m / 2) / METRES_PER_DEGREE_LAT
    half_lon = (side_m / 2) / (METRES_PER_DEGREE_LAT * math.cos(math.radians(center.lat)))
    return [
        Coordinate(center.lat - half_lat, center.lon - half_lon),
        Coordinate(center.lat - half_lat, center.lon + half_lon),
        Coordinate(center.lat + half_lat, center.lon + half_lon),
        Coordinate(center.lat + half_lat, center.lon - half_lon),
    ]


def offset(center: Coordinate, north_m: float = 0.0, east_m: float = 0.0) -> Coordinate:
    """Move ``center`` by a few metres."""
    return Coordinate(
        center.lat + north_m / METRES_PER_DEGREE_LAT,
        center.lon + east_m / (METRES_PER_DEGREE_LAT * math.cos(math.radians(center.lat))),
    )


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeGeocoder:
    """Geocoder answering from a fixed table."""

    def __init__(self, table: Dict[str, Coordinate]):
        self.table = table
        self.calls: List[str] = []

    def geocode(self, postcode: str, country: Optional[str] = None) -> Coordinate:
        normalized = validate_postcode(postcode)
        self.calls.append(normalized)
        if normalized not in self.table:
            raise GeocodeNotFound(f"Postcode not found: {normalized}")
        return self.table[normalized]


class FakeFootprintProvider:
    """Footprint provider returning a fixed candidate list."""

    def __init__(self, candidates: List[FootprintCandidate]):
        self.candidates = candidates
        self.calls: List[tuple] = []

    def buildings_near(self, coordinate: Coordinate, radius_m: float) -> List[FootprintCandidate]:
        self.calls.append((coordinate, radius_m))
        return list(self.candidates)


class FixedIrradianceProvider:
    """Irradiance provider with one factor everywhere."""

    source = "fixed"

    def __init__(self, factor: float = 1000.0):
        self.factor = factor
        self.calls: List[Coordinate] = []

    def annual_yield(self, coordinate: Coordinate) -> float:
        self.calls.append(coordinate)
        return self.factor


class StepClock:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc), step_s: float = 1.0):
        self.now = start
        self.step = timedelta(seconds=step_s)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


# =============================================================================
# SETTINGS
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Default calibration, no Supabase."""
    return Settings(supabase_url=None, supabase_key=None)


# =============================================================================
# GEOMETRY FIXTURES
# =============================================================================

@pytest.fixture
def london() -> Coordinate:
    return LONDON


@pytest.fixture
def square_120m2() -> List[Coordinate]:
    """Square footprint of 120 m² centred on central London."""
    return square_around(LONDON, math.sqrt(120.0))


@pytest.fixture
def home_candidate(square_120m2) -> FootprintCandidate:
    return FootprintCandidate(
        vertices=tuple(square_120m2),
        tags={"building": "semidetached_house", "building:levels": "2", "roof:shape": "gabled"},
        osm_id="way/1001",
    )


@pytest.fixture
def neighbour_candidate() -> FootprintCandidate:
    """A 10 m square whose centre is 30 m east of the London point."""
    return FootprintCandidate(
        vertices=tuple(square_around(offset(LONDON, east_m=30), 10.0)),
        tags={"building": "detached"},
        osm_id="way/1002",
    )


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================

@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder({"TV1 2AB": LONDON})


@pytest.fixture
def footprint_provider(home_candidate, neighbour_candidate) -> FakeFootprintProvider:
    return FakeFootprintProvider([neighbour_candidate, home_candidate])


@pytest.fixture
def irradiance() -> FixedIrradianceProvider:
    return FixedIrradianceProvider(1000.0)


@pytest.fixture
def resolver(footprint_provider, geocoder, settings) -> BuildingResolver:
    return BuildingResolver(footprint_provider, geocoder=geocoder, settings=settings)


@pytest.fixture
def solar_estimator(irradiance, settings) -> SolarPotentialEstimator:
    return SolarPotentialEstimator(irradiance, settings)


@pytest.fixture
def operations(geocoder, resolver, solar_estimator, settings) -> Operations:
    return Operations(geocoder, resolver, solar_estimator, settings)


# =============================================================================
# PERSISTENCE FIXTURES
# =============================================================================

@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def score_service(store, settings, clock) -> HomeScoreService:
    return HomeScoreService(store, settings, clock=clock)


@pytest.fixture
def sample_home() -> HomeRecord:
    """Unclaimed home with an EPC baseline of 62."""
    return HomeRecord(
        address="1 Test Villas",
        postcode="TV1 2AB",
        coordinate=LONDON,
        total_floor_area_m2=240.0,
        baseline_efficiency=62,
        property_type=PropertyType.SEMI_DETACHED,
    )
