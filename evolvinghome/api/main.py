"""
EvolvingHome REST API - FastAPI Application.

Thin adapter over the boundary operations: parameter marshaling and
error-to-status mapping only.

Endpoints:
    GET  /                          - API info and health check
    GET  /building                  - Footprint at lat/lon or a postcode
    GET  /roof-capacity             - Usable roof area
    GET  /solar                     - Solar potential (roof area or postcode)
    POST /homes                     - Claim a home (initial score)
    POST /homes/{home_id}/score     - Recalculate a home's score
    POST /homes/{home_id}/improvements - Log an improvement
    GET  /homes/{home_id}/history   - Score history
    GET  /categories                - Improvement categories and deltas

Usage:
    uvicorn evolvinghome.api.main:app --reload --port 8000
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..core.config import Settings, get_settings
from ..core.errors import ErrorKind, Outcome, capture
from ..core.models import Coordinate, HomeRecord, ImprovementCategory, PropertyType
from ..db.repository import SupabaseStore
from ..db.store import HomeStore, InMemoryStore
from ..operations import Operations
from ..scoring.service import MANUAL_TRIGGER, HomeScoreService
from ..utils.logging_config import ensure_logging

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
    ErrorKind.INVARIANT_VIOLATION: 500,
}


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class ClaimHomeRequest(BaseModel):
    """Claim a home with its EPC baseline."""
    address: str = Field(..., description="Street address", examples=["1 High Street"])
    postcode: str = Field(..., description="UK postcode", examples=["TV1 2AB"])
    baseline_efficiency: float = Field(..., description="EPC efficiency 0-100", examples=[62])
    total_floor_area_m2: Optional[float] = Field(None, description="Total floor area in m²")
    property_type: str = Field("other", description="detached, semi-detached, terraced, flat, bungalow")
    lat: Optional[float] = None
    lon: Optional[float] = None


class ImprovementRequest(BaseModel):
    """Log an energy improvement."""
    category: ImprovementCategory
    title: str = ""
    logged_by: Optional[str] = None
    cost: Optional[float] = None
    grant_applied: bool = False
    grant_amount: Optional[float] = None
    estimated_annual_savings: Optional[float] = None
    completed_at: Optional[date] = None


class RecalculateRequest(BaseModel):
    trigger: str = MANUAL_TRIGGER


class ScoreResponse(BaseModel):
    home_id: str
    score: int
    updated: bool


class CategoryInfo(BaseModel):
    category: str
    delta: float


def _unwrap(outcome: Outcome):
    """Return the value or raise the mapped HTTP error."""
    if outcome.ok:
        return outcome.value
    raise HTTPException(status_code=ERROR_STATUS[outcome.kind], detail=outcome.error.to_dict())


def create_app(
    operations: Optional[Operations] = None,
    store: Optional[HomeStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the API around injected collaborators."""
    settings = settings or get_settings()
    operations = operations or Operations.default(settings)
    if store is None:
        if settings.supabase_url and settings.supabase_key:
            store = SupabaseStore()
        else:
            logger.warning("Supabase not configured, using in-memory store")
            store = InMemoryStore()
    service = HomeScoreService(store, settings)

    app = FastAPI(
        title="EvolvingHome API",
        description="Home energy score, building footprint and rooftop solar estimates",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/", tags=["General"])
    def root():
        """API info and health check."""
        return {
            "name": "EvolvingHome API",
            "version": API_VERSION,
            "status": "healthy",
            "endpoints": {
                "building": "GET /building",
                "roof_capacity": "GET /roof-capacity",
                "solar": "GET /solar",
                "claim_home": "POST /homes",
                "recalculate": "POST /homes/{home_id}/score",
                "log_improvement": "POST /homes/{home_id}/improvements",
                "history": "GET /homes/{home_id}/history",
                "categories": "GET /categories",
            },
            "documentation": "/docs",
        }

    @app.get("/building", tags=["Geometry"])
    def building(
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        postcode: Optional[str] = None,
        total_floor_area: Optional[float] = Query(None, description="Declared total floor area (m²)"),
    ):
        """Resolve the building footprint at a coordinate or postcode."""
        coordinate = Coordinate(lat, lon) if lat is not None and lon is not None else None
        footprint = _unwrap(operations.resolve_building(coordinate, postcode, total_floor_area))
        return footprint.to_dict()

    @app.get("/roof-capacity", tags=["Geometry"])
    def roof_capacity(
        floor_area: float = Query(..., description="Total floor area (m²)"),
        floors: int = 1,
        property_type: str = "other",
    ):
        """Estimate usable roof area."""
        return _unwrap(operations.estimate_roof_capacity(floor_area, floors, property_type)).to_dict()

    @app.get("/solar", tags=["Solar"])
    def solar(
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        roof_area: Optional[float] = Query(None, description="Usable roof area (m²)"),
        peak_power: Optional[float] = Query(None, description="Declared system size (kWp)"),
        postcode: Optional[str] = None,
        property_type: str = "other",
        floor_area: Optional[float] = None,
        floors: Optional[int] = None,
    ):
        """Solar potential for a coordinate + roof area, or a full postcode assessment."""
        if postcode:
            return _unwrap(operations.assess_postcode(postcode, property_type, floor_area, floors)).to_dict()
        if lat is None or lon is None:
            raise HTTPException(
                status_code=400,
                detail={"error": "Give lat and lon, or a postcode", "kind": ErrorKind.VALIDATION.value},
            )
        return _unwrap(operations.estimate_solar(Coordinate(lat, lon), roof_area, peak_power)).to_dict()

    @app.post("/homes", tags=["Score"], status_code=201)
    def claim_home(request: ClaimHomeRequest):
        """Claim a home and record its initial score."""
        coordinate = Coordinate(request.lat, request.lon) if request.lat is not None and request.lon is not None else None
        home = HomeRecord(
            address=request.address,
            postcode=request.postcode,
            coordinate=coordinate,
            total_floor_area_m2=request.total_floor_area_m2,
            baseline_efficiency=request.baseline_efficiency,
            property_type=PropertyType.parse(request.property_type),
        )
        return _unwrap(capture(service.claim_home, home)).to_dict()

    @app.post("/homes/{home_id}/score", response_model=ScoreResponse, tags=["Score"])
    def recalculate(home_id: str, request: Optional[RecalculateRequest] = None):
        """Recalculate a home's score; history is only written when it changes."""
        trigger = request.trigger if request else MANUAL_TRIGGER
        score, updated = _unwrap(capture(service.recalculate, home_id, trigger))
        return ScoreResponse(home_id=home_id, score=score, updated=updated)

    @app.post("/homes/{home_id}/improvements", tags=["Score"], status_code=201)
    def log_improvement(home_id: str, request: ImprovementRequest):
        """Log an improvement and recalculate the score."""
        improvement = _unwrap(capture(service.log_improvement, home_id, **request.model_dump()))
        return improvement.to_dict()

    @app.get("/homes/{home_id}/history", tags=["Score"])
    def history(home_id: str):
        """Append-only score history, oldest first."""
        entries = _unwrap(capture(service.history, home_id))
        return {"home_id": home_id, "history": [e.to_dict() for e in entries]}

    @app.get("/categories", response_model=List[CategoryInfo], tags=["Score"])
    def categories():
        """Improvement categories and the points each adds."""
        return [
            CategoryInfo(category=c.value, delta=settings.score_deltas[c])
            for c in ImprovementCategory
        ]

    app.state.operations = operations
    app.state.score_service = service
    return app


ensure_logging(get_settings().log_level, get_settings().log_file)
app = create_app()


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """Run the API server."""
    import uvicorn
    uvicorn.run(
        "evolvinghome.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
    return 0


if __name__ == "__main__":
    import sys
    sys.exit(main())
