"""
Place endpoints:
  GET  /api/places         — every place
  GET  /api/places/nearby  — bounding-box search around ?lat&lng&radius (km)
  GET  /api/places/{id}    — a single place
  POST /api/places         — add a place
"""
import logging
import math
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from opentelemetry import trace

from petfinder.config import settings
from petfinder.routers.deps import get_storage
from petfinder.schemas import PlaceCreate, PlaceResponse
from petfinder.storage import RecordStore
from petfinder.telemetry import NEARBY_QUERY_LATENCY, NEARBY_RESULTS

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def _parse_float(raw: Optional[str]) -> Optional[float]:
    """Lenient float parse; None for missing, malformed or non-finite input."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


@router.get("", response_model=list[PlaceResponse])
async def list_places(storage: RecordStore = Depends(get_storage)):
    return await storage.get_all_places()


@router.get("/nearby", response_model=list[PlaceResponse])
async def nearby_places(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: Optional[str] = Query(None, description="Search radius in km"),
    storage: RecordStore = Depends(get_storage),
):
    """
    Approximate radius search.

    radius/111 degrees is applied to both axes, giving a square around the
    point; corners outside the true circle are included. A missing, zero or
    unparseable radius falls back to settings.default_radius_km.
    """
    start_time = time.time()
    with tracer.start_as_current_span("nearby_places") as span:
        lat_value = _parse_float(lat)
        lng_value = _parse_float(lng)
        if lat_value is None or lng_value is None:
            raise HTTPException(
                status_code=400, detail="Valid latitude and longitude required"
            )
        radius_km = _parse_float(radius) or settings.default_radius_km

        span.set_attribute("geo.lat", lat_value)
        span.set_attribute("geo.lng", lng_value)
        span.set_attribute("geo.radius_km", radius_km)

        places = await storage.get_places_by_coordinates(lat_value, lng_value, radius_km)

        NEARBY_RESULTS.observe(len(places))
        NEARBY_QUERY_LATENCY.observe(time.time() - start_time)
        span.set_attribute("geo.results", len(places))
        return places


@router.get("/{place_id}", response_model=PlaceResponse)
async def get_place(place_id: int, storage: RecordStore = Depends(get_storage)):
    place = await storage.get_place_by_id(place_id)
    if not place:
        raise HTTPException(status_code=404, detail="Place not found")
    return place


@router.post("", response_model=PlaceResponse, status_code=status.HTTP_201_CREATED)
async def create_place(body: PlaceCreate, storage: RecordStore = Depends(get_storage)):
    with tracer.start_as_current_span("create_place"):
        return await storage.create_place(body.model_dump())
