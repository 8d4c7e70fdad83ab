"""
Favorite endpoints:
  GET    /api/users/{user_id}/favorites — the user's favorite places
  POST   /api/favorites                 — add {userId, placeId}
  DELETE /api/favorites                 — remove {userId, placeId}
  GET    /api/favorites/check           — ?userId&placeId → {isFavorite}

Adding an existing pair is a 400 "Already in favorites"; removing a missing
pair is a 404. Clients rely on both to reconcile optimistic toggles.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from opentelemetry import trace

from petfinder.errors import DuplicateError
from petfinder.routers.deps import get_storage
from petfinder.schemas import FavoriteCheck, FavoriteRequest, FavoriteResponse, PlaceResponse
from petfinder.storage import RecordStore
from petfinder.telemetry import FAVORITE_CHANGES_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("/users/{user_id}/favorites", response_model=list[PlaceResponse])
async def list_favorite_places(user_id: int, storage: RecordStore = Depends(get_storage)):
    return await storage.get_favorite_places_by_user_id(user_id)


@router.post("/favorites", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
async def add_favorite(body: FavoriteRequest, storage: RecordStore = Depends(get_storage)):
    with tracer.start_as_current_span("add_favorite") as span:
        span.set_attribute("favorite.user_id", body.user_id)
        span.set_attribute("favorite.place_id", body.place_id)
        try:
            favorite = await storage.create_favorite(body.user_id, body.place_id)
        except DuplicateError:
            FAVORITE_CHANGES_TOTAL.labels(action="add", outcome="duplicate").inc()
            raise

        FAVORITE_CHANGES_TOTAL.labels(action="add", outcome="ok").inc()
        logger.info("User %s favorited place %s", body.user_id, body.place_id)
        return favorite


@router.delete("/favorites", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(body: FavoriteRequest, storage: RecordStore = Depends(get_storage)):
    with tracer.start_as_current_span("remove_favorite"):
        removed = await storage.delete_favorite(body.user_id, body.place_id)
        if not removed:
            FAVORITE_CHANGES_TOTAL.labels(action="remove", outcome="missing").inc()
            raise HTTPException(status_code=404, detail="Favorite not found")

        FAVORITE_CHANGES_TOTAL.labels(action="remove", outcome="ok").inc()
        logger.info("User %s unfavorited place %s", body.user_id, body.place_id)


@router.get("/favorites/check", response_model=FavoriteCheck)
async def check_favorite(
    user_id: int = Query(..., alias="userId"),
    place_id: int = Query(..., alias="placeId"),
    storage: RecordStore = Depends(get_storage),
):
    return FavoriteCheck(is_favorite=await storage.check_is_favorite(user_id, place_id))
