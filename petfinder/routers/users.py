"""
User profile endpoints:
  POST  /api/users                — register a user
  GET   /api/users/{id}           — fetch a profile
  PATCH /api/users/{id}/allergies — replace the user's allergy list
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace

from petfinder.routers.deps import get_storage
from petfinder.schemas import AllergyUpdate, UserCreate, UserResponse
from petfinder.errors import USERNAME_TAKEN
from petfinder.storage import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, storage: RecordStore = Depends(get_storage)):
    """
    Register a new user.

    The password is bcrypt-hashed by the store and never echoed back;
    UserResponse has no password field.
    """
    with tracer.start_as_current_span("create_user"):
        if await storage.get_user_by_username(body.username):
            raise HTTPException(status_code=400, detail=USERNAME_TAKEN)
        return await storage.create_user(body.model_dump())


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, storage: RecordStore = Depends(get_storage)):
    user = await storage.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}/allergies", response_model=UserResponse)
async def update_allergies(
    user_id: int,
    body: AllergyUpdate,
    storage: RecordStore = Depends(get_storage),
):
    with tracer.start_as_current_span("update_allergies"):
        user = await storage.update_user_allergies(user_id, body.allergies)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info("User %s allergies set to %s", user_id, body.allergies)
        return user
