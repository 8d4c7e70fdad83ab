"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Wire format is camelCase (``displayName``, ``allergyFeatures``); Python code
uses snake_case field names and either spelling is accepted on input.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ──────────────────────────── Users ───────────────────────────────────────

class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, max_length=255)
    avatar_url: Optional[str] = None
    allergies: list[str] = Field(default_factory=list)


class UserResponse(CamelModel):
    """Public view of a user — the password hash is never part of it."""
    id: int
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    allergies: list[str] = Field(default_factory=list)
    created_at: datetime


class AllergyUpdate(CamelModel):
    allergies: list[str]


# ──────────────────────────── Places ──────────────────────────────────────

class PlaceCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: str
    image_url: Optional[str] = None
    latitude: float
    longitude: float
    address: str
    allergy_features: list[str] = Field(default_factory=list)
    allergy_safe: bool = False


class PlaceResponse(CamelModel):
    id: int
    name: str
    description: str
    image_url: Optional[str] = None
    latitude: float
    longitude: float
    address: str
    allergy_features: list[str] = Field(default_factory=list)
    allergy_safe: bool = False
    rating: Optional[float] = None
    created_at: datetime


# ──────────────────────────── Threads ─────────────────────────────────────

class ThreadCreate(CamelModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    user_id: StrictInt


class ThreadResponse(CamelModel):
    id: int
    title: str
    content: str
    user_id: int
    like_count: int
    comment_count: int
    created_at: datetime


class LikeRequest(CamelModel):
    increment: StrictBool


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1)
    user_id: StrictInt


class CommentResponse(CamelModel):
    id: int
    content: str
    thread_id: int
    user_id: int
    like_count: int
    created_at: datetime


# ──────────────────────────── Favorites ───────────────────────────────────

class FavoriteRequest(CamelModel):
    user_id: StrictInt
    place_id: StrictInt


class FavoriteResponse(CamelModel):
    id: int
    user_id: int
    place_id: int
    created_at: datetime


class FavoriteCheck(CamelModel):
    is_favorite: bool
