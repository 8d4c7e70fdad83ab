"""
Record store — every database read and write goes through here.

Routers never build queries themselves; they receive a DatabaseStorage bound
to the request's AsyncSession. Lookups that find nothing return None / False /
an empty list. Driver failures surface as StorageError, and unique-key
violations as DuplicateError.
"""
import functools
import logging
from typing import Optional, Protocol

import bcrypt
from sqlalchemy import and_, case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petfinder.errors import ALREADY_IN_FAVORITES, USERNAME_TAKEN, DuplicateError, StorageError
from petfinder.geo import bounding_box
from petfinder.models import Comment, Favorite, Place, Thread, User

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    async def get_user(self, user_id: int) -> Optional[User]: ...
    async def get_user_by_username(self, username: str) -> Optional[User]: ...
    async def create_user(self, data: dict) -> User: ...
    async def update_user_allergies(self, user_id: int, allergies: list[str]) -> Optional[User]: ...

    async def get_all_places(self) -> list[Place]: ...
    async def get_place_by_id(self, place_id: int) -> Optional[Place]: ...
    async def get_places_by_coordinates(self, lat: float, lng: float, radius_km: float) -> list[Place]: ...
    async def create_place(self, data: dict) -> Place: ...
    async def update_place_rating(self, place_id: int, rating: float) -> Optional[Place]: ...

    async def get_all_threads(self) -> list[Thread]: ...
    async def get_thread_by_id(self, thread_id: int) -> Optional[Thread]: ...
    async def create_thread(self, data: dict) -> Thread: ...
    async def update_thread_like_count(self, thread_id: int, increment: bool) -> Optional[Thread]: ...
    async def update_thread_comment_count(self, thread_id: int, increment: bool) -> Optional[Thread]: ...

    async def get_comments_by_thread_id(self, thread_id: int) -> list[Comment]: ...
    async def create_comment(self, data: dict) -> Comment: ...

    async def get_favorites_by_user_id(self, user_id: int) -> list[Favorite]: ...
    async def get_favorite_places_by_user_id(self, user_id: int) -> list[Place]: ...
    async def create_favorite(self, user_id: int, place_id: int) -> Favorite: ...
    async def delete_favorite(self, user_id: int, place_id: int) -> bool: ...
    async def check_is_favorite(self, user_id: int, place_id: int) -> bool: ...


def _storage_op(fn):
    """Re-raise driver errors as StorageError, leaving app errors untouched."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("Storage failure in %s: %s", fn.__name__, exc)
            raise StorageError(f"{fn.__name__} failed") from exc

    return wrapper


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


class DatabaseStorage:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _reload(self, model, pk):
        # Bulk UPDATE bypasses the identity map; force a fresh read
        result = await self.session.execute(
            select(model).where(model.id == pk).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # ─────────────────────────── Users ────────────────────────────────────

    @_storage_op
    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    @_storage_op
    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @_storage_op
    async def create_user(self, data: dict) -> User:
        data = dict(data)
        data["password"] = hash_password(data["password"])
        data["allergies"] = list(data.get("allergies") or [])
        user = User(**data)
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateError(USERNAME_TAKEN) from exc
        await self.session.refresh(user)
        logger.info("Created user %s (id=%s)", user.username, user.id)
        return user

    @_storage_op
    async def update_user_allergies(self, user_id: int, allergies: list[str]) -> Optional[User]:
        user = await self.session.get(User, user_id)
        if user is None:
            return None
        user.allergies = list(allergies)
        await self.session.flush()
        return user

    # ─────────────────────────── Places ───────────────────────────────────

    @_storage_op
    async def get_all_places(self) -> list[Place]:
        result = await self.session.execute(select(Place).order_by(Place.id))
        return list(result.scalars().all())

    @_storage_op
    async def get_place_by_id(self, place_id: int) -> Optional[Place]:
        return await self.session.get(Place, place_id)

    @_storage_op
    async def get_places_by_coordinates(self, lat: float, lng: float, radius_km: float) -> list[Place]:
        """
        Approximate radius search.

        Uses a lat/lng bounding box (1 degree ≈ 111 km on both axes), so
        places in the corners of the box outside the true circle are
        returned too. Callers that need the circle can post-filter with
        geo.within_radius().
        """
        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km)
        result = await self.session.execute(
            select(Place)
            .where(
                Place.latitude.between(min_lat, max_lat),
                Place.longitude.between(min_lng, max_lng),
            )
            .order_by(Place.id)
        )
        return list(result.scalars().all())

    @_storage_op
    async def create_place(self, data: dict) -> Place:
        data = dict(data)
        data["allergy_features"] = list(data.get("allergy_features") or [])
        place = Place(**data)
        self.session.add(place)
        await self.session.flush()
        await self.session.refresh(place)
        logger.info("Created place %r (id=%s)", place.name, place.id)
        return place

    @_storage_op
    async def update_place_rating(self, place_id: int, rating: float) -> Optional[Place]:
        place = await self.session.get(Place, place_id)
        if place is None:
            return None
        place.rating = rating
        await self.session.flush()
        return place

    # ─────────────────────────── Threads ──────────────────────────────────

    @_storage_op
    async def get_all_threads(self) -> list[Thread]:
        result = await self.session.execute(
            select(Thread).order_by(Thread.created_at.desc(), Thread.id.desc())
        )
        return list(result.scalars().all())

    @_storage_op
    async def get_thread_by_id(self, thread_id: int) -> Optional[Thread]:
        return await self.session.get(Thread, thread_id)

    @_storage_op
    async def create_thread(self, data: dict) -> Thread:
        thread = Thread(**data, like_count=0, comment_count=0)
        self.session.add(thread)
        await self.session.flush()
        await self.session.refresh(thread)
        return thread

    async def _bump_thread_counter(self, thread_id: int, column, increment: bool) -> Optional[Thread]:
        # Computed in SQL so concurrent likes don't overwrite each other
        if increment:
            expression = column + 1
        else:
            expression = case((column > 0, column - 1), else_=0)
        await self.session.execute(
            update(Thread)
            .where(Thread.id == thread_id)
            .values({column.key: expression})
            .execution_options(synchronize_session=False)
        )
        return await self._reload(Thread, thread_id)

    @_storage_op
    async def update_thread_like_count(self, thread_id: int, increment: bool) -> Optional[Thread]:
        return await self._bump_thread_counter(thread_id, Thread.like_count, increment)

    @_storage_op
    async def update_thread_comment_count(self, thread_id: int, increment: bool) -> Optional[Thread]:
        return await self._bump_thread_counter(thread_id, Thread.comment_count, increment)

    # ─────────────────────────── Comments ─────────────────────────────────

    @_storage_op
    async def get_comments_by_thread_id(self, thread_id: int) -> list[Comment]:
        result = await self.session.execute(
            select(Comment)
            .where(Comment.thread_id == thread_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return list(result.scalars().all())

    @_storage_op
    async def create_comment(self, data: dict) -> Comment:
        """Insert a comment and bump the parent's comment_count in the same transaction."""
        comment = Comment(**data, like_count=0)
        self.session.add(comment)
        await self.session.flush()
        await self.session.refresh(comment)
        await self._bump_thread_counter(comment.thread_id, Thread.comment_count, True)
        return comment

    # ─────────────────────────── Favorites ────────────────────────────────

    @_storage_op
    async def get_favorites_by_user_id(self, user_id: int) -> list[Favorite]:
        result = await self.session.execute(
            select(Favorite).where(Favorite.user_id == user_id).order_by(Favorite.id)
        )
        return list(result.scalars().all())

    @_storage_op
    async def get_favorite_places_by_user_id(self, user_id: int) -> list[Place]:
        result = await self.session.execute(
            select(Place)
            .join(Favorite, Favorite.place_id == Place.id)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.id)
        )
        return list(result.scalars().all())

    @_storage_op
    async def create_favorite(self, user_id: int, place_id: int) -> Favorite:
        if await self.check_is_favorite(user_id, place_id):
            raise DuplicateError(ALREADY_IN_FAVORITES)

        favorite = Favorite(user_id=user_id, place_id=place_id)
        self.session.add(favorite)
        try:
            # A concurrent request can insert between the check and here;
            # the session is unusable afterwards and get_db rolls it back.
            await self.session.flush()
        except IntegrityError as exc:
            logger.info("Favorite race lost for user=%s place=%s", user_id, place_id)
            raise DuplicateError(ALREADY_IN_FAVORITES) from exc
        await self.session.refresh(favorite)
        return favorite

    @_storage_op
    async def delete_favorite(self, user_id: int, place_id: int) -> bool:
        if not await self.check_is_favorite(user_id, place_id):
            return False
        await self.session.execute(
            delete(Favorite).where(
                and_(Favorite.user_id == user_id, Favorite.place_id == place_id)
            )
        )
        return True

    @_storage_op
    async def check_is_favorite(self, user_id: int, place_id: int) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(Favorite)
            .where(Favorite.user_id == user_id, Favorite.place_id == place_id)
        )
        return result.scalar_one() > 0
