from unittest.mock import AsyncMock

import bcrypt
import pytest
from sqlalchemy import text

from petfinder.errors import ALREADY_IN_FAVORITES, DuplicateError, StorageError
from petfinder.geo import within_radius
from tests.factories import SF


async def _place(storage, name, lat, lng, **extra):
    return await storage.create_place(
        {
            "name": name,
            "description": extra.get("description", "pets welcome"),
            "latitude": lat,
            "longitude": lng,
            "address": "somewhere",
            "allergy_features": extra.get("allergy_features", []),
        }
    )


async def _thread(storage, title="Dog-friendly brunch?"):
    return await storage.create_thread({"title": title, "content": "Any tips?", "user_id": 1})


async def test_create_user_hashes_password(storage):
    user = await storage.create_user(
        {"username": "emily", "password": "s3cret", "display_name": "Emily", "allergies": ["Peanuts"]}
    )
    assert user.id is not None
    assert user.password != "s3cret"
    assert bcrypt.checkpw(b"s3cret", user.password.encode())
    assert (await storage.get_user_by_username("emily")).id == user.id


async def test_missing_records_are_none(storage):
    assert await storage.get_user(999) is None
    assert await storage.get_place_by_id(999) is None
    assert await storage.get_thread_by_id(999) is None
    assert await storage.update_user_allergies(999, ["Dairy"]) is None
    assert await storage.update_place_rating(999, 4.0) is None


async def test_update_user_allergies(storage):
    user = await storage.create_user({"username": "sam", "password": "pw", "display_name": "Sam"})
    assert user.allergies == []
    updated = await storage.update_user_allergies(user.id, ["Dairy", "Pet Dander"])
    assert updated.allergies == ["Dairy", "Pet Dander"]


async def test_place_defaults(storage):
    place = await _place(storage, "Bark Cafe", *SF)
    assert place.allergy_safe is False
    assert place.rating is None
    assert place.created_at is not None
    rated = await storage.update_place_rating(place.id, 4.5)
    assert rated.rating == 4.5


async def test_nearby_is_superset_of_true_circle(storage):
    lat, lng = SF
    center = await _place(storage, "center", lat, lng)
    inside = await _place(storage, "inside", lat + 0.03, lng)
    corner = await _place(storage, "corner", lat + 0.044, lng + 0.044)
    outside = await _place(storage, "outside", lat + 0.1, lng)

    result = await storage.get_places_by_coordinates(lat, lng, 5)
    ids = {p.id for p in result}

    # Everything inside the circle is returned ...
    for p in (center, inside):
        assert within_radius(lat, lng, p.latitude, p.longitude, 5)
        assert p.id in ids
    # ... plus box corners outside it
    assert not within_radius(lat, lng, corner.latitude, corner.longitude, 5)
    assert corner.id in ids
    assert outside.id not in ids


async def test_thread_counters_start_at_zero(storage):
    thread = await _thread(storage)
    assert (thread.like_count, thread.comment_count) == (0, 0)


async def test_create_comment_increments_comment_count(storage):
    thread = await _thread(storage)
    for i in range(3):
        await storage.create_comment({"content": f"reply {i}", "thread_id": thread.id, "user_id": 2})

    refreshed = await storage.get_thread_by_id(thread.id)
    assert refreshed.comment_count == 3
    comments = await storage.get_comments_by_thread_id(thread.id)
    assert [c.content for c in comments] == ["reply 0", "reply 1", "reply 2"]


async def test_like_count_net_and_floor(storage):
    thread = await _thread(storage)
    await storage.update_thread_like_count(thread.id, True)
    await storage.update_thread_like_count(thread.id, True)
    updated = await storage.update_thread_like_count(thread.id, False)
    assert updated.like_count == 1

    other = await _thread(storage, "Cat cafes")
    floored = await storage.update_thread_like_count(other.id, False)
    assert floored.like_count == 0


async def test_like_count_missing_thread(storage):
    assert await storage.update_thread_like_count(12345, True) is None


async def test_threads_newest_first(storage):
    first = await _thread(storage, "first")
    second = await _thread(storage, "second")
    assert [t.id for t in await storage.get_all_threads()] == [second.id, first.id]


async def test_favorite_lifecycle(storage):
    place = await _place(storage, "Bark Cafe", *SF)
    assert await storage.check_is_favorite(1, place.id) is False

    favorite = await storage.create_favorite(1, place.id)
    assert (favorite.user_id, favorite.place_id) == (1, place.id)
    assert await storage.check_is_favorite(1, place.id) is True
    assert [p.id for p in await storage.get_favorite_places_by_user_id(1)] == [place.id]
    assert len(await storage.get_favorites_by_user_id(1)) == 1

    assert await storage.delete_favorite(1, place.id) is True
    assert await storage.check_is_favorite(1, place.id) is False
    assert await storage.get_favorite_places_by_user_id(1) == []


async def test_duplicate_favorite_rejected(storage):
    await storage.create_favorite(1, 5)
    with pytest.raises(DuplicateError) as excinfo:
        await storage.create_favorite(1, 5)
    assert excinfo.value.message == ALREADY_IN_FAVORITES
    assert len(await storage.get_favorites_by_user_id(1)) == 1


async def test_delete_missing_favorite_returns_false(storage):
    assert await storage.delete_favorite(1, 5) is False


async def test_unique_constraint_catches_check_race(storage, monkeypatch):
    await storage.create_favorite(1, 5)
    # Simulate a concurrent request that passed the existence check
    monkeypatch.setattr(storage, "check_is_favorite", AsyncMock(return_value=False))
    with pytest.raises(DuplicateError):
        await storage.create_favorite(1, 5)


async def test_driver_errors_become_storage_error(storage):
    await storage.session.execute(text("DROP TABLE places"))
    with pytest.raises(StorageError):
        await storage.get_all_places()
