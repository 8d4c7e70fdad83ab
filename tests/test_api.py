import pytest

from petfinder.errors import StorageError
from petfinder.main import app
from petfinder.routers.deps import get_storage
from tests.factories import SF, place_payload


async def _create_user(api, username="emily"):
    resp = await api.post(
        "/api/users",
        json={"username": username, "password": "pw", "displayName": "Emily", "allergies": ["Peanuts"]},
    )
    assert resp.status_code == 201
    return resp.json()


async def _create_place(api, name="Bark Cafe", lat=SF[0], lng=SF[1], **extra):
    resp = await api.post("/api/places", json=place_payload(name, lat, lng, **extra))
    assert resp.status_code == 201
    return resp.json()


async def _create_thread(api, user_id=1):
    resp = await api.post("/api/threads", json={"title": "Brunch spots?", "content": "With a dog", "userId": user_id})
    assert resp.status_code == 201
    return resp.json()


# ──────────────────────────── Users ───────────────────────────────────────

async def test_create_user_hides_password(api):
    user = await _create_user(api)
    assert user["username"] == "emily"
    assert user["displayName"] == "Emily"
    assert user["allergies"] == ["Peanuts"]
    assert "password" not in user

    fetched = await api.get(f"/api/users/{user['id']}")
    assert fetched.status_code == 200
    assert "password" not in fetched.json()


async def test_duplicate_username_is_400(api):
    await _create_user(api)
    resp = await api.post("/api/users", json={"username": "emily", "password": "x", "displayName": "E2"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Username already exists"


async def test_create_user_validation_is_400_with_field_list(api):
    resp = await api.post("/api/users", json={"username": "emily"})
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert isinstance(detail, list)
    assert {e["loc"][-1] for e in detail} >= {"password", "displayName"}


async def test_get_missing_user_is_404(api):
    assert (await api.get("/api/users/42")).status_code == 404


async def test_update_allergies(api):
    user = await _create_user(api)
    resp = await api.patch(f"/api/users/{user['id']}/allergies", json={"allergies": ["Dairy"]})
    assert resp.status_code == 200
    assert resp.json()["allergies"] == ["Dairy"]


async def test_update_allergies_requires_array(api):
    user = await _create_user(api)
    resp = await api.patch(f"/api/users/{user['id']}/allergies", json={"allergies": "Dairy"})
    assert resp.status_code == 400


async def test_update_allergies_missing_user(api):
    resp = await api.patch("/api/users/99/allergies", json={"allergies": []})
    assert resp.status_code == 404


# ──────────────────────────── Places ──────────────────────────────────────

async def test_create_and_list_places(api):
    created = await _create_place(api, allergy_features=["Peanut-Free"], allergy_safe=True)
    assert created["allergyFeatures"] == ["Peanut-Free"]
    assert created["allergySafe"] is True
    assert created["rating"] is None

    listed = (await api.get("/api/places")).json()
    assert [p["id"] for p in listed] == [created["id"]]
    assert (await api.get(f"/api/places/{created['id']}")).json()["name"] == "Bark Cafe"


async def test_get_missing_place_is_404(api):
    assert (await api.get("/api/places/7")).status_code == 404


async def test_create_place_validation(api):
    resp = await api.post("/api/places", json={"name": "No coords"})
    assert resp.status_code == 400


async def test_nearby_filters_by_bounding_box(api):
    near = await _create_place(api, "near", SF[0] + 0.01, SF[1])
    await _create_place(api, "far", SF[0] + 1.0, SF[1])

    resp = await api.get("/api/places/nearby", params={"lat": SF[0], "lng": SF[1], "radius": 5})
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()] == [near["id"]]


async def test_nearby_defaults_radius(api):
    near = await _create_place(api, "near", SF[0] + 0.04, SF[1])
    await _create_place(api, "beyond 5km", SF[0] + 0.06, SF[1])

    for params in ({}, {"radius": "0"}, {"radius": "wide"}):
        resp = await api.get("/api/places/nearby", params={"lat": SF[0], "lng": SF[1], **params})
        assert [p["id"] for p in resp.json()] == [near["id"]]


@pytest.mark.parametrize(
    "params",
    [
        {"lat": "abc", "lng": "1"},
        {"lat": "1"},
        {"lat": "nan", "lng": "1"},
        {"lat": "1", "lng": "inf"},
    ],
)
async def test_nearby_rejects_bad_coordinates(api, params):
    resp = await api.get("/api/places/nearby", params=params)
    assert resp.status_code == 400


# ──────────────────────────── Threads ─────────────────────────────────────

async def test_threads_newest_first(api):
    first = await _create_thread(api)
    second = await _create_thread(api)
    listed = (await api.get("/api/threads")).json()
    assert [t["id"] for t in listed] == [second["id"], first["id"]]
    assert listed[0]["likeCount"] == 0
    assert listed[0]["commentCount"] == 0


async def test_like_and_unlike(api):
    thread = await _create_thread(api)
    url = f"/api/threads/{thread['id']}/like"
    await api.post(url, json={"increment": True})
    await api.post(url, json={"increment": True})
    resp = await api.post(url, json={"increment": False})
    assert resp.status_code == 200
    assert resp.json()["likeCount"] == 1


async def test_unlike_never_goes_negative(api):
    thread = await _create_thread(api)
    resp = await api.post(f"/api/threads/{thread['id']}/like", json={"increment": False})
    assert resp.json()["likeCount"] == 0


async def test_like_requires_boolean(api):
    thread = await _create_thread(api)
    resp = await api.post(f"/api/threads/{thread['id']}/like", json={"increment": "yes"})
    assert resp.status_code == 400


async def test_like_missing_thread_is_404(api):
    resp = await api.post("/api/threads/999/like", json={"increment": True})
    assert resp.status_code == 404


async def test_comments_update_counter_and_order(api):
    thread = await _create_thread(api)
    url = f"/api/threads/{thread['id']}/comments"
    for text in ("first!", "second", "third"):
        resp = await api.post(url, json={"content": text, "userId": 2})
        assert resp.status_code == 201
        assert resp.json()["threadId"] == thread["id"]

    comments = (await api.get(url)).json()
    assert [c["content"] for c in comments] == ["first!", "second", "third"]
    fetched = (await api.get(f"/api/threads/{thread['id']}")).json()
    assert fetched["commentCount"] == 3


async def test_comment_on_missing_thread_is_404(api):
    resp = await api.post("/api/threads/999/comments", json={"content": "hi", "userId": 1})
    assert resp.status_code == 404


# ──────────────────────────── Favorites ───────────────────────────────────

async def test_favorite_round_trip(api):
    place = await _create_place(api)
    body = {"userId": 1, "placeId": place["id"]}

    created = await api.post("/api/favorites", json=body)
    assert created.status_code == 201
    assert created.json()["placeId"] == place["id"]

    check = await api.get("/api/favorites/check", params=body)
    assert check.json() == {"isFavorite": True}
    favorites = (await api.get("/api/users/1/favorites")).json()
    assert [p["id"] for p in favorites] == [place["id"]]

    deleted = await api.request("DELETE", "/api/favorites", json=body)
    assert deleted.status_code == 204
    check = await api.get("/api/favorites/check", params=body)
    assert check.json() == {"isFavorite": False}


async def test_duplicate_favorite_is_400(api):
    body = {"userId": 1, "placeId": 5}
    assert (await api.post("/api/favorites", json=body)).status_code == 201
    resp = await api.post("/api/favorites", json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Already in favorites"


async def test_delete_missing_favorite_is_404(api):
    resp = await api.request("DELETE", "/api/favorites", json={"userId": 1, "placeId": 5})
    assert resp.status_code == 404


async def test_delete_favorite_requires_numbers(api):
    resp = await api.request("DELETE", "/api/favorites", json={"userId": "1", "placeId": 5})
    assert resp.status_code == 400


async def test_check_favorite_requires_numbers(api):
    resp = await api.get("/api/favorites/check", params={"userId": "me", "placeId": 1})
    assert resp.status_code == 400


# ──────────────────────────── Failures ────────────────────────────────────

class _BrokenStorage:
    async def get_all_places(self):
        raise StorageError("get_all_places failed")


async def test_storage_failure_is_generic_500(api):
    app.dependency_overrides[get_storage] = lambda: _BrokenStorage()
    resp = await api.get("/api/places")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}


async def test_health(api):
    assert (await api.get("/health")).json()["status"] == "ok"
