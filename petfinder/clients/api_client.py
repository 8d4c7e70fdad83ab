"""
Async HTTP client for the Pet Places API.

Thin wrapper over httpx: one method per endpoint, JSON decoded into the same
pydantic schemas the server responds with. Any non-2xx response raises
ApiError carrying the status code and the server's ``detail``.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from petfinder.config import settings
from petfinder.schemas import (
    CommentResponse,
    FavoriteResponse,
    PlaceResponse,
    ThreadResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass(frozen=True)
class UserSession:
    """The acting user, passed explicitly wherever an identity is needed."""
    id: int
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    allergies: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_user(cls, user: UserResponse) -> "UserSession":
        return cls(
            id=user.id,
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            allergies=tuple(user.allergies),
        )


class PetFinderClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url or settings.api_base_url
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=settings.api_timeout,
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "PetFinderClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        if self._http is None:
            raise RuntimeError("PetFinderClient not started — call start() first")

        resp = await self._http.request(method, path, **kwargs)
        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            detail = body.get("detail") if isinstance(body, dict) else body
            logger.debug("%s %s failed: %s %s", method, path, resp.status_code, detail)
            raise ApiError(resp.status_code, detail)
        if resp.status_code == httpx.codes.NO_CONTENT:
            return None
        return resp.json()

    # ─────────────────────────── Users ────────────────────────────────────

    async def create_user(self, username: str, password: str, display_name: str, **extra) -> UserResponse:
        body = {"username": username, "password": password, "displayName": display_name, **extra}
        return UserResponse.model_validate(await self._request("POST", "/users", json=body))

    async def get_user(self, user_id: int) -> UserResponse:
        return UserResponse.model_validate(await self._request("GET", f"/users/{user_id}"))

    async def load_session(self, user_id: Optional[int] = None) -> UserSession:
        """Build the acting-user session; defaults to settings.demo_user_id."""
        user = await self.get_user(settings.demo_user_id if user_id is None else user_id)
        return UserSession.from_user(user)

    async def update_allergies(self, user_id: int, allergies: list[str]) -> UserResponse:
        data = await self._request("PATCH", f"/users/{user_id}/allergies", json={"allergies": allergies})
        return UserResponse.model_validate(data)

    # ─────────────────────────── Places ───────────────────────────────────

    async def get_places(self) -> list[PlaceResponse]:
        return [PlaceResponse.model_validate(p) for p in await self._request("GET", "/places")]

    async def get_nearby_places(self, lat: float, lng: float, radius_km: Optional[float] = None) -> list[PlaceResponse]:
        params = {"lat": lat, "lng": lng}
        if radius_km is not None:
            params["radius"] = radius_km
        data = await self._request("GET", "/places/nearby", params=params)
        return [PlaceResponse.model_validate(p) for p in data]

    async def get_place(self, place_id: int) -> PlaceResponse:
        return PlaceResponse.model_validate(await self._request("GET", f"/places/{place_id}"))

    # ─────────────────────────── Community ────────────────────────────────

    async def get_threads(self) -> list[ThreadResponse]:
        return [ThreadResponse.model_validate(t) for t in await self._request("GET", "/threads")]

    async def create_thread(self, session: UserSession, title: str, content: str) -> ThreadResponse:
        body = {"title": title, "content": content, "userId": session.id}
        return ThreadResponse.model_validate(await self._request("POST", "/threads", json=body))

    async def like_thread(self, thread_id: int, increment: bool) -> ThreadResponse:
        data = await self._request("POST", f"/threads/{thread_id}/like", json={"increment": increment})
        return ThreadResponse.model_validate(data)

    async def get_comments(self, thread_id: int) -> list[CommentResponse]:
        data = await self._request("GET", f"/threads/{thread_id}/comments")
        return [CommentResponse.model_validate(c) for c in data]

    async def create_comment(self, session: UserSession, thread_id: int, content: str) -> CommentResponse:
        data = await self._request(
            "POST", f"/threads/{thread_id}/comments", json={"content": content, "userId": session.id}
        )
        return CommentResponse.model_validate(data)

    # ─────────────────────────── Favorites ────────────────────────────────

    async def get_favorite_places(self, user_id: int) -> list[PlaceResponse]:
        data = await self._request("GET", f"/users/{user_id}/favorites")
        return [PlaceResponse.model_validate(p) for p in data]

    async def add_favorite(self, user_id: int, place_id: int) -> FavoriteResponse:
        data = await self._request("POST", "/favorites", json={"userId": user_id, "placeId": place_id})
        return FavoriteResponse.model_validate(data)

    async def remove_favorite(self, user_id: int, place_id: int) -> None:
        await self._request("DELETE", "/favorites", json={"userId": user_id, "placeId": place_id})

    async def is_favorite(self, user_id: int, place_id: int) -> bool:
        data = await self._request("GET", "/favorites/check", params={"userId": user_id, "placeId": place_id})
        return bool(data["isFavorite"])
