"""
Client-side state for the explore screen.

Holds what the user has asked for (text query, allergy tags, sort order,
location) and derives the list of places to show from cached API results.

Query keys:
  ("places",)                              — GET /places
  ("places", "nearby", lat, lng, radius)   — GET /places/nearby
  ("favorites", user_id)                   — GET /users/{id}/favorites

The view always reads the key of the most recent request, so a slow response
to a superseded nearby search lands in the cache but is never displayed.
"""
import logging
from typing import Optional

from petfinder.clients.api_client import PetFinderClient, UserSession
from petfinder.clients.debounce import Debouncer
from petfinder.clients.favorites import FavoriteToggle, Notifier, favorites_key
from petfinder.clients.query_cache import QueryCache
from petfinder.geo import distance, format_distance
from petfinder.schemas import PlaceResponse
from petfinder.search import SORT_OPTIONS, SORT_RATING, Coordinates, SearchFilters, search_places

logger = logging.getLogger(__name__)

ALL_PLACES_KEY = ("places",)


class ExploreState:
    def __init__(
        self,
        client: PetFinderClient,
        session: Optional[UserSession],
        cache: Optional[QueryCache] = None,
        notify: Optional[Notifier] = None,
        debounce_delay: Optional[float] = None,
    ) -> None:
        self.client = client
        self.session = session
        self.cache = cache or QueryCache()
        self.filters = SearchFilters()
        self.sort = SORT_RATING
        self.user_location: Optional[Coordinates] = None
        self._notify = notify
        self._places_key: tuple = ALL_PLACES_KEY
        self._toggles: dict[int, FavoriteToggle] = {}
        self._query_debouncer = Debouncer(self._apply_query, delay=debounce_delay)

    # ─────────────────────────── Loading ──────────────────────────────────

    async def load(self) -> None:
        self._places_key = ALL_PLACES_KEY
        await self.cache.get(ALL_PLACES_KEY, self.client.get_places)
        await self.refresh_favorites()

    async def search_nearby(self, radius_km: Optional[float] = None) -> list[PlaceResponse]:
        if self.user_location is None:
            raise ValueError("User location unknown; call set_user_location() first")

        loc = self.user_location
        key = ("places", "nearby", loc.lat, loc.lng, radius_km)
        self._places_key = key
        return await self.cache.get(
            key, lambda: self.client.get_nearby_places(loc.lat, loc.lng, radius_km)
        )

    async def refresh_favorites(self) -> None:
        if self.session is None:
            return
        user_id = self.session.id
        favorites = await self.cache.get(
            favorites_key(user_id), lambda: self.client.get_favorite_places(user_id)
        )
        favorite_ids = {p.id for p in favorites}
        for place_id, toggle in self._toggles.items():
            if not toggle.in_flight:
                toggle.is_favorite = place_id in favorite_ids

    # ─────────────────────────── Inputs ───────────────────────────────────

    def set_query(self, text: str) -> None:
        """Debounced: the query applies once typing pauses."""
        self._query_debouncer.submit(text)

    async def settle(self) -> None:
        await self._query_debouncer.flush()

    async def _apply_query(self, text: str) -> None:
        self.filters = SearchFilters(query=text, allergy_filters=self.filters.allergy_filters)
        logger.debug("Search query applied: %r", text)

    def set_allergy_filters(self, tags) -> None:
        self.filters = SearchFilters(query=self.filters.query, allergy_filters=tags)

    def set_sort(self, sort: str) -> None:
        if sort not in SORT_OPTIONS:
            raise ValueError(f"Unknown sort option {sort!r}")
        self.sort = sort

    def set_user_location(self, lat: float, lng: float) -> None:
        self.user_location = Coordinates(lat, lng)

    def reset_filters(self) -> None:
        self._query_debouncer.cancel()
        self.filters = SearchFilters()

    # ─────────────────────────── Derived view ─────────────────────────────

    @property
    def places(self) -> list[PlaceResponse]:
        return self.cache.peek(self._places_key, [])

    def visible_places(self) -> list[PlaceResponse]:
        return search_places(self.places, self.filters, self.sort, self.user_location)

    def display_distance(self, place: PlaceResponse) -> Optional[str]:
        if self.user_location is None:
            return None
        km = distance(self.user_location.lat, self.user_location.lng, place.latitude, place.longitude)
        return format_distance(km)

    def favorite_ids(self) -> set[int]:
        if self.session is None:
            return set()
        return {p.id for p in self.cache.peek(favorites_key(self.session.id), [])}

    def favorite_toggle(self, place_id: int) -> FavoriteToggle:
        """One toggle per card so its in-flight guard survives re-renders."""
        if place_id not in self._toggles:
            self._toggles[place_id] = FavoriteToggle(
                self.client,
                self.session,
                place_id,
                is_favorite=place_id in self.favorite_ids(),
                cache=self.cache,
                notify=self._notify,
            )
        return self._toggles[place_id]

    async def toggle_favorite(self, place_id: int) -> bool:
        state = await self.favorite_toggle(place_id).toggle()
        if self.session is not None and favorites_key(self.session.id) not in self.cache:
            await self.refresh_favorites()
        return state
