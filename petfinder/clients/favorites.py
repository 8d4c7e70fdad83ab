"""
Optimistic favorite toggling for a single place card.

toggle() flips the local flag before the server answers, then either keeps
it (success) or puts it back and notifies the user (failure). While a request
is outstanding further toggles are ignored.

Two server "errors" are really confirmations and keep the optimistic state:
  add    → 400 "Already in favorites"  (the row exists, we are a favorite)
  remove → 404 "Favorite not found"    (the row is gone, we are not)
"""
import logging
from typing import Callable, Optional

import httpx

from petfinder.clients.api_client import ApiError, PetFinderClient, UserSession
from petfinder.clients.query_cache import QueryCache
from petfinder.errors import ALREADY_IN_FAVORITES

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def favorites_key(user_id: int) -> tuple:
    return ("favorites", user_id)


def _already_in_target_state(exc: ApiError, adding: bool) -> bool:
    if adding:
        return exc.status_code == 400 and exc.detail == ALREADY_IN_FAVORITES
    return exc.status_code == 404


class FavoriteToggle:
    def __init__(
        self,
        client: PetFinderClient,
        session: Optional[UserSession],
        place_id: int,
        is_favorite: bool = False,
        cache: Optional[QueryCache] = None,
        notify: Optional[Notifier] = None,
    ) -> None:
        self.client = client
        self.session = session
        self.place_id = place_id
        self.is_favorite = is_favorite
        self.in_flight = False
        self._cache = cache
        self._notify = notify if notify is not None else (lambda title, description: None)

    async def toggle(self) -> bool:
        """Flip the favorite state. Returns the state after reconciliation."""
        if self.session is None:
            self._notify("Authentication required", "Please log in to save favorites")
            return self.is_favorite
        if self.in_flight:
            return self.is_favorite

        self.in_flight = True
        adding = not self.is_favorite
        self.is_favorite = adding
        try:
            if adding:
                await self.client.add_favorite(self.session.id, self.place_id)
            else:
                await self.client.remove_favorite(self.session.id, self.place_id)
        except ApiError as exc:
            if not _already_in_target_state(exc, adding):
                self._rollback(adding, exc)
        except httpx.HTTPError as exc:
            self._rollback(adding, exc)
        except Exception as exc:
            self._rollback(adding, exc)
            raise
        finally:
            self.in_flight = False

        if self.is_favorite == adding and self._cache is not None:
            self._cache.invalidate(favorites_key(self.session.id))
        return self.is_favorite

    def _rollback(self, adding: bool, exc: Exception) -> None:
        self.is_favorite = not adding
        logger.warning(
            "Favorite %s failed for place %s: %s",
            "add" if adding else "remove", self.place_id, exc,
        )
        self._notify(
            "Error",
            "Could not add to favorites" if adding else "Could not remove from favorites",
        )
