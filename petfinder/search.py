"""
Search / filter / sort over an already fetched list of places.

Runs client-side on whatever GET /api/places returned:

  filter  — text query (name or description, case-insensitive substring)
            AND allergy tags (a place needs at least one of them)
  sort    — "rating":   highest first, unrated counted as 0
            "distance": nearest first by squared lat/lng delta

The distance sort deliberately uses raw degrees rather than geo.distance():
it only needs a plausible order, and the Haversine figure is what gets shown
next to each place.
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from petfinder.schemas import PlaceResponse

SORT_RATING = "rating"
SORT_DISTANCE = "distance"
SORT_OPTIONS = (SORT_RATING, SORT_DISTANCE)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class SearchFilters:
    query: str = ""
    allergy_filters: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # Accept any iterable of tags from callers
        object.__setattr__(self, "allergy_filters", frozenset(self.allergy_filters))


def matches(place: PlaceResponse, filters: SearchFilters) -> bool:
    if filters.query:
        needle = filters.query.lower()
        if needle not in place.name.lower() and needle not in place.description.lower():
            return False

    if filters.allergy_filters:
        if not any(tag in filters.allergy_filters for tag in place.allergy_features):
            return False

    return True


def filter_places(places: Iterable[PlaceResponse], filters: SearchFilters) -> list[PlaceResponse]:
    return [p for p in places if matches(p, filters)]


def _degree_distance_sq(place: PlaceResponse, origin: Coordinates) -> float:
    return (place.latitude - origin.lat) ** 2 + (place.longitude - origin.lng) ** 2


def sort_places(
    places: Sequence[PlaceResponse],
    sort: str = SORT_RATING,
    user_location: Optional[Coordinates] = None,
) -> list[PlaceResponse]:
    """Stable sort; "distance" without a known location keeps input order."""
    if sort not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort option {sort!r}; expected one of {SORT_OPTIONS}")

    if sort == SORT_RATING:
        return sorted(places, key=lambda p: p.rating or 0, reverse=True)

    if user_location is None:
        return list(places)
    return sorted(places, key=lambda p: _degree_distance_sq(p, user_location))


def search_places(
    places: Sequence[PlaceResponse],
    filters: SearchFilters,
    sort: str = SORT_RATING,
    user_location: Optional[Coordinates] = None,
) -> list[PlaceResponse]:
    return sort_places(filter_places(places, filters), sort, user_location)
