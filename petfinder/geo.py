"""
Distance helpers shared by the API and the client toolkit.

  distance()        — Haversine great-circle distance in km
  format_distance() — short label shown next to a place
  bounding_box()    — lat/lng rectangle used by the nearby query
"""
import math

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0       # ~1 degree of latitude
FEET_PER_KM = 3280.84


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def format_distance(km: float) -> str:
    """
    Render a distance for display.

    Short hops are shown in feet; everything else keeps the raw number with a
    "mi" suffix. The unit mix is the established display format, clients
    compare against these exact strings.
    """
    if km < 1:
        feet = round(km * FEET_PER_KM)
        if feet < 1000:
            return f"{feet} ft"
        return f"{km:.1f} mi"
    return f"{km:.1f} mi"


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float, float, float]:
    """Return (min_lat, max_lat, min_lng, max_lng) approximating a radius."""
    delta = radius_km / KM_PER_DEGREE
    return lat - delta, lat + delta, lng - delta, lng + delta


def within_radius(lat: float, lng: float, place_lat: float, place_lng: float, radius_km: float) -> bool:
    """Exact circle test, for callers that want to drop bounding-box corners."""
    return distance(lat, lng, place_lat, place_lng) <= radius_km
