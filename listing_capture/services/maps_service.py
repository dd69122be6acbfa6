"""Neighbourhood selling points from Google Places nearby search."""
import math
import os
import logging

import httpx

from listing_capture.models.record import Coordinates
from listing_capture.utils.messages import MSG

logger = logging.getLogger(__name__)

GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")
NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
SEARCH_RADIUS_M = 500

# One highlight per group, first matching place wins
PLACE_GROUPS = {
    "metro": ("subway_station", "transit_station"),
    "educacion": ("school", "university"),
    "salud": ("hospital", "pharmacy"),
    "comercio": ("supermarket", "shopping_mall"),
    "parques": ("park",),
}


def haversine_m(a: Coordinates, lat: float, lng: float) -> int:
    """Great-circle distance in whole metres."""
    r = 6371000
    d_lat = math.radians(lat - a.lat)
    d_lng = math.radians(lng - a.lng)
    h = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(a.lat)) * math.cos(math.radians(lat)) * math.sin(d_lng / 2) ** 2)
    return round(r * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h)))


def selling_points_from_places(origin: Coordinates, places: list[dict]) -> list[str]:
    points = []
    for types in PLACE_GROUPS.values():
        place = next((p for p in places if any(t in types for t in p.get("types", []))), None)
        if place:
            loc = place["geometry"]["location"]
            distance = haversine_m(origin, loc["lat"], loc["lng"])
            points.append(MSG.NEARBY.format(distance=distance, name=place["name"]))
    return points


async def nearby_selling_points(coordinates: Coordinates | None) -> list[str]:
    """Highlights around the property. Empty when unknown location or lookup fails."""
    if coordinates is None or not GOOGLE_MAPS_API_KEY:
        return []

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                NEARBY_URL,
                params={
                    "location": f"{coordinates.lat},{coordinates.lng}",
                    "radius": SEARCH_RADIUS_M,
                    "key": GOOGLE_MAPS_API_KEY,
                },
                timeout=10.0
            )
            resp.raise_for_status()
            places = resp.json().get("results", [])
    except Exception as e:
        logger.warning(f"Nearby search failed: {e}")
        return []

    return selling_points_from_places(coordinates, places)
