"""
Reverse geocoding.

Maps a coordinate pair to a "City, CC" label using the Nominatim
reverse endpoint. Used to pre-fill the city when planning a trip.
"""

import logging

import httpx

from pathfinder.config import settings
from pathfinder.errors import RemoteUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "pathfinder/1.0 (itinerary planner)"
CITY_FIELDS = ("city", "town", "village", "county")
UNKNOWN_LOCATION = "Unknown Location"


def format_city(address: dict) -> str:
    city = next((address[field] for field in CITY_FIELDS if address.get(field)), UNKNOWN_LOCATION)
    country = address.get("country_code")
    return f"{city}, {country.upper()}" if country else city


async def reverse_geocode(lat: float, lng: float, client: httpx.AsyncClient | None = None) -> str:
    """
    Resolve coordinates to a city label.

    Raises RemoteUnavailable on any network or decoding failure.
    """
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise RemoteUnavailable("Could not determine city name")

    params = {"format": "json", "lat": lat, "lon": lng, "zoom": 10}
    owns_client = client is None
    client = client or httpx.AsyncClient(
        timeout=settings.remote_timeout_seconds,
        headers={"User-Agent": USER_AGENT},
    )
    try:
        response = await client.get(settings.geocode_url, params=params)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Reverse geocode failed for ({lat}, {lng}): {e}")
        raise RemoteUnavailable("Could not determine city name") from e
    finally:
        if owns_client:
            await client.aclose()

    return format_city(data.get("address") or {})
