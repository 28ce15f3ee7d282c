import logging

from empowerher import http
from empowerher.config import NOMINATIM_URL
from empowerher.errors import ServiceError
from empowerher.models import Location

logger = logging.getLogger(__name__)


def geocode_address(address):
    """
    Resolve free text to a Location using Nominatim. Returns None when the
    address is blank or nothing matches; transport and parse errors raise
    ServiceError and are left to the caller to report.
    """
    if not address or not address.strip():
        return None
    url = f"{NOMINATIM_URL}/search"
    results = http.get_json(url, {"format": "json", "q": address.strip(), "limit": 1})
    if not isinstance(results, list):
        raise ServiceError("Unexpected geocoding response", url=url)
    if not results:
        logger.info("No geocoding match for %r", address)
        return None
    first = results[0]
    try:
        return Location(float(first["lat"]), float(first["lon"]), first.get("display_name") or address)
    except (KeyError, TypeError, ValueError) as e:
        raise ServiceError("Malformed geocoding result", url=url) from e


def reverse_geocode(lat, lon):
    """Coordinate to display name, or None if Nominatim has no label for it."""
    url = f"{NOMINATIM_URL}/reverse"
    data = http.get_json(url, {"format": "json", "lat": lat, "lon": lon})
    if not isinstance(data, dict):
        raise ServiceError("Unexpected reverse geocoding response", url=url)
    return data.get("display_name")
