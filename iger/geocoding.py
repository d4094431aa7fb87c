"""
Geocoding helpers on top of OpenStreetMap Nominatim.

Lookups are best-effort: reverse geocoding always returns an address
object (a coordinate placeholder when Nominatim fails) and forward
geocoding returns an empty list instead of raising.
"""

import logging
import math
from typing import Dict, List

import requests
from cachetools import TTLCache

from iger import config

logger = logging.getLogger(__name__)

# Successful reverse lookups, keyed by coordinates rounded to 5 decimals
reverse_cache = TTLCache(maxsize=512, ttl=config.GEOCODE_CACHE_TTL)


def _headers() -> Dict[str, str]:
    return {"User-Agent": config.GEOCODER_USER_AGENT}


def _address_details(data: Dict) -> Dict:
    address = data.get("address")
    return address if isinstance(address, dict) else {}


def _text(value) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def format_address(data: Dict) -> str:
    """Short, readable address: road, area, city, province."""
    display_name = _text(data.get("display_name"))
    address = _address_details(data)
    if not address:
        return display_name

    parts = []
    if address.get("road"):
        parts.append(address["road"])
    elif address.get("neighbourhood"):
        parts.append(address["neighbourhood"])

    area = address.get("suburb") or address.get("village")
    if area:
        parts.append(area)

    city = address.get("city") or address.get("town")
    if city:
        parts.append(city)

    if address.get("state"):
        parts.append(address["state"])

    parts = [_text(part) for part in parts if _text(part)]
    return ", ".join(parts) or display_name


def flatten_address(data: Dict) -> Dict[str, str]:
    address = _address_details(data)
    return {
        "formatted_address": format_address(data),
        "city": _text(address.get("city") or address.get("town") or address.get("village")),
        "district": _text(address.get("suburb") or address.get("neighbourhood")),
        "province": _text(address.get("state")),
        "country": _text(address.get("country")),
        "postcode": _text(address.get("postcode")),
    }


def fallback_address(latitude, longitude) -> Dict[str, str]:
    return {
        "full_address": f"{latitude}, {longitude}",
        "formatted_address": f"Lat: {latitude}, Lng: {longitude}",
        "city": "",
        "district": "",
        "province": "",
        "country": "",
        "postcode": "",
    }


def reverse_geocode(latitude, longitude) -> Dict[str, str]:
    """Coordinates -> flat address dict. Never raises."""
    try:
        key = (round(float(latitude), 5), round(float(longitude), 5))
    except (TypeError, ValueError):
        return fallback_address(latitude, longitude)

    if key in reverse_cache:
        return dict(reverse_cache[key])

    try:
        resp = requests.get(
            f"{config.NOMINATIM_URL}/reverse",
            params={
                "format": "json",
                "lat": latitude,
                "lon": longitude,
                "zoom": 16,
                "addressdetails": 1,
            },
            headers=_headers(),
            timeout=config.HTTP_TIMEOUT,
        )
        if not resp.ok:
            raise ValueError(f"Geocoding request failed: HTTP {resp.status_code}")

        data = resp.json()
        if not isinstance(data, dict) or not _text(data.get("display_name")):
            raise ValueError("No address found for coordinates")

        result = {"full_address": _text(data["display_name"]), **flatten_address(data)}
    except Exception as e:
        logger.warning("Reverse geocoding failed for %s, %s: %s", latitude, longitude, e)
        return fallback_address(latitude, longitude)

    reverse_cache[key] = result
    return dict(result)


def forward_geocode(address: str, limit: int = 5) -> List[Dict]:
    """Free-text address -> up to ``limit`` ranked candidates. Never raises."""
    if not address or not address.strip():
        return []

    try:
        resp = requests.get(
            f"{config.NOMINATIM_URL}/search",
            params={
                "format": "json",
                "q": address,
                "limit": limit,
                "addressdetails": 1,
            },
            headers=_headers(),
            timeout=config.HTTP_TIMEOUT,
        )
        if not resp.ok:
            raise ValueError(f"Search request failed: HTTP {resp.status_code}")
        data = resp.json()
    except Exception as e:
        logger.warning("Forward geocoding failed for %r: %s", address, e)
        return []

    if not isinstance(data, list):
        return []

    results = []
    for item in data[:limit]:
        if not isinstance(item, dict):
            continue
        try:
            latitude = float(item["lat"])
            longitude = float(item["lon"])
        except (KeyError, TypeError, ValueError):
            continue
        results.append({
            "latitude": latitude,
            "longitude": longitude,
            "display_name": _text(item.get("display_name")),
            **flatten_address(item),
        })
    return results


def is_valid_coordinate(lat, lng) -> bool:
    try:
        latitude = float(lat)
        longitude = float(lng)
    except (TypeError, ValueError):
        return False

    if math.isnan(latitude) or math.isnan(longitude):
        return False

    return -90 <= latitude <= 90 and -180 <= longitude <= 180
