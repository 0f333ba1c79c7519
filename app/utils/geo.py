"""
Location helpers.

`resolve_location` walks a fixed fallback chain:
ipapi.co -> ipwho.is -> browser coordinates -> the "Unknown" sentinel.
"""
import ipaddress
import logging
import math
from typing import Optional

import httpx

from app.config import HTTP_TIMEOUT_SECONDS, DEFAULT_RADIUS_KM
from app.schemas.geo import Location, BrowserCoordinates, ParsedLocation

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371

IPAPI_URL = "https://ipapi.co/{ip}json/"
IPWHOIS_URL = "https://ipwho.is/{ip}"

COUNTRY_CODE_MAP = {
    'india': 'IN',
    'united states': 'US',
    'usa': 'US',
    'america': 'US',
    'united kingdom': 'GB',
    'uk': 'GB',
    'england': 'GB',
    'canada': 'CA',
    'australia': 'AU',
    'germany': 'DE',
    'france': 'FR',
    'japan': 'JP',
    'china': 'CN',
    'brazil': 'BR',
    'singapore': 'SG',
    'netherlands': 'NL',
    'sweden': 'SE',
    'norway': 'NO',
    'denmark': 'DK',
}


def build_geo_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)


def unknown_location() -> Location:
    return Location()


def _has_coordinates(lat, lon):
    return lat is not None and lon is not None


async def _from_ipapi(client: httpx.AsyncClient, ip: Optional[str]) -> Optional[Location]:
    url = IPAPI_URL.format(ip=f"{ip}/" if ip else "")
    response = await client.get(url)
    if response.status_code != 200:
        return None

    data = response.json()
    if not data.get("country_name") or not _has_coordinates(data.get("latitude"), data.get("longitude")):
        return None

    return Location(
        country=data.get("country_name") or "Unknown",
        countryCode=data.get("country_code") or "XX",
        region=data.get("region") or "Unknown",
        city=data.get("city") or "Unknown",
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        timezone=data.get("timezone") or "UTC",
        isp=data.get("org") or "Unknown",
        accuracy=20,
        source="ipapi.co",
    )


async def _from_ipwhois(client: httpx.AsyncClient, ip: Optional[str]) -> Optional[Location]:
    response = await client.get(IPWHOIS_URL.format(ip=ip or ""))
    if response.status_code != 200:
        return None

    data = response.json()
    if not data or data.get("success") is False:
        return None
    if not _has_coordinates(data.get("latitude"), data.get("longitude")):
        return None

    return Location(
        country=data.get("country") or "Unknown",
        countryCode=data.get("country_code") or "XX",
        region=data.get("region") or "Unknown",
        city=data.get("city") or "Unknown",
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        timezone=(data.get("timezone") or {}).get("id") or "UTC",
        isp=(data.get("connection") or {}).get("isp") or "Unknown",
        accuracy=50,
        source="ipwho.is",
    )


def _from_browser(coords: Optional[BrowserCoordinates]) -> Optional[Location]:
    if coords is None:
        return None
    return Location(
        latitude=coords.latitude,
        longitude=coords.longitude,
        isp="Browser Location",
        accuracy=coords.accuracy / 1000 if coords.accuracy else 5,
        source="browser",
    )


async def resolve_location(
    ip: Optional[str] = None,
    browser_coords: Optional[BrowserCoordinates] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Location:
    """Return the first usable location from the fallback chain."""
    owns_client = client is None
    if owns_client:
        client = build_geo_client()

    try:
        for provider in (_from_ipapi, _from_ipwhois):
            try:
                location = await provider(client, ip)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Geo lookup via %s failed: %s", provider.__name__, e)
                continue
            if location is not None:
                return location
    finally:
        if owns_client:
            await client.aclose()

    location = _from_browser(browser_coords)
    if location is not None:
        return location

    logger.info("No location source succeeded for ip=%s", ip)
    return unknown_location()


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres (Haversine)."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def is_within_radius(user_lat, user_lon, target_lat, target_lon, radius_km: float = DEFAULT_RADIUS_KM) -> bool:
    if None in (user_lat, user_lon, target_lat, target_lon):
        return False
    return calculate_distance(user_lat, user_lon, target_lat, target_lon) <= radius_km


def is_public_ip(ip) -> bool:
    """Only globally routable addresses can be geolocated."""
    try:
        return ipaddress.ip_address(ip).is_global
    except (TypeError, ValueError):
        return False


def get_client_ip(request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else None
    ip = ip or request.headers.get("x-real-ip") or (request.client.host if request.client else None)

    if ip == "::1":
        ip = "127.0.0.1"
    if ip and ip.startswith("::ffff:"):
        ip = ip[7:]
    return ip


def parse_location_text(location_text) -> Optional[ParsedLocation]:
    """Split "City, Region, Country" style text into its parts."""
    if not location_text or not isinstance(location_text, str):
        return None

    parts = [part.strip() for part in location_text.lower().strip().split(",")]
    city = region = country_code = None

    if len(parts) == 1:
        country_code = COUNTRY_CODE_MAP.get(parts[0])
        if not country_code:
            city = parts[0]
    elif len(parts) == 2:
        city = parts[0]
        country_code = COUNTRY_CODE_MAP.get(parts[1])
        if not country_code:
            region = parts[1]
    else:
        city, region = parts[0], parts[1]
        country_code = COUNTRY_CODE_MAP.get(parts[-1])

    def capitalize(value):
        return value[:1].upper() + value[1:] if value else None

    return ParsedLocation(city=capitalize(city), region=capitalize(region), countryCode=capitalize(country_code))
