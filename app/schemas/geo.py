from pydantic import BaseModel
from typing import Optional


class Location(BaseModel):
    country: str = "Unknown"
    countryCode: str = "XX"
    region: str = "Unknown"
    city: str = "Unknown"
    latitude: float = 0
    longitude: float = 0
    timezone: str = "UTC"
    isp: str = "Unknown"
    accuracy: float = 1000  # km
    source: str = "unknown"


class BrowserCoordinates(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # metres, as reported by the browser


class ParsedLocation(BaseModel):
    city: Optional[str] = None
    region: Optional[str] = None
    countryCode: Optional[str] = None
