"""Australian location parsing and distance helpers."""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from remonta.models import BoundingBox

EARTH_RADIUS_KM = 6371

# Australian state abbreviations to full names
AU_STATES = {
    "NSW": "New South Wales",
    "VIC": "Victoria",
    "QLD": "Queensland",
    "SA": "South Australia",
    "WA": "Western Australia",
    "TAS": "Tasmania",
    "NT": "Northern Territory",
    "ACT": "Australian Capital Territory",
}

# Lowercased, whitespace-free state names and codes -> canonical code
STATE_KEYS = {
    **{code.lower(): code for code in AU_STATES},
    **{name.lower().replace(" ", ""): code for code, name in AU_STATES.items()},
}

STATE_ABBREV_PATTERN = re.compile(r"\b(NSW|VIC|QLD|SA|WA|TAS|NT|ACT)\b", re.IGNORECASE)
STATE_FULL_PATTERN = re.compile(
    r"\b(New\s+South\s+Wales|Victoria|Queensland|South\s+Australia|Western\s+Australia"
    r"|Tasmania|Northern\s+Territory|Australian\s+Capital\s+Territory)\b",
    re.IGNORECASE,
)
POSTAL_PATTERN = re.compile(r"\b\d{4}\b")  # Australian postcodes are 4 digits


class LocationKind(Enum):
    PURE_STATE = "pure_state"
    PURE_POSTAL = "pure_postal"
    GEOCODE_AND_RANK = "geocode_and_rank"


@dataclass(frozen=True)
class ParsedLocation:
    """Free-text location split into state, postcode and place name."""

    raw: str
    state: Optional[str] = None
    postal_code: Optional[str] = None
    city_remainder: Optional[str] = None

    @property
    def kind(self) -> LocationKind:
        if self.state and not self.city_remainder and not self.postal_code:
            return LocationKind.PURE_STATE
        if self.postal_code and not self.city_remainder and not self.state:
            return LocationKind.PURE_POSTAL
        return LocationKind.GEOCODE_AND_RANK


def normalize_state(value: Optional[str]) -> Optional[str]:
    """Map a state code or full state name to its canonical code."""
    if not value:
        return None
    return STATE_KEYS.get(re.sub(r"\s+", "", value).lower())


def parse_location(location: str) -> ParsedLocation:
    """
    Decompose a free-text Australian location.

    Examples:
        "NSW"               -> state="NSW"
        "2148"              -> postal_code="2148"
        "Parramatta NSW 2150" -> state="NSW", postal_code="2150", city_remainder="Parramatta"
        "new south wales"   -> state="NSW"

    Args:
        location: Raw location text from the search box

    Returns:
        ParsedLocation; ``kind`` decides whether it becomes a filter or a
        geocode-and-rank signal.
    """
    text = (location or "").strip()
    if not text:
        return ParsedLocation(raw="")

    abbrev_match = STATE_ABBREV_PATTERN.search(text)
    full_match = STATE_FULL_PATTERN.search(text)
    postal_match = POSTAL_PATTERN.search(text)

    state: Optional[str] = None
    whole_input_is_state = False
    if abbrev_match:
        state = abbrev_match.group(0).upper()
    elif full_match:
        state = normalize_state(full_match.group(0))
    else:
        state = STATE_KEYS.get(re.sub(r"\s+", "", text).lower())
        whole_input_is_state = state is not None

    remainder: Optional[str] = None
    if not whole_input_is_state:
        stripped = STATE_ABBREV_PATTERN.sub("", text, count=1)
        stripped = STATE_FULL_PATTERN.sub("", stripped, count=1)
        stripped = POSTAL_PATTERN.sub("", stripped, count=1)
        stripped = re.sub(r"\s+", " ", stripped.replace(",", "")).strip()
        remainder = stripped or None

    return ParsedLocation(
        raw=text,
        state=state,
        postal_code=postal_match.group(0) if postal_match else None,
        city_remainder=remainder,
    )


def normalize_au_location(location: str) -> str:
    """
    Qualify a location for an external geocoder.

    "Parramatta"   -> "Parramatta, Australia"
    "Perth, Western Australia" is returned unchanged.
    """
    location = location.strip()
    if "australia" in location.lower():
        return location
    return f"{location}, Australia"


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in kilometres."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = math.sin(delta_lat / 2) ** 2 + \
        math.cos(lat1_rad) * math.cos(lat2_rad) * \
        math.sin(delta_lon / 2) ** 2

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bounding_box(latitude: float, longitude: float, radius_km: float) -> BoundingBox:
    """
    Lat/lng box enclosing a circle of ``radius_km`` around a point.

    Every point within the radius falls inside the box, so it can be used
    as a database pre-filter before exact haversine distances.
    """
    angular = radius_km / EARTH_RADIUS_KM
    delta_lat = math.degrees(angular)

    cos_lat = math.cos(math.radians(latitude))
    ratio = math.sin(angular) / cos_lat if cos_lat > 0 else 2.0
    if ratio >= 1:
        # Near a pole, or radius wider than a hemisphere: no longitude bound
        delta_lon = 180.0
    else:
        delta_lon = math.degrees(math.asin(ratio))

    return BoundingBox(
        min_lat=latitude - delta_lat,
        max_lat=latitude + delta_lat,
        min_lon=longitude - delta_lon,
        max_lon=longitude + delta_lon,
    )
