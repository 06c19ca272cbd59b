"""
Geocoding for contractor search.

Converts free-text Australian locations into coordinates. The search
pipeline only ever calls ``resolve_coordinate``, which never raises:
a failed lookup simply means results are not distance-ranked.
"""

import logging
import os
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from remonta.models import Coordinate
from remonta.search.locations import normalize_au_location, parse_location

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str = ""

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class Geocoder(Protocol):
    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """Coordinates for ``address``, or None when nothing matched."""
        ...


class GeocodingError(Exception):
    """Base exception for geocoding provider errors."""
    pass


class GeocodingAuthError(GeocodingError):
    """Invalid or missing API key."""
    pass


class GeocodingRateLimitError(GeocodingError):
    """Provider quota or rate limit exceeded."""
    pass


class GoogleGeocoder:
    """
    Client for the Google Geocoding API, restricted to Australia.

    Usage:
        with GoogleGeocoder(api_key="your_key") as geocoder:
            result = geocoder.geocode("Parramatta NSW")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = GOOGLE_GEOCODE_URL,
        timeout: int = 10,
        region: str = "au",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the geocoder.

        Args:
            api_key: Google Maps API key (falls back to GEOMAP_API)
            base_url: Geocoding endpoint URL
            timeout: Request timeout in seconds
            region: Region bias (ccTLD)
            transport: Optional httpx transport, used by tests
        """
        if not api_key:
            api_key = os.environ.get("GEOMAP_API")

        if not api_key:
            raise GeocodingAuthError(
                "Geocoding API key not configured. "
                "Set GEOMAP_API environment variable or pass api_key parameter."
            )

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.region = region

        self._client = httpx.Client(timeout=self.timeout, transport=transport)
        logger.debug("Google geocoder initialized (region=%s)", region)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=1, max=8),
        retry=retry_if_exception_type(GeocodingRateLimitError),
        reraise=True,
    )
    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """
        Geocode a suburb, postcode, state or full address.

        Returns:
            First matching result, or None for no match
        """
        query = normalize_au_location(address)
        params = {
            "address": query,
            "region": self.region,
            "components": "country:AU",
            "key": self.api_key,
        }

        response = self._client.get(self.base_url, params=params)
        self._handle_errors(response)

        data = response.json()
        status = data.get("status")

        if status == "OK" and data.get("results"):
            first = data["results"][0]
            location = first.get("geometry", {}).get("location", {})
            if "lat" not in location or "lng" not in location:
                logger.debug("Geocode result without coordinates for '%s'", query)
                return None
            return GeocodeResult(
                latitude=float(location["lat"]),
                longitude=float(location["lng"]),
                formatted_address=first.get("formatted_address", ""),
            )

        if status == "OVER_QUERY_LIMIT":
            raise GeocodingRateLimitError("Geocoding quota exceeded")
        if status == "REQUEST_DENIED":
            raise GeocodingAuthError(data.get("error_message", "Geocoding request denied"))

        logger.debug("No geocode match for '%s' (status=%s)", query, status)
        return None

    def _handle_errors(self, response: httpx.Response) -> None:
        """Handle HTTP-level error responses."""
        if response.status_code in (401, 403):
            raise GeocodingAuthError("Invalid geocoding API key")
        elif response.status_code == 429:
            raise GeocodingRateLimitError("Geocoding rate limit exceeded")
        elif response.status_code >= 500:
            raise GeocodingError(f"Geocoding server error: {response.status_code}")
        elif response.status_code >= 400:
            raise GeocodingError(f"Geocoding error: {response.status_code} {response.text}")

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@dataclass(frozen=True)
class Place:
    name: str
    state: str
    postcode: str
    lat: float
    lng: float


# Offline gazetteer: capital cities first (used as the centroid for a bare state)
GAZETTEER = [
    Place("Sydney", "NSW", "2000", -33.8688, 151.2093),
    Place("Melbourne", "VIC", "3000", -37.8136, 144.9631),
    Place("Brisbane", "QLD", "4000", -27.4698, 153.0251),
    Place("Adelaide", "SA", "5000", -34.9285, 138.6007),
    Place("Perth", "WA", "6000", -31.9505, 115.8605),
    Place("Hobart", "TAS", "7000", -42.8821, 147.3272),
    Place("Darwin", "NT", "0800", -12.4634, 130.8456),
    Place("Canberra", "ACT", "2601", -35.2809, 149.1300),
    Place("Parramatta", "NSW", "2150", -33.8150, 151.0011),
    Place("Blacktown", "NSW", "2148", -33.7710, 150.9063),
    Place("Penrith", "NSW", "2750", -33.7507, 150.6877),
    Place("Liverpool", "NSW", "2170", -33.9200, 150.9230),
    Place("Chatswood", "NSW", "2067", -33.7950, 151.1800),
    Place("Newcastle", "NSW", "2300", -32.9283, 151.7817),
    Place("Wollongong", "NSW", "2500", -34.4278, 150.8931),
    Place("Geelong", "VIC", "3220", -38.1499, 144.3617),
    Place("Dandenong", "VIC", "3175", -37.9875, 145.2150),
    Place("Ballarat", "VIC", "3350", -37.5622, 143.8503),
    Place("Gold Coast", "QLD", "4217", -28.0167, 153.4000),
    Place("Ipswich", "QLD", "4305", -27.6144, 152.7581),
    Place("Townsville", "QLD", "4810", -19.2590, 146.8169),
    Place("Glenelg", "SA", "5045", -34.9817, 138.5150),
    Place("Fremantle", "WA", "6160", -32.0569, 115.7439),
    Place("Launceston", "TAS", "7250", -41.4332, 147.1441),
    Place("Belconnen", "ACT", "2617", -35.2417, 149.0667),
]


class GazetteerGeocoder:
    """
    Offline geocoder over a small table of Australian places.

    Used in development (no API key) and in tests. A place name wins over a
    postcode, which wins over a bare state (resolved to its capital).
    """

    def __init__(self, places: Optional[list] = None):
        self.places = places if places is not None else GAZETTEER
        self._by_name = {p.name.lower(): p for p in self.places}
        self._by_postcode = {p.postcode: p for p in self.places}
        self._by_state: Dict[str, Place] = {}
        for place in self.places:
            self._by_state.setdefault(place.state, place)

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        parsed = parse_location(address)
        place = None

        if parsed.city_remainder:
            place = self._by_name.get(parsed.city_remainder.lower())
        if place is None and parsed.postal_code:
            place = self._by_postcode.get(parsed.postal_code)
        if place is None and parsed.state and not parsed.city_remainder:
            place = self._by_state.get(parsed.state)

        if place is None:
            return None
        return GeocodeResult(
            latitude=place.lat,
            longitude=place.lng,
            formatted_address=f"{place.name} {place.state} {place.postcode}, Australia",
        )


class CachedGeocoder:
    """
    In-memory TTL cache in front of another geocoder.

    Keys are the lowercased, trimmed address. Only successful lookups are
    cached; the oldest entry is evicted once ``max_size`` is reached. Safe to
    share between request threads; the wrapped lookup runs outside the lock.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        ttl_seconds: float = 7 * 24 * 60 * 60,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.geocoder = geocoder
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._cache: "OrderedDict[str, Tuple[float, GeocodeResult]]" = OrderedDict()
        self._lock = threading.Lock()

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        key = address.lower().strip()
        now = self._clock()

        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                stored_at, result = cached
                if now - stored_at <= self.ttl_seconds:
                    return result
                self._cache.pop(key, None)

        result = self.geocoder.geocode(address)
        if result is not None:
            with self._lock:
                if key not in self._cache and len(self._cache) >= self.max_size:
                    self._cache.popitem(last=False)
                self._cache[key] = (now, result)
        return result

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def close(self):
        close = getattr(self.geocoder, "close", None)
        if close is not None:
            close()


def safe_geocode(geocoder: Optional[Geocoder], text: Optional[str]) -> Optional[GeocodeResult]:
    """
    Geocode ``text``, absorbing provider failures.

    Returns None for empty text, no configured geocoder, no match, or any
    provider error.
    """
    if geocoder is None or not text or not text.strip():
        return None

    try:
        result = geocoder.geocode(text.strip())
    except Exception as e:
        logger.warning("Geocoding failed for '%s': %s", text, e)
        return None

    if result is None:
        logger.info("No coordinates for '%s'", text)
    return result


def resolve_coordinate(geocoder: Optional[Geocoder], text: Optional[str]) -> Optional[Coordinate]:
    """Search coordinate for ``text``; None means "do not distance-rank"."""
    result = safe_geocode(geocoder, text)
    return result.coordinate if result else None


def geocode_contractor_address(
    geocoder: Geocoder,
    city: Optional[str],
    state: Optional[str],
    postal_code: Optional[str],
) -> Optional[Coordinate]:
    """Geocode a contractor's "city, state, postcode" address."""
    parts = [p.strip() for p in (city, state, postal_code) if p and p.strip()]
    if not parts:
        return None
    return resolve_coordinate(geocoder, ", ".join(parts))


def build_geocoder(settings) -> Geocoder:
    """
    Geocoder for the configured environment.

    Google when an API key is configured, otherwise the offline gazetteer.
    Either way lookups go through the TTL cache.
    """
    if settings.geomap_api_key:
        inner = GoogleGeocoder(api_key=settings.geomap_api_key, timeout=settings.geocode_timeout)
    else:
        logger.warning("GEOMAP_API not set, using the offline gazetteer for geocoding")
        inner = GazetteerGeocoder()

    return CachedGeocoder(
        inner,
        ttl_seconds=settings.geocode_cache_ttl,
        max_size=settings.geocode_cache_size,
    )
