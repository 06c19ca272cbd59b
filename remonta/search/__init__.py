"""Contractor search module."""

from .params import SearchQuery, SearchParameterError, parse_search_query
from .locations import LocationKind, ParsedLocation, parse_location, haversine_distance
from .geocoding import (
    CachedGeocoder,
    GazetteerGeocoder,
    GoogleGeocoder,
    GeocodingError,
    build_geocoder,
    resolve_coordinate,
    safe_geocode,
)
from .repository import SqlAlchemyContractorRepository
from .service import ContractorSearchService, SearchResult

__all__ = [
    "SearchQuery",
    "SearchParameterError",
    "parse_search_query",
    "LocationKind",
    "ParsedLocation",
    "parse_location",
    "haversine_distance",
    "CachedGeocoder",
    "GazetteerGeocoder",
    "GoogleGeocoder",
    "GeocodingError",
    "build_geocoder",
    "resolve_coordinate",
    "safe_geocode",
    "SqlAlchemyContractorRepository",
    "ContractorSearchService",
    "SearchResult",
]
