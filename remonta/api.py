"""
Programmatic API for the Remonta contractor directory.

Usage:
    from remonta import search_contractors

    result = search_contractors(location="Geelong VIC", distance=50)
    nearby = [c for c in result.contractors if c.distance_km < 10]
"""

import logging
from typing import Optional, Union

from remonta.config import Settings, load_config
from remonta.search.geocoding import build_geocoder
from remonta.search.params import SearchParameterError
from remonta.search.repository import SqlAlchemyContractorRepository
from remonta.search.service import ContractorSearchService, SearchResult
from remonta.web.database import create_db_engine, create_session_factory, init_db

logger = logging.getLogger(__name__)


def build_search_service(settings: Settings) -> ContractorSearchService:
    """Search service over the configured database and geocoder."""
    engine = create_db_engine(settings.database_url or None)
    init_db(engine)
    repository = SqlAlchemyContractorRepository(create_session_factory(engine))
    return ContractorSearchService(repository, build_geocoder(settings), settings)


def search_contractors(
    location: Optional[str] = None,
    limit: Union[int, str] = 10,
    offset: int = 0,
    distance: Optional[float] = None,
    gender: Optional[str] = None,
    support_type: Optional[str] = None,
    config_path: Optional[str] = None,
) -> SearchResult:
    """
    Search contractors, nearest first when a location resolves.

    Args:
        location: Suburb, postcode, state or address (e.g., "Parramatta NSW")
        limit: Page size, or "all" for every match
        offset: Number of matches to skip
        distance: Optional radius in kilometres
        gender: Gender filter ("All" or None for any)
        support_type: Title/role substring ("All" or None for any)
        config_path: Optional path to YAML config

    Returns:
        SearchResult with contractors and pagination

    Raises:
        SearchParameterError: limit, offset or distance is invalid
        RuntimeError: the search itself failed

    Example:
        result = search_contractors("2150", distance=10)
        print(result.pagination.total)
    """
    settings = load_config(config_path)

    params = {"limit": str(limit), "offset": str(offset)}
    if location:
        params["location"] = location
    if distance is not None:
        params["distance"] = str(distance)
    if gender:
        params["gender"] = gender
    if support_type:
        params["supportType"] = support_type

    service = build_search_service(settings)
    try:
        return service.search_params(params)
    except SearchParameterError:
        raise
    except Exception as e:
        raise RuntimeError(f"Search failed: {e}") from e
    finally:
        close = getattr(service.geocoder, "close", None)
        if close is not None:
            close()
