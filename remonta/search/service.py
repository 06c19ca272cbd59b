"""Contractor search pipeline: parse, filter, geocode, fetch, rank, assemble."""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Union

from remonta.config import Settings
from remonta.models import ContractorRecord, Coordinate, RankedContractor
from remonta.search.filters import build_filter
from remonta.search.geocoding import Geocoder, resolve_coordinate
from remonta.search.locations import LocationKind, bounding_box, parse_location
from remonta.search.params import SearchQuery, parse_search_query
from remonta.search.ranking import rank_by_distance
from remonta.search.repository import ContractorRepository, fetch_page

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pagination:
    total: int
    limit: int
    offset: int
    has_more: bool
    total_pages: int
    current_page: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
            "totalPages": self.total_pages,
            "currentPage": self.current_page,
        }


def build_pagination(
    sql_total: int,
    limit: Optional[int],
    offset: int,
    reported_total: Optional[int] = None,
) -> Pagination:
    """
    Pagination metadata for one page.

    Page arithmetic always uses ``sql_total``. ``reported_total`` replaces
    the ``total`` field only, so after distance filtering ``total`` can
    disagree with ``hasMore``/``totalPages``.
    """
    total = sql_total if reported_total is None else reported_total

    if limit is None:
        return Pagination(
            total=total,
            limit=sql_total,
            offset=offset,
            has_more=False,
            total_pages=1,
            current_page=1,
        )

    return Pagination(
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < sql_total,
        total_pages=math.ceil(sql_total / limit),
        current_page=offset // limit + 1,
    )


@dataclass
class SearchResult:
    contractors: List[Union[ContractorRecord, RankedContractor]]
    pagination: Pagination
    search_location: Optional[Coordinate] = None
    ranked: bool = False
    matched: int = 0  # database-level matches
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "success": True,
            "contractors": [c.to_dict() for c in self.contractors],
            "pagination": self.pagination.to_dict(),
        }
        if self.search_location is not None:
            data["searchLocation"] = self.search_location.to_dict()
        return data


class ContractorSearchService:
    """
    Location-aware contractor search.

    Collaborators are injected: a repository for the filtered page and
    count, and an optional geocoder for turning location text into a
    search coordinate.
    """

    def __init__(
        self,
        repository: ContractorRepository,
        geocoder: Optional[Geocoder] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.geocoder = geocoder
        self.settings = settings or Settings()

    def search_params(self, params: Mapping[str, str]) -> SearchResult:
        """Validate raw query-string parameters, then search."""
        query = parse_search_query(
            params,
            default_limit=self.settings.default_limit,
            max_limit=self.settings.max_limit,
        )
        return self.search(query)

    def search(self, query: SearchQuery) -> SearchResult:
        parsed = None
        if query.location and query.location.strip():
            parsed = parse_location(query.location)

        flt = build_filter(query, parsed)
        notes: List[str] = []

        origin = resolve_coordinate(self.geocoder, parsed.raw) if parsed else None

        # Place-name searches are always ranked; a bare state or postcode is
        # already an exact filter and is only ranked when a radius is given.
        rank = origin is not None and (
            parsed.kind is LocationKind.GEOCODE_AND_RANK or query.distance_km is not None
        )
        if parsed is not None and origin is None:
            notes.append(f"Could not geocode '{parsed.raw}'; results are not distance-ranked")

        if rank and query.distance_km is not None and self.settings.bounding_box_prefilter:
            flt = flt.with_bounding_box(
                bounding_box(origin.latitude, origin.longitude, query.distance_km)
            )

        records, sql_total = fetch_page(
            self.repository,
            flt,
            query.limit,
            query.offset,
            parallel=self.settings.parallel_fetch,
        )

        if rank:
            contractors = rank_by_distance(records, origin, query.distance_km)
        else:
            contractors = list(records)

        reported_total = None
        if rank and self.settings.report_ranked_total:
            reported_total = len(contractors)

        logger.info(
            "Contractor search location=%r kind=%s matched=%d returned=%d ranked=%s",
            parsed.raw if parsed else None,
            parsed.kind.value if parsed else None,
            sql_total,
            len(contractors),
            rank,
        )

        return SearchResult(
            contractors=contractors,
            pagination=build_pagination(sql_total, query.limit, query.offset, reported_total),
            search_location=origin,
            ranked=rank,
            matched=sql_total,
            notes=notes,
        )
