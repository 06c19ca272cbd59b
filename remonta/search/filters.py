"""Translate a search request into a conjunctive database filter."""

from dataclasses import dataclass, replace
from typing import Optional

from sqlalchemy import Select, func

from remonta.models import BoundingBox
from remonta.search.locations import LocationKind, ParsedLocation
from remonta.search.params import SearchQuery
from remonta.web.database import ContractorProfile

ALL = "All"  # Dropdown sentinel meaning "no filter"


@dataclass(frozen=True)
class ContractorFilter:
    """All set fields are ANDed together."""

    state_contains: Optional[str] = None
    postal_code_contains: Optional[str] = None
    city_contains: Optional[str] = None
    gender_equals: Optional[str] = None
    title_contains: Optional[str] = None
    bounding_box: Optional[BoundingBox] = None
    include_deleted: bool = False

    def with_bounding_box(self, box: BoundingBox) -> "ContractorFilter":
        return replace(self, bounding_box=box)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_filter(query: SearchQuery, parsed: Optional[ParsedLocation] = None) -> ContractorFilter:
    """
    Build the database filter for a search.

    A combined ``location`` decides the location filter on its own: a bare
    state or a bare postcode becomes a "contains" filter, anything with a
    place name adds no text filter (distance ranking orders those instead).
    The discrete city/state/postalCode fields only apply when ``location``
    was not supplied at all.
    """
    state = postal = city = None

    if parsed is not None and parsed.kind is LocationKind.PURE_STATE:
        state = parsed.state
    elif parsed is not None and parsed.kind is LocationKind.PURE_POSTAL:
        postal = parsed.postal_code

    if not query.location:
        city = _clean(query.city)
        state = _clean(query.state)
        postal = _clean(query.postal_code)

    gender = _clean(query.gender)
    if gender == ALL:
        gender = None

    support_type = _clean(query.support_type)
    if support_type == ALL:
        support_type = None

    return ContractorFilter(
        state_contains=state,
        postal_code_contains=postal,
        city_contains=city,
        gender_equals=gender,
        title_contains=support_type,
    )


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_filter(stmt: Select, flt: ContractorFilter) -> Select:
    """Add the WHERE clauses for ``flt`` to a ContractorProfile select."""
    if not flt.include_deleted:
        stmt = stmt.where(ContractorProfile.deleted_at.is_(None))

    if flt.state_contains:
        stmt = stmt.where(ContractorProfile.state.ilike(_like_pattern(flt.state_contains), escape="\\"))
    if flt.postal_code_contains:
        stmt = stmt.where(
            ContractorProfile.postal_zip_code.ilike(_like_pattern(flt.postal_code_contains), escape="\\")
        )
    if flt.city_contains:
        stmt = stmt.where(ContractorProfile.city.ilike(_like_pattern(flt.city_contains), escape="\\"))
    if flt.gender_equals:
        stmt = stmt.where(func.lower(ContractorProfile.gender) == flt.gender_equals.lower())
    if flt.title_contains:
        stmt = stmt.where(ContractorProfile.title_role.ilike(_like_pattern(flt.title_contains), escape="\\"))

    if flt.bounding_box is not None:
        box = flt.bounding_box
        stmt = stmt.where(
            ContractorProfile.latitude.between(box.min_lat, box.max_lat),
            ContractorProfile.longitude.between(box.min_lon, box.max_lon),
        )

    return stmt
