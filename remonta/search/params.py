"""Query parameter validation for contractor search."""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from remonta.config import DEFAULT_LIMIT, DEFAULT_OFFSET, MAX_LIMIT

UNBOUNDED_LIMIT = "all"

INVALID_LIMIT = 'Invalid limit parameter. Must be a positive number or "all".'
INVALID_OFFSET = "Invalid offset parameter. Must be a non-negative number."
INVALID_DISTANCE = "Invalid distance parameter. Must be a positive number."


class SearchParameterError(ValueError):
    """A caller-supplied query parameter failed validation."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.parameter = parameter


@dataclass(frozen=True)
class SearchQuery:
    """Validated search request."""

    limit: Optional[int] = DEFAULT_LIMIT  # None means "all"
    offset: int = DEFAULT_OFFSET
    location: Optional[str] = None
    distance_km: Optional[float] = None

    # Discrete location fields, only used without ``location``
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    gender: Optional[str] = None
    support_type: Optional[str] = None

    @property
    def unbounded(self) -> bool:
        return self.limit is None


def _parse_int(value: str) -> Optional[int]:
    # ASCII digits with an optional sign only; int() alone also takes "1_0" and "５"
    text = value.strip()
    if not (text.isascii() and text.lstrip("+-").isdigit()):
        return None
    try:
        return int(text)
    except ValueError:
        return None


def parse_limit(value: Optional[str], default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> Optional[int]:
    """Parse ``limit``; returns None for "all", clamps to ``maximum``."""
    if value is None or value == "":
        return default
    if value == UNBOUNDED_LIMIT:
        return None

    parsed = _parse_int(value)
    if parsed is None or parsed < 1:
        raise SearchParameterError(INVALID_LIMIT, parameter="limit")
    return min(parsed, maximum)


def parse_offset(value: Optional[str]) -> int:
    if value is None or value == "":
        return DEFAULT_OFFSET

    parsed = _parse_int(value)
    if parsed is None or parsed < 0:
        raise SearchParameterError(INVALID_OFFSET, parameter="offset")
    return parsed


def parse_distance(value: Optional[str]) -> Optional[float]:
    """Parse the search radius in kilometres; None when absent."""
    if value is None or value == "":
        return None

    try:
        parsed = float(value.strip())
    except ValueError:
        raise SearchParameterError(INVALID_DISTANCE, parameter="distance") from None

    if not math.isfinite(parsed) or parsed <= 0:
        raise SearchParameterError(INVALID_DISTANCE, parameter="distance")
    return parsed


def parse_search_query(
    params: Mapping[str, str],
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> SearchQuery:
    """
    Build a SearchQuery from raw query-string parameters.

    Raises:
        SearchParameterError: for a malformed ``limit``, ``offset`` or ``distance``
    """
    return SearchQuery(
        limit=parse_limit(params.get("limit"), default=default_limit, maximum=max_limit),
        offset=parse_offset(params.get("offset")),
        location=params.get("location"),
        distance_km=parse_distance(params.get("distance")),
        city=params.get("city"),
        state=params.get("state"),
        postal_code=params.get("postalCode"),
        gender=params.get("gender"),
        support_type=params.get("supportType"),
    )
