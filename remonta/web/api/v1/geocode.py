"""Location lookup endpoint used by the search box."""

from typing import Optional

from fastapi import APIRouter, Request

from remonta.search.geocoding import safe_geocode
from remonta.search.locations import parse_location
from remonta.web.api.v1.models import GeocodeResponse

router = APIRouter()

MIN_QUERY_LENGTH = 2


@router.get("/geocode", response_model=GeocodeResponse)
def geocode(request: Request, q: Optional[str] = None):
    """
    Resolve free text to coordinates and a state code.

    Unresolvable or too-short input returns nulls rather than an error.
    """
    if not q or len(q.strip()) < MIN_QUERY_LENGTH:
        return GeocodeResponse()

    result = safe_geocode(request.app.state.geocoder, q)
    if result is None:
        return GeocodeResponse()

    state = parse_location(q).state
    if state is None and result.formatted_address:
        state = parse_location(result.formatted_address).state

    return GeocodeResponse(latitude=result.latitude, longitude=result.longitude, state=state)
