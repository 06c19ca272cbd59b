"""Contractor directory endpoints."""

import logging
from collections import Counter

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from remonta.search.locations import AU_STATES, normalize_state
from remonta.search.params import SearchParameterError
from remonta.search.service import ContractorSearchService
from remonta.web.api.v1.models import StateCount, StatesResponse
from remonta.web.deps import get_search_service, rate_limit_headers

logger = logging.getLogger(__name__)

router = APIRouter()

FETCH_ERROR = {
    "success": False,
    "error": "Failed to fetch contractors. Please try again later.",
    "code": "CONTRACTORS_FETCH_ERROR",
}


@router.get("/contractors")
def search_contractors(
    request: Request,
    service: ContractorSearchService = Depends(get_search_service),
):
    """
    Search contractors, optionally ranked by distance from a location.

    Query parameters: limit (number or "all"), offset, location, distance,
    gender, supportType, and the older city/state/postalCode filters which
    only apply when no location is given.
    """
    headers = rate_limit_headers(request)

    try:
        result = service.search_params(request.query_params)
    except SearchParameterError as e:
        return JSONResponse(status_code=400, content={"error": e.message}, headers=headers)
    except Exception:
        logger.exception("Contractor search failed")
        return JSONResponse(status_code=500, content=FETCH_ERROR, headers=headers)

    headers["Cache-Control"] = service.settings.cache_control
    return JSONResponse(content=result.to_dict(), headers=headers)


@router.get("/contractors/states", response_model=StatesResponse)
def contractor_states(request: Request):
    """Active contractor counts per state, for the area browser."""
    counts: Counter = Counter()
    for raw_state, count in request.app.state.repository.state_counts():
        code = normalize_state(raw_state) or raw_state.strip().upper()
        if code:
            counts[code] += count

    states = [
        StateCount(state=code, name=AU_STATES.get(code), count=count)
        for code, count in sorted(counts.items())
    ]
    return StatesResponse(states=states, total=sum(counts.values()))


@router.get("/contractors/{contractor_id}")
def get_contractor(contractor_id: str, request: Request):
    """Single active contractor profile."""
    headers = rate_limit_headers(request)

    record = request.app.state.repository.get(contractor_id)
    if record is None:
        return JSONResponse(status_code=404, content={"error": "Contractor not found"}, headers=headers)

    return JSONResponse(content={"success": True, "contractor": record.to_dict()}, headers=headers)
