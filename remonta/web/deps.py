"""Request dependencies shared by the API routes."""

import logging
from typing import Dict

from fastapi import Request

from remonta.ratelimit import RateLimitExceeded, get_client_ip
from remonta.search.service import ContractorSearchService

logger = logging.getLogger(__name__)


def get_search_service(request: Request) -> ContractorSearchService:
    return request.app.state.search_service


def enforce_rate_limit(request: Request) -> None:
    """
    Count the request against the client's quota.

    Raises RateLimitExceeded when the client is over quota. A failing
    limiter lets the request through.
    """
    limiter = request.app.state.rate_limiter
    if limiter is None:
        return

    peer = request.client.host if request.client else None
    identifier = get_client_ip(request.headers, peer)

    try:
        decision = limiter.check(identifier)
    except Exception:
        logger.exception("Rate limiter failed, allowing request")
        return

    if not decision.allowed:
        logger.info("Rate limit exceeded for %s", identifier)
        raise RateLimitExceeded(decision)

    request.state.rate_limit = decision


def rate_limit_headers(request: Request) -> Dict[str, str]:
    """X-RateLimit-* headers for the decision made on this request, if any."""
    decision = getattr(request.state, "rate_limit", None)
    return decision.headers() if decision is not None else {}
