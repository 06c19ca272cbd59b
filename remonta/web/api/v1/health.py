"""Health endpoint."""

import time

from fastapi import APIRouter, Request

from remonta.web.api.v1.models import HealthResponse

router = APIRouter()

_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request):
    """Liveness check."""
    from remonta import __version__

    geocoder = request.app.state.geocoder
    inner = getattr(geocoder, "geocoder", geocoder)

    return HealthResponse(
        status="healthy",
        version=__version__,
        geocoder=type(inner).__name__ if inner is not None else "none",
        uptime_seconds=int(time.time() - _start_time),
    )
