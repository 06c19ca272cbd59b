"""API v1 router."""

from fastapi import APIRouter, Depends

from remonta.web.api.v1 import contractors, geocode, health
from remonta.web.deps import enforce_rate_limit

router = APIRouter(prefix="/api/v1", dependencies=[Depends(enforce_rate_limit)])

router.include_router(contractors.router, tags=["contractors"])
router.include_router(geocode.router, tags=["geocode"])
router.include_router(health.router, tags=["health"])
