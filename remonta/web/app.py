"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from remonta import __version__
from remonta.config import Settings, load_config
from remonta.ratelimit import RateLimiter, RateLimitExceeded, SlidingWindowRateLimiter
from remonta.search.geocoding import Geocoder, build_geocoder
from remonta.search.repository import ContractorRepository, SqlAlchemyContractorRepository
from remonta.search.service import ContractorSearchService
from remonta.web.database import create_db_engine, create_session_factory, init_db

logger = logging.getLogger(__name__)


def _parse_origins(value: str) -> list:
    if not value or value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    decision = exc.decision
    headers = decision.headers()
    headers["Retry-After"] = str(decision.retry_after)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
            "retryAfter": decision.retry_after,
        },
        headers=headers,
    )


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[ContractorRepository] = None,
    geocoder: Optional[Geocoder] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators not passed in are built from ``settings``: a SQLAlchemy
    repository over ``database_url``, the configured geocoder, and an
    in-process rate limiter when rate limiting is enabled.
    """
    settings = settings or load_config()

    if repository is None:
        engine = create_db_engine(settings.database_url or None)
        init_db(engine)
        repository = SqlAlchemyContractorRepository(create_session_factory(engine))

    if geocoder is None:
        geocoder = build_geocoder(settings)

    if rate_limiter is None and settings.rate_limit_enabled:
        rate_limiter = SlidingWindowRateLimiter(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        close = getattr(app.state.geocoder, "close", None)
        if close is not None:
            close()

    app = FastAPI(
        title="Remonta Contractor Directory",
        description="Location-aware search over NDIS support contractors",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.repository = repository
    app.state.geocoder = geocoder
    app.state.rate_limiter = rate_limiter
    app.state.search_service = ContractorSearchService(repository, geocoder, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # API v1 routes
    from remonta.web.api.v1.router import router as api_router
    app.include_router(api_router)

    logger.info(
        "App ready (geocoder=%s, rate_limit=%s)",
        type(geocoder).__name__,
        "on" if app.state.rate_limiter is not None else "off",
    )
    return app
