"""Main FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fpl_advisor.api.routes import router
from fpl_advisor.config import get_settings
from fpl_advisor.db import close_pool, init_pool
from fpl_advisor.services.container import ServiceContainer
from fpl_advisor.services.errors import (
    CompletionError,
    InvalidInputError,
    TeamNotFoundError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting FPL Advisor backend")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    logger.info(f"FPL API base: {settings.fpl_api_base_url}")

    services = ServiceContainer.from_settings(settings)
    services.start()
    app.state.services = services

    if settings.database_url:
        await init_pool()
    else:
        logger.info("DATABASE_URL not set - imported teams will not be saved")

    yield

    logger.info("Shutting down FPL Advisor backend")
    await services.close()
    await close_pool()


# Create FastAPI app
app = FastAPI(
    title="FPL Advisor Backend",
    description="FPL data aggregation, league standings and AI transfer advice",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


# =============================================================================
# Error mapping
# =============================================================================


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(UpstreamNotFoundError)
async def not_found_handler(request: Request, exc: UpstreamNotFoundError) -> JSONResponse:
    if isinstance(exc, TeamNotFoundError):
        detail = f"{exc.message}. Please check your team ID."
    else:
        detail = "Not found on FPL. Please check the ID."
    return JSONResponse(status_code=404, content={"detail": detail})


@app.exception_handler(UpstreamRateLimitedError)
async def upstream_rate_limited_handler(
    request: Request, exc: UpstreamRateLimitedError
) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": "FPL API is rate limiting requests. Please try again later."},
    )


@app.exception_handler(UpstreamUnavailableError)
async def upstream_unavailable_handler(
    request: Request, exc: UpstreamUnavailableError
) -> JSONResponse:
    logger.error(f"FPL upstream failure on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=503,
        content={"detail": "FPL API is currently unavailable. Please try again later."},
    )


@app.exception_handler(CompletionError)
async def completion_error_handler(request: Request, exc: CompletionError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "AI service temporarily unavailable", "error": exc.message},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}
