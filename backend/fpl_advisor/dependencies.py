"""Shared FastAPI dependencies for API routes.

Services are built in the application lifespan and stored on
``app.state.services``; routes reach them through these getters so tests can
swap the whole container with ``app.dependency_overrides[get_services]``.
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, Response

from fpl_advisor.db import is_available
from fpl_advisor.services.advisor import AdvisorService
from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.container import ServiceContainer
from fpl_advisor.services.rate_limit import RATE_LIMITS, RateLimiter
from fpl_advisor.services.standings import StandingsCollector
from fpl_advisor.services.team_import import TeamTransformer


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return services


def get_reference_cache(
    services: ServiceContainer = Depends(get_services),
) -> ReferenceDataCache:
    return services.reference_cache


def get_standings_collector(
    services: ServiceContainer = Depends(get_services),
) -> StandingsCollector:
    return services.standings


def get_team_transformer(
    services: ServiceContainer = Depends(get_services),
) -> TeamTransformer:
    return services.team_transformer


def get_context_synthesizer(
    services: ServiceContainer = Depends(get_services),
) -> ContextSynthesizer:
    return services.synthesizer


def get_advisor(services: ServiceContainer = Depends(get_services)) -> AdvisorService:
    return services.advisor


def get_rate_limiter(services: ServiceContainer = Depends(get_services)) -> RateLimiter:
    return services.rate_limiter


def rate_limit(name: str) -> Callable[..., Awaitable[None]]:
    """Dependency factory enforcing one of the named RATE_LIMITS.

    Over-limit requests get 429 with Retry-After; allowed requests carry the
    X-RateLimit-* headers.

    Usage:
        @router.get("/endpoint", dependencies=[Depends(rate_limit("api"))])
    """
    config = RATE_LIMITS[name]

    async def check(
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        result = limiter.check_request(config, request)
        headers = result.headers()
        if not result.allowed:
            headers["Retry-After"] = str(result.retry_after(limiter.now()))
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please wait before trying again.",
                headers=headers,
            )
        response.headers.update(headers)

    return check


def db_available() -> bool:
    """Whether team persistence is possible (DATABASE_URL set and pool up)."""
    return is_available()
