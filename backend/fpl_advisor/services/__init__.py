"""Service layer for business logic."""

from fpl_advisor.services.advisor import AdvisorService
from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.completion_client import CompletionClient
from fpl_advisor.services.fpl_client import FplApiClient
from fpl_advisor.services.rate_limit import RateLimiter
from fpl_advisor.services.standings import StandingsCollector
from fpl_advisor.services.team_import import TeamTransformer

__all__ = [
    "AdvisorService",
    "CompletionClient",
    "ContextSynthesizer",
    "FplApiClient",
    "RateLimiter",
    "ReferenceDataCache",
    "StandingsCollector",
    "TeamTransformer",
]
