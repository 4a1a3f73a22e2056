"""Process-wide service objects, built once at startup and shared by requests."""

import logging
from dataclasses import dataclass

from fpl_advisor.config import Settings
from fpl_advisor.services.advisor import AdvisorService
from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.completion_client import CompletionClient
from fpl_advisor.services.fpl_client import FplApiClient
from fpl_advisor.services.rate_limit import RateLimiter
from fpl_advisor.services.standings import StandingsCollector
from fpl_advisor.services.team_import import TeamTransformer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    fpl_client: FplApiClient
    reference_cache: ReferenceDataCache
    standings: StandingsCollector
    team_transformer: TeamTransformer
    synthesizer: ContextSynthesizer
    completion_client: CompletionClient
    advisor: AdvisorService
    rate_limiter: RateLimiter

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        """Wire every service around one FPL client and one bootstrap cache."""
        fpl_client = FplApiClient(
            base_url=settings.fpl_api_base_url,
            requests_per_second=settings.fpl_requests_per_second,
            timeout=settings.fpl_timeout,
        )
        reference_cache = ReferenceDataCache.for_client(
            fpl_client, ttl=settings.cache_ttl_bootstrap
        )
        synthesizer = ContextSynthesizer(
            fpl_client, reference_cache, fixture_horizon=settings.fixture_horizon
        )
        completion_client = CompletionClient(
            api_key=settings.llm_api_key,
            api_url=settings.llm_api_url,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout,
            max_attempts=settings.llm_max_attempts,
        )
        if not completion_client.configured:
            logger.warning("LLM API key not configured - advisor chat will fail")

        return cls(
            fpl_client=fpl_client,
            reference_cache=reference_cache,
            standings=StandingsCollector(fpl_client),
            team_transformer=TeamTransformer(fpl_client, reference_cache),
            synthesizer=synthesizer,
            completion_client=completion_client,
            advisor=AdvisorService(synthesizer, completion_client),
            rate_limiter=RateLimiter(sweep_interval=settings.rate_limit_sweep_interval),
        )

    def start(self) -> None:
        self.rate_limiter.start()

    async def close(self) -> None:
        await self.rate_limiter.stop()
        await self.completion_client.close()
        await self.fpl_client.close()
