#!/usr/bin/env python
"""
Build the AI advisor context from live FPL data and print it.

Useful for checking what the advisor will be told before spending tokens.

Usage:
    python -m scripts.dump_ai_context                # Context as JSON
    python -m scripts.dump_ai_context --prompt       # Rendered system prompt
    python -m scripts.dump_ai_context --team-id 123  # Include a team in the prompt
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fpl_advisor.config import get_settings
from fpl_advisor.schemas.advisor import AIContextResponse
from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.errors import InvalidInputError, UpstreamError
from fpl_advisor.services.fpl_client import FplApiClient
from fpl_advisor.services.prompt import TeamInfo, build_advisor_prompt
from fpl_advisor.services.team_import import TeamTransformer

# Load environment
load_dotenv(".env.local")
load_dotenv(".env")

# Configure logging (stderr, so stdout stays clean for the output)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def dump_context(show_prompt: bool, team_id: int | None) -> str:
    settings = get_settings()

    async with FplApiClient(
        base_url=settings.fpl_api_base_url,
        requests_per_second=settings.fpl_requests_per_second,
        timeout=settings.fpl_timeout,
    ) as client:
        cache = ReferenceDataCache.for_client(client, ttl=settings.cache_ttl_bootstrap)
        synthesizer = ContextSynthesizer(
            client, cache, fixture_horizon=settings.fixture_horizon
        )
        context = await synthesizer.synthesize()

        if not show_prompt:
            return AIContextResponse.model_validate(
                context, from_attributes=True
            ).model_dump_json(indent=2)

        team = None
        if team_id is not None:
            record = await TeamTransformer(client, cache).transform(team_id)
            team = TeamInfo.from_record(record)
        return build_advisor_prompt(context, team)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the AI advisor context")
    parser.add_argument(
        "--prompt", action="store_true", help="Print the rendered system prompt instead of JSON"
    )
    parser.add_argument("--team-id", type=int, help="FPL team to include in the prompt")
    args = parser.parse_args()

    try:
        output = await dump_context(args.prompt, args.team_id)
    except (UpstreamError, InvalidInputError) as e:
        logger.error(f"Failed to build AI context: {e}")
        sys.exit(1)

    print(output)


if __name__ == "__main__":
    asyncio.run(main())
