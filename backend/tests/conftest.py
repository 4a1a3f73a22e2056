"""Shared pytest fixtures for backend tests."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from fpl_advisor.dependencies import get_services
from fpl_advisor.main import app
from fpl_advisor.services.advisor import AdvisorService
from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.completion_client import CompletionClient
from fpl_advisor.services.container import ServiceContainer
from fpl_advisor.services.fpl_client import FplApiClient
from fpl_advisor.services.rate_limit import RateLimiter
from fpl_advisor.services.standings import StandingsCollector
from fpl_advisor.services.team_import import TeamTransformer


@pytest.fixture
def bootstrap_data() -> dict[str, Any]:
    """Small but complete bootstrap-static payload (GW2 current, GW3 next)."""
    return {
        "elements": [
            {
                "id": 1,
                "web_name": "Raya",
                "team": 1,
                "element_type": 1,
                "now_cost": 55,
                "total_points": 40,
                "minutes": 900,
                "clean_sheets": 5,
                "saves": 20,
                "form": "5.0",
                "points_per_game": "4.4",
                "selected_by_percent": "20.1",
                "status": "a",
                "news": "",
                "chance_of_playing_next_round": None,
            },
            {
                "id": 2,
                "web_name": "Saliba",
                "team": 1,
                "element_type": 2,
                "now_cost": 60,
                "total_points": 45,
                "minutes": 900,
                "goals_scored": 1,
                "assists": 1,
                "clean_sheets": 4,
                "form": "6.0",
                "points_per_game": "5.0",
                "selected_by_percent": "30.0",
                "status": "a",
                "news": "",
                "chance_of_playing_next_round": None,
            },
            {
                "id": 3,
                "web_name": "Salah",
                "team": 12,
                "element_type": 3,
                "now_cost": 130,
                "total_points": 80,
                "minutes": 900,
                "goals_scored": 7,
                "assists": 5,
                "clean_sheets": 3,
                "form": "9.5",
                "points_per_game": "8.9",
                "selected_by_percent": "55.3",
                "status": "a",
                "news": "",
                "chance_of_playing_next_round": 100,
            },
            {
                "id": 4,
                "web_name": "Isak",
                "team": 15,
                "element_type": 4,
                "now_cost": 85,
                "total_points": 30,
                "minutes": 450,
                "goals_scored": 3,
                "assists": 0,
                "form": "4.0",
                "points_per_game": "5.0",
                "selected_by_percent": "12.0",
                "status": "d",
                "news": "Groin injury - 50% chance of playing",
                "chance_of_playing_next_round": 50,
                "chance_of_playing_this_round": 50,
            },
            {
                "id": 5,
                "web_name": "Alisson",
                "team": 12,
                "element_type": 1,
                "now_cost": 55,
                "total_points": 20,
                "minutes": 360,
                "clean_sheets": 2,
                "form": "2.0",
                "points_per_game": "3.0",
                "selected_by_percent": "8.0",
                "status": "i",
                "news": "Hamstring injury - Expected back 01 Nov",
                "chance_of_playing_next_round": 0,
                "chance_of_playing_this_round": 0,
            },
        ],
        "teams": [
            {"id": 1, "name": "Arsenal", "short_name": "ARS", "strength": 5, "goal_conceded": 3},
            {"id": 12, "name": "Liverpool", "short_name": "LIV", "strength": 5, "goal_conceded": 6},
            {"id": 15, "name": "Newcastle", "short_name": "NEW", "strength": 4, "goal_conceded": 9},
        ],
        "events": [
            {"id": 1, "name": "Gameweek 1", "finished": True},
            {"id": 2, "name": "Gameweek 2", "is_current": True},
            {"id": 3, "name": "Gameweek 3", "is_next": True},
            {"id": 4, "name": "Gameweek 4"},
        ],
    }


@pytest.fixture
def services() -> ServiceContainer:
    """Container of mocked services with a real (fresh) rate limiter."""
    return ServiceContainer(
        fpl_client=MagicMock(spec=FplApiClient),
        reference_cache=MagicMock(spec=ReferenceDataCache),
        standings=MagicMock(spec=StandingsCollector),
        team_transformer=MagicMock(spec=TeamTransformer),
        synthesizer=MagicMock(spec=ContextSynthesizer),
        completion_client=MagicMock(spec=CompletionClient),
        advisor=MagicMock(spec=AdvisorService),
        rate_limiter=RateLimiter(),
    )


@pytest.fixture
async def async_client(services: ServiceContainer):
    """Async HTTP client for testing the FastAPI app against mocked services."""
    app.dependency_overrides[get_services] = lambda: services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
