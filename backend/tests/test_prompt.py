"""Tests for advisor prompt rendering."""

from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest

from fpl_advisor.services.ai_context import (
    AIContext,
    ContextSynthesizer,
    EnrichedPlayer,
    TeamFixture,
    TopPlayers,
)
from fpl_advisor.services.fpl_client import POSITION_FWD, Fixture, Player, ReferenceSnapshot
from fpl_advisor.services.prompt import (
    UNLISTED_PLAYER_REPLY,
    TeamInfo,
    build_advisor_prompt,
    build_fallback_prompt,
    format_player,
    triple_captain_candidates,
)
from fpl_advisor.services.team_import import TransformedTeamRecord


def enriched_forward(name: str, form: str, difficulties: list[int]) -> EnrichedPlayer:
    player = Player.from_api(
        {
            "id": 9,
            "web_name": name,
            "element_type": POSITION_FWD,
            "now_cost": 90,
            "form": form,
            "total_points": 60,
            "goals_scored": 6,
            "assists": 2,
        }
    )
    return EnrichedPlayer(
        player=player,
        team_name="Arsenal",
        team_short_name="ARS",
        availability="Available",
        injury_news="No news",
        upcoming_fixtures=tuple(
            TeamFixture(gameweek=3 + i, opponent="Burnley", opponent_id=3, is_home=True, difficulty=d)
            for i, d in enumerate(difficulties)
        ),
    )


@pytest.fixture
async def context(bootstrap_data: dict[str, Any]) -> AIContext:
    bootstrap_data["events"].extend({"id": gw} for gw in range(5, 39))
    client = AsyncMock()
    client.get_fixtures.side_effect = lambda event=None: [
        Fixture(
            id=event,
            event=event,
            team_h=1,
            team_a=15,
            team_h_difficulty=2,
            team_a_difficulty=4,
            kickoff_time=None,
        )
    ]
    cache = AsyncMock()
    cache.get_snapshot.return_value = ReferenceSnapshot.from_api(bootstrap_data)
    synthesizer = ContextSynthesizer(client, cache, clock=lambda: date(2025, 9, 14))
    return await synthesizer.synthesize()


class TestBuildAdvisorPrompt:
    """Tests for the live-data prompt."""

    def test_contains_unlisted_player_instruction(self, context: AIContext):
        prompt = build_advisor_prompt(context)

        assert UNLISTED_PLAYER_REPLY in prompt
        assert "I don't have current data for that player" in prompt

    def test_lists_ranked_players_only(self, context: AIContext):
        """Players outside the top lists (Isak, Alisson) only appear as injury news."""
        prompt = build_advisor_prompt(context)
        top_section = prompt.split("FIXTURE & TEAM ANALYSIS")[0]

        for name in ("Raya", "Saliba", "Salah"):
            assert f"- {name} (" in top_section
        assert "Isak" not in top_section
        assert "Alisson" not in top_section

    def test_header_shows_season_and_gameweeks(self, context: AIContext):
        prompt = build_advisor_prompt(context)

        assert "SEASON: 2025/2026 | CURRENT: GAMEWEEK 2 | NEXT: GAMEWEEK 3" in prompt

    def test_injuries_rendered_with_status(self, context: AIContext):
        prompt = build_advisor_prompt(context)

        assert "- Isak (NEW): Doubtful - Groin injury - 50% chance of playing" in prompt
        assert "- Alisson (LIV): Injured - Hamstring injury" in prompt

    def test_defenses_sorted_by_goals_conceded(self, context: AIContext):
        prompt = build_advisor_prompt(context)
        weak = prompt.split("WEAK DEFENSES TO TARGET")[1].split("STRONG DEFENSES")[0]
        strong = prompt.split("STRONG DEFENSES (For clean sheet potential):")[1]

        assert weak.index("Newcastle") < weak.index("Liverpool") < weak.index("Arsenal")
        assert strong.index("Arsenal") < strong.index("Liverpool") < strong.index("Newcastle")

    def test_no_team_block_without_team(self, context: AIContext):
        assert "No team data available" in build_advisor_prompt(context)

    def test_team_block_rendered(self, context: AIContext):
        team = TeamInfo(
            team_name="Tapas United",
            team_value=102.3,
            bank_value=1.5,
            free_transfers=1,
            total_points=456,
            overall_rank=None,
        )

        prompt = build_advisor_prompt(context, team)

        assert "CURRENT TEAM: Tapas United" in prompt
        assert "Team Value: £102.3m" in prompt
        assert "Overall Rank: N/A" in prompt

    def test_deterministic(self, context: AIContext):
        assert build_advisor_prompt(context) == build_advisor_prompt(context)

    def test_player_line_shows_price_and_three_fixtures(self, context: AIContext):
        raya = context.top_players.goalkeepers[0]

        line = format_player(raya)

        assert "£5.5m" in line
        assert "5CS, 20 saves" in line
        assert line.count("GW") == 3


class TestTripleCaptainCandidates:
    """MID/FWD with two easy games in the next three and form of at least 6."""

    def _context(self, *forwards: EnrichedPlayer) -> AIContext:
        return AIContext(
            current_gameweek=2,
            next_gameweek=3,
            season="2025/2026",
            top_players=TopPlayers(forwards=forwards),
        )

    def test_candidate_selection(self):
        hot = enriched_forward("Hot", "7.0", [2, 1, 5])
        cold = enriched_forward("Cold", "5.9", [1, 1, 1])
        hard_run = enriched_forward("Hard", "8.0", [2, 4, 4, 1, 1])

        candidates = triple_captain_candidates(self._context(hot, cold, hard_run))

        assert [c.player.web_name for c in candidates] == ["Hot"]

    def test_fallback_text_when_none(self):
        prompt = build_advisor_prompt(self._context())

        assert "Check players with multiple easy fixtures" in prompt
        assert "No players available" in prompt


class TestFallbackPrompt:
    def test_fallback_keeps_no_invention_rule(self):
        prompt = build_fallback_prompt()

        assert UNLISTED_PLAYER_REPLY in prompt
        assert "No team data available" in prompt

    def test_fallback_includes_team_from_record(self):
        record = TransformedTeamRecord(
            fpl_team_id=123,
            team_name="Tapas United",
            current_squad="[]",
            bank_value=1.5,
            team_value=102.3,
            total_points=456,
            overall_rank=98765,
            free_transfers=1,
        )

        prompt = build_fallback_prompt(TeamInfo.from_record(record))

        assert "CURRENT TEAM: Tapas United" in prompt
        assert "Overall Rank: 98765" in prompt
