"""System prompt rendering for the FPL advisor.

The prompt only ever lists the players in the AIContext top lists, and tells
the model to refuse to discuss anyone else. Rendering is pure: the same
context and team always produce the same text.
"""

from dataclasses import dataclass

from fpl_advisor.services.ai_context import (
    EASY_FIXTURE_MAX_DIFFICULTY,
    AIContext,
    EnrichedPlayer,
    NO_NEWS,
    TeamFixture,
)
from fpl_advisor.services.fpl_client import (
    POSITION_DEF,
    POSITION_FWD,
    POSITION_GKP,
    POSITION_MID,
)
from fpl_advisor.services.team_import import TransformedTeamRecord

UNLISTED_PLAYER_REPLY = "I don't have current data for that player"

PROMPT_FIXTURES_PER_PLAYER = 3
PROMPT_EASY_FIXTURES_LIMIT = 15
PROMPT_INJURIES_LIMIT = 15
PROMPT_DEFENSES_LIMIT = 10
TRIPLE_CAPTAIN_LIMIT = 5
TRIPLE_CAPTAIN_MIN_EASY_FIXTURES = 2
TRIPLE_CAPTAIN_MIN_FORM = 6.0

SECTION_RULE = "=" * 50

INJURY_STATUS_LABELS = {"d": "Doubtful", "i": "Injured"}


@dataclass(frozen=True, slots=True)
class TeamInfo:
    """The user's team summary shown at the top of the prompt."""

    team_name: str
    team_value: float
    bank_value: float
    free_transfers: int
    total_points: int
    overall_rank: int | None = None

    @classmethod
    def from_record(cls, record: TransformedTeamRecord) -> "TeamInfo":
        return cls(
            team_name=record.team_name,
            team_value=record.team_value,
            bank_value=record.bank_value,
            free_transfers=record.free_transfers,
            total_points=record.total_points,
            overall_rank=record.overall_rank or None,
        )


# =============================================================================
# Section formatting
# =============================================================================


def format_fixture(fixture: TeamFixture) -> str:
    venue = "vs" if fixture.is_home else "@"
    return f"GW{fixture.gameweek}: {venue} {fixture.opponent} ({fixture.difficulty}/5)"


def format_next_fixtures(player: EnrichedPlayer) -> str:
    return ", ".join(
        format_fixture(f)
        for f in player.upcoming_fixtures[:PROMPT_FIXTURES_PER_PLAYER]
    )


def _position_stats(player: EnrichedPlayer) -> str:
    p = player.player
    if p.element_type in (POSITION_FWD, POSITION_MID):
        return f"{p.goals_scored}G {p.assists}A"
    if p.element_type == POSITION_DEF:
        return f"{p.clean_sheets}CS, {p.goals_scored}G {p.assists}A"
    if p.element_type == POSITION_GKP:
        return f"{p.clean_sheets}CS, {p.saves} saves"
    return ""


def format_player(player: EnrichedPlayer) -> str:
    p = player.player
    stats = f"{p.total_points}pts, Form: {p.form}, PPG: {p.points_per_game}"
    position_stats = _position_stats(player)
    if position_stats:
        stats += f", {position_stats}"

    status = player.availability
    if player.injury_news != NO_NEWS:
        status += f" - {player.injury_news}"

    return (
        f"- {p.web_name} ({player.team_short_name}): {stats}, "
        f"£{p.price:.1f}m, {p.selected_by_percent}% owned\n"
        f"     Status: {status}\n"
        f"     Next 3 Fixtures: {format_next_fixtures(player) or 'No fixtures data'}"
    )


def format_player_list(players: tuple[EnrichedPlayer, ...]) -> str:
    return "\n\n".join(format_player(p) for p in players) or "No players available"


def format_team_block(team: TeamInfo | None) -> str:
    if team is None:
        return "No team data available"
    return "\n".join(
        [
            f"CURRENT TEAM: {team.team_name or 'No team'}",
            f"Team Value: £{team.team_value}m",
            f"Bank: £{team.bank_value}m",
            f"Free Transfers: {team.free_transfers}",
            f"Total Points: {team.total_points}",
            f"Overall Rank: {team.overall_rank or 'N/A'}",
        ]
    )


def format_easy_fixtures(context: AIContext) -> str:
    lines = []
    for f in context.easy_fixtures[:PROMPT_EASY_FIXTURES_LIMIT]:
        venue = "vs" if f.is_home else "@"
        lines.append(
            f"- GW{f.gameweek}: {f.team} {venue} {f.opponent} "
            f"(Difficulty: {f.difficulty}/5)"
        )
    return "\n".join(lines) or "No easy fixtures currently"


def format_injuries(context: AIContext) -> str:
    lines = [
        f"- {p.player_name} ({p.team}): "
        f"{INJURY_STATUS_LABELS.get(p.status, 'Unavailable')} - {p.news}"
        for p in context.injured_players[:PROMPT_INJURIES_LIMIT]
    ]
    return "\n".join(lines) or "No major injuries reported"


def format_defenses(context: AIContext) -> tuple[str, str]:
    """Weakest and strongest defenses by goals conceded."""
    weakest = sorted(context.team_defensive_stats, key=lambda t: -t.goals_conceded)
    strongest = sorted(context.team_defensive_stats, key=lambda t: t.goals_conceded)
    weak = "\n".join(
        f"- {t.team_name}: {t.goals_conceded} goals conceded "
        "(Target for attackers/midfielders)"
        for t in weakest[:PROMPT_DEFENSES_LIMIT]
    )
    strong = "\n".join(
        f"- {t.team_name}: {t.goals_conceded} goals conceded "
        "(Good for defenders/GKs)"
        for t in strongest[:PROMPT_DEFENSES_LIMIT]
    )
    return weak or "No data", strong or "No data"


def triple_captain_candidates(context: AIContext) -> list[EnrichedPlayer]:
    """Listed forwards then midfielders with easy fixtures and strong form."""
    candidates = []
    for player in context.top_players.forwards + context.top_players.midfielders:
        upcoming = player.upcoming_fixtures[:PROMPT_FIXTURES_PER_PLAYER]
        easy = sum(1 for f in upcoming if f.difficulty <= EASY_FIXTURE_MAX_DIFFICULTY)
        if (
            easy >= TRIPLE_CAPTAIN_MIN_EASY_FIXTURES
            and player.player.form >= TRIPLE_CAPTAIN_MIN_FORM
        ):
            candidates.append(player)
    return candidates[:TRIPLE_CAPTAIN_LIMIT]


def format_triple_captains(context: AIContext) -> str:
    lines = [
        f"- {p.player.web_name} ({p.team_short_name}): Form {p.player.form}, "
        f"{p.player.total_points}pts - Fixtures: {format_next_fixtures(p)}"
        for p in triple_captain_candidates(context)
    ]
    return "\n".join(lines) or "Check players with multiple easy fixtures"


# =============================================================================
# Prompts
# =============================================================================


def build_advisor_prompt(context: AIContext, team: TeamInfo | None = None) -> str:
    """Render the live-data system prompt."""
    season = context.season
    top = context.top_players
    weak_defenses, strong_defenses = format_defenses(context)

    return f"""You are an expert Fantasy Premier League (FPL) advisor with real-time access to current {season} season data.

{SECTION_RULE}
SEASON: {season} | CURRENT: GAMEWEEK {context.current_gameweek} | NEXT: GAMEWEEK {context.next_gameweek}
{SECTION_RULE}

{format_team_block(team)}

{SECTION_RULE}
TOP 5 IN-FORM PLAYERS BY POSITION ({season} - ONLY RECOMMEND THESE PLAYERS)
{SECTION_RULE}

TOP 5 FORWARDS:
{format_player_list(top.forwards)}

TOP 5 MIDFIELDERS:
{format_player_list(top.midfielders)}

TOP 5 DEFENDERS:
{format_player_list(top.defenders)}

TOP 5 GOALKEEPERS:
{format_player_list(top.goalkeepers)}

{SECTION_RULE}
FIXTURE & TEAM ANALYSIS
{SECTION_RULE}

EASY UPCOMING FIXTURES (Difficulty 1-2):
{format_easy_fixtures(context)}

INJURY & TEAM NEWS:
{format_injuries(context)}

WEAK DEFENSES TO TARGET (For attacking players):
{weak_defenses}

STRONG DEFENSES (For clean sheet potential):
{strong_defenses}

TRIPLE CAPTAIN CANDIDATES (Best fixtures ahead):
{format_triple_captains(context)}

{SECTION_RULE}
CRITICAL INSTRUCTIONS
{SECTION_RULE}

PLAYER RECOMMENDATIONS:
1. ONLY recommend players from the TOP 5 lists above
2. When asked for "best 5 choices", list exactly 5 players from the relevant position
3. NEVER suggest players not in the lists. If asked about an unlisted player, say: "{UNLISTED_PLAYER_REPLY}. Here are the top 5 alternatives from {season}..."
4. NEVER invent player names, stats, or fixture data
5. Always reference the exact stats shown (goals, assists, clean sheets, form, PPG)

INJURY & AVAILABILITY:
1. Check injury status and news for every recommended player
2. Warn users about doubtful or injured players

FIXTURE ANALYSIS:
1. Use difficulty ratings (1=easiest, 5=hardest) and home/away status
2. Recommend defenders/GKs facing weak attacks and attackers facing weak defenses

TRIPLE CAPTAIN ADVICE:
1. ONLY recommend from the "Triple Captain Candidates" list
2. Explain fixture difficulty for the next 3 gameweeks

RESPONSE FORMAT:
1. Start with a direct answer to the user's question
2. For each player give name, team, key stats, next fixtures, injury status, price and ownership
3. Explain WHY each player is recommended
4. End with clear actionable advice

IMPORTANT RULES:
- Current gameweek: GW{context.current_gameweek}
- All data is from the {season} season ONLY
- Mention prices (£m) and warn about -4 point hits for extra transfers
- Focus on the next 1-3 gameweeks
- Never hallucinate or guess stats

Provide specific, data-driven advice using ONLY the information above."""


def build_fallback_prompt(team: TeamInfo | None = None) -> str:
    """Basic prompt used when live FPL data could not be loaded."""
    return f"""You are an expert Fantasy Premier League (FPL) advisor with deep knowledge of player statistics, team fixtures, form, and strategy.

{format_team_block(team)}

Live FPL data is currently unavailable. If asked about a specific player's current stats, fixtures or injuries, say "{UNLISTED_PLAYER_REPLY}" instead of guessing.

YOUR ROLE:
1. Analyze the user's team
2. Consider upcoming fixtures (easy = good, hard = bad)
3. Suggest specific actionable advice and explain your reasoning
4. Be conversational and friendly

IMPORTANT RULES:
- Consider the user's budget constraints
- Don't recommend transfers that exceed their free transfers without mentioning the -4 point hit
- Focus on the next 1-2 gameweeks, not long-term unless asked
- Be honest if you don't have enough info to give confident advice"""
