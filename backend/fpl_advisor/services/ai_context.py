"""AI advisor context - a ranked, fixture-enriched FPL summary for the LLM.

Built fresh on every request from:
- The cached bootstrap snapshot (players, teams, gameweeks)
- Fixtures for the next FIXTURE_HORIZON gameweeks (not cached)

Output sections:
- Top 5 players per position (goalkeepers, defenders, midfielders, forwards)
- Each player's next fixtures with difficulty
- Easy fixtures (difficulty <= 2) from both home and away perspective
- Per-team defensive aggregates
- Injured / doubtful players with news

A failed fixtures fetch for one gameweek only removes that gameweek's
fixtures; the context is still built.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.fpl_client import (
    POSITION_DEF,
    POSITION_FWD,
    POSITION_GKP,
    POSITION_MID,
    STATUS_AVAILABLE,
    Fixture,
    Player,
    ReferenceSnapshot,
    Team,
)
from fpl_advisor.services.subfetch import SubFetch, SubFetchStatus, best_effort

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

FIXTURE_HORIZON = 5  # Gameweeks of fixtures fetched, starting at the next one
TEAM_FIXTURES_LIMIT = 5  # Upcoming fixtures kept per team
TOP_PLAYERS_PER_POSITION = 5

# Selection pool thresholds
MIN_CHANCE_OF_PLAYING = 75  # chance_of_playing_next_round, None counts as fit
MIN_MINUTES = 100  # Strictly more than this

EASY_FIXTURE_MAX_DIFFICULTY = 2
EASY_FIXTURES_LIMIT = 20

SEASON_START_MONTH = 8  # August

AVAILABILITY_LABELS = {
    "a": "Available",
    "d": "Doubtful",
    "i": "Injured",
}
DEFAULT_AVAILABILITY_LABEL = "Unavailable"
NO_NEWS = "No news"
UNKNOWN_TEAM = "Unknown"


class FixturesClientProtocol(Protocol):
    """Protocol for the FPL client dependency."""

    async def get_fixtures(self, event: int | None = None) -> list[Fixture]: ...


# =============================================================================
# Context records
# =============================================================================


@dataclass(frozen=True, slots=True)
class TeamFixture:
    """A fixture from one team's point of view."""

    gameweek: int
    opponent: str
    opponent_id: int
    is_home: bool
    difficulty: int


@dataclass(frozen=True, slots=True)
class FixtureRow:
    """A fixture with team names resolved."""

    gameweek: int
    home_team: str
    away_team: str
    home_team_id: int
    away_team_id: int
    home_difficulty: int
    away_difficulty: int
    kickoff_time: str | None


@dataclass(frozen=True, slots=True)
class EasyFixture:
    """One side of a fixture rated easy for that side."""

    gameweek: int
    team: str
    team_id: int
    opponent: str
    difficulty: int
    is_home: bool


@dataclass(frozen=True, slots=True)
class TeamDefensiveStats:
    team_id: int
    team_name: str
    goals_conceded: int
    clean_sheets: int  # Summed over the team's goalkeepers and defenders
    strength: int


@dataclass(frozen=True, slots=True)
class InjuredPlayer:
    player_id: int
    player_name: str
    team: str  # Short name
    status: str
    news: str


@dataclass(frozen=True, slots=True)
class EnrichedPlayer:
    """A ranked player with team, availability and fixture context."""

    player: Player
    team_name: str
    team_short_name: str
    availability: str
    injury_news: str
    upcoming_fixtures: tuple[TeamFixture, ...]


@dataclass(frozen=True, slots=True)
class TopPlayers:
    goalkeepers: tuple[EnrichedPlayer, ...] = ()
    defenders: tuple[EnrichedPlayer, ...] = ()
    midfielders: tuple[EnrichedPlayer, ...] = ()
    forwards: tuple[EnrichedPlayer, ...] = ()


@dataclass(slots=True)
class AIContext:
    """Everything the advisor prompt is allowed to talk about."""

    current_gameweek: int
    next_gameweek: int
    season: str
    top_players: TopPlayers
    all_fixtures: list[FixtureRow] = field(default_factory=list)
    easy_fixtures: list[EasyFixture] = field(default_factory=list)
    team_defensive_stats: list[TeamDefensiveStats] = field(default_factory=list)
    injured_players: list[InjuredPlayer] = field(default_factory=list)
    fixture_fetches: dict[int, SubFetchStatus] = field(default_factory=dict)

    @property
    def degraded_gameweeks(self) -> list[int]:
        return [
            gw
            for gw, status in self.fixture_fetches.items()
            if status is SubFetchStatus.DEGRADED
        ]


# =============================================================================
# Pure functions
# =============================================================================


def season_label(today: date) -> str:
    """FPL season label for a date: August onwards belongs to the new season.

    >>> season_label(date(2025, 8, 1))
    '2025/2026'
    >>> season_label(date(2026, 7, 31))
    '2025/2026'
    """
    if today.month >= SEASON_START_MONTH:
        return f"{today.year}/{today.year + 1}"
    return f"{today.year - 1}/{today.year}"


def availability_label(status: str) -> str:
    return AVAILABILITY_LABELS.get(status, DEFAULT_AVAILABILITY_LABEL)


def resolve_gameweeks(snapshot: ReferenceSnapshot) -> tuple[int, int]:
    """Current and next gameweek, defaulting to GW1 / current+1 off-season."""
    current = snapshot.current_gameweek() or 1
    upcoming = snapshot.next_gameweek() or current + 1
    return current, upcoming


def _team_name(teams: dict[int, Team], team_id: int) -> str:
    team = teams.get(team_id)
    return team.name if team else UNKNOWN_TEAM


def build_fixture_rows(
    fixtures: Iterable[Fixture], teams: dict[int, Team]
) -> list[FixtureRow]:
    return [
        FixtureRow(
            gameweek=f.event,
            home_team=_team_name(teams, f.team_h),
            away_team=_team_name(teams, f.team_a),
            home_team_id=f.team_h,
            away_team_id=f.team_a,
            home_difficulty=f.team_h_difficulty,
            away_difficulty=f.team_a_difficulty,
            kickoff_time=f.kickoff_time,
        )
        for f in fixtures
    ]


def build_team_fixture_index(
    fixtures: Iterable[Fixture],
    teams: dict[int, Team],
    limit: int = TEAM_FIXTURES_LIMIT,
) -> dict[int, list[TeamFixture]]:
    """Map team id -> its next fixtures, in gameweek order, at most `limit`.

    Each fixture appears once for the home side and once for the away side,
    carrying that side's own difficulty rating.
    """
    index: dict[int, list[TeamFixture]] = {}
    for f in sorted(fixtures, key=lambda fx: fx.event):
        for team_id, opponent_id, is_home, difficulty in (
            (f.team_h, f.team_a, True, f.team_h_difficulty),
            (f.team_a, f.team_h, False, f.team_a_difficulty),
        ):
            team_fixtures = index.setdefault(team_id, [])
            if len(team_fixtures) >= limit:
                continue
            team_fixtures.append(
                TeamFixture(
                    gameweek=f.event,
                    opponent=_team_name(teams, opponent_id),
                    opponent_id=opponent_id,
                    is_home=is_home,
                    difficulty=difficulty,
                )
            )
    return index


def build_team_defensive_stats(snapshot: ReferenceSnapshot) -> list[TeamDefensiveStats]:
    """Goals conceded per team, with clean sheets recomputed from GKP/DEF players."""
    clean_sheets: dict[int, int] = {}
    for p in snapshot.players:
        if p.element_type in (POSITION_GKP, POSITION_DEF):
            clean_sheets[p.team] = clean_sheets.get(p.team, 0) + p.clean_sheets

    return [
        TeamDefensiveStats(
            team_id=team.id,
            team_name=team.name,
            goals_conceded=team.goals_conceded,
            clean_sheets=clean_sheets.get(team.id, 0),
            strength=team.strength,
        )
        for team in snapshot.teams
    ]


def collect_injured_players(
    players: Iterable[Player], teams: dict[int, Team]
) -> list[InjuredPlayer]:
    """Players flagged anything but available who also have news.

    Chance of playing is not considered.
    """
    injured = []
    for p in players:
        if p.status == STATUS_AVAILABLE or not p.news:
            continue
        team = teams.get(p.team)
        injured.append(
            InjuredPlayer(
                player_id=p.id,
                player_name=p.web_name,
                team=team.short_name if team else UNKNOWN_TEAM,
                status=p.status,
                news=p.news,
            )
        )
    return injured


def is_in_selection_pool(player: Player) -> bool:
    """Likely to play next gameweek and has played meaningful minutes."""
    chance = player.chance_of_playing_next_round
    likely_to_play = chance is None or chance >= MIN_CHANCE_OF_PLAYING
    return likely_to_play and player.minutes > MIN_MINUTES


def ranking_key(player: Player) -> tuple[float, ...]:
    """Ascending sort key implementing the position-aware comparator.

    - GKP/DEF: clean sheets first
    - MID/FWD: goals + assists first
    - Then form, points per game, total points (all descending)
    """
    tiebreak = (-player.form, -player.points_per_game, -player.total_points)
    if player.element_type in (POSITION_GKP, POSITION_DEF):
        return (-player.clean_sheets, *tiebreak)
    if player.element_type in (POSITION_MID, POSITION_FWD):
        return (-player.goal_involvements, *tiebreak)
    return tiebreak


def rank_position(
    players: Iterable[Player],
    position: int,
    limit: int = TOP_PLAYERS_PER_POSITION,
) -> list[Player]:
    """Top `limit` players of one position, best first (stable for full ties)."""
    candidates = [p for p in players if p.element_type == position]
    return sorted(candidates, key=ranking_key)[:limit]


def enrich_player(
    player: Player,
    teams: dict[int, Team],
    fixture_index: dict[int, list[TeamFixture]],
) -> EnrichedPlayer:
    team = teams.get(player.team)
    return EnrichedPlayer(
        player=player,
        team_name=team.name if team else UNKNOWN_TEAM,
        team_short_name=team.short_name if team else "UNK",
        availability=availability_label(player.status),
        injury_news=player.news or NO_NEWS,
        upcoming_fixtures=tuple(fixture_index.get(player.team, [])),
    )


def build_easy_fixtures(
    fixtures: Iterable[Fixture],
    teams: dict[int, Team],
    max_difficulty: int = EASY_FIXTURE_MAX_DIFFICULTY,
    limit: int = EASY_FIXTURES_LIMIT,
) -> list[EasyFixture]:
    """Both sides of every fixture as separate rows, keeping the easy ones."""
    rows = []
    for f in fixtures:
        rows.append(
            EasyFixture(
                gameweek=f.event,
                team=_team_name(teams, f.team_h),
                team_id=f.team_h,
                opponent=_team_name(teams, f.team_a),
                difficulty=f.team_h_difficulty,
                is_home=True,
            )
        )
        rows.append(
            EasyFixture(
                gameweek=f.event,
                team=_team_name(teams, f.team_a),
                team_id=f.team_a,
                opponent=_team_name(teams, f.team_h),
                difficulty=f.team_a_difficulty,
                is_home=False,
            )
        )
    return [r for r in rows if r.difficulty <= max_difficulty][:limit]


def build_top_players(
    snapshot: ReferenceSnapshot,
    teams: dict[int, Team],
    fixture_index: dict[int, list[TeamFixture]],
    limit: int = TOP_PLAYERS_PER_POSITION,
) -> TopPlayers:
    pool = [p for p in snapshot.players if is_in_selection_pool(p)]

    def top(position: int) -> tuple[EnrichedPlayer, ...]:
        return tuple(
            enrich_player(p, teams, fixture_index)
            for p in rank_position(pool, position, limit)
        )

    return TopPlayers(
        goalkeepers=top(POSITION_GKP),
        defenders=top(POSITION_DEF),
        midfielders=top(POSITION_MID),
        forwards=top(POSITION_FWD),
    )


# =============================================================================
# Synthesizer (API orchestration)
# =============================================================================


class ContextSynthesizer:
    """Builds an AIContext from cached reference data and live fixtures."""

    def __init__(
        self,
        fpl_client: FixturesClientProtocol,
        reference_cache: ReferenceDataCache,
        fixture_horizon: int = FIXTURE_HORIZON,
        clock: Callable[[], date] = date.today,
    ) -> None:
        """
        Args:
            fpl_client: Client used for per-gameweek fixtures
            reference_cache: Shared bootstrap cache
            fixture_horizon: Number of gameweeks of fixtures to fetch
            clock: Returns today's date, used for the season label
        """
        self.fpl_client = fpl_client
        self.reference_cache = reference_cache
        self.fixture_horizon = fixture_horizon
        self.clock = clock

    async def synthesize(self) -> AIContext:
        """Build the context.

        Raises:
            UpstreamError: Only if the bootstrap snapshot cannot be obtained.
                Fixture failures degrade the context instead.
        """
        snapshot = await self.reference_cache.get_snapshot()
        teams = snapshot.teams_by_id()
        current_gw, next_gw = resolve_gameweeks(snapshot)

        fixtures, fetches = await self._fetch_fixtures(snapshot, next_gw)
        fixture_index = build_team_fixture_index(fixtures, teams)

        context = AIContext(
            current_gameweek=current_gw,
            next_gameweek=next_gw,
            season=season_label(self.clock()),
            top_players=build_top_players(snapshot, teams, fixture_index),
            all_fixtures=build_fixture_rows(fixtures, teams),
            easy_fixtures=build_easy_fixtures(fixtures, teams),
            team_defensive_stats=build_team_defensive_stats(snapshot),
            injured_players=collect_injured_players(snapshot.players, teams),
            fixture_fetches=fetches,
        )

        if context.degraded_gameweeks:
            logger.warning(
                f"AI context built without fixtures for GW {context.degraded_gameweeks}"
            )
        return context

    async def _fetch_fixtures(
        self, snapshot: ReferenceSnapshot, start_gw: int
    ) -> tuple[list[Fixture], dict[int, SubFetchStatus]]:
        """Fetch fixtures gameweek by gameweek, recording each outcome."""
        last_known_gw = max((gw.id for gw in snapshot.gameweeks), default=None)
        fixtures: list[Fixture] = []
        fetches: dict[int, SubFetchStatus] = {}

        for gw in range(start_gw, start_gw + self.fixture_horizon):
            if last_known_gw is not None and gw > last_known_gw:
                result: SubFetch[list[Fixture]] = SubFetch.skipped(
                    [], reason="Beyond final gameweek"
                )
            else:
                result = await best_effort(
                    self.fpl_client.get_fixtures(event=gw),
                    fallback=[],
                    description=f"fixtures for GW{gw}",
                )
            fetches[gw] = result.status
            fixtures.extend(result.value)

        return fixtures, fetches
