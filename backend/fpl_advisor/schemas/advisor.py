"""AI context and injury response schemas.

These Pydantic models are used for API serialization. They can be populated
directly from the service dataclasses using model_validate(obj, from_attributes=True).
"""

from pydantic import BaseModel, ConfigDict

from fpl_advisor.services.injuries import InjurySeverity
from fpl_advisor.services.subfetch import SubFetchStatus


class PlayerResponse(BaseModel):
    """Bootstrap player fields exposed in the AI context."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    web_name: str
    team: int
    element_type: int
    now_cost: int
    total_points: int
    minutes: int
    goals_scored: int
    assists: int
    clean_sheets: int
    saves: int
    form: float
    points_per_game: float
    selected_by_percent: float
    status: str
    news: str
    chance_of_playing_next_round: int | None


class TeamFixtureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gameweek: int
    opponent: str
    opponent_id: int
    is_home: bool
    difficulty: int


class EnrichedPlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player: PlayerResponse
    team_name: str
    team_short_name: str
    availability: str
    injury_news: str
    upcoming_fixtures: list[TeamFixtureResponse]


class TopPlayersResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    goalkeepers: list[EnrichedPlayerResponse]
    defenders: list[EnrichedPlayerResponse]
    midfielders: list[EnrichedPlayerResponse]
    forwards: list[EnrichedPlayerResponse]


class FixtureRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gameweek: int
    home_team: str
    away_team: str
    home_team_id: int
    away_team_id: int
    home_difficulty: int
    away_difficulty: int
    kickoff_time: str | None


class EasyFixtureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gameweek: int
    team: str
    team_id: int
    opponent: str
    difficulty: int
    is_home: bool


class TeamDefensiveStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: int
    team_name: str
    goals_conceded: int
    clean_sheets: int
    strength: int


class InjuredPlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: int
    player_name: str
    team: str
    status: str
    news: str


class AIContextResponse(BaseModel):
    """Response for GET /api/advisor/context."""

    model_config = ConfigDict(from_attributes=True)

    current_gameweek: int
    next_gameweek: int
    season: str
    top_players: TopPlayersResponse
    all_fixtures: list[FixtureRowResponse]
    easy_fixtures: list[EasyFixtureResponse]
    team_defensive_stats: list[TeamDefensiveStatsResponse]
    injured_players: list[InjuredPlayerResponse]
    fixture_fetches: dict[int, SubFetchStatus]  # Per-gameweek fetch outcome
    degraded_gameweeks: list[int]


class InjuryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: int
    player_name: str
    team: str
    status: str
    news: str
    chance_next: int
    chance_this: int
    severity: InjurySeverity


class InjuriesResponse(BaseModel):
    """Response for GET /api/injuries."""

    current_gameweek: int | None
    total: int
    injuries: list[InjuryResponse]
