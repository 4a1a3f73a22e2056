"""Team import and league standings routes."""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from fpl_advisor.config import get_settings
from fpl_advisor.db import get_connection
from fpl_advisor.dependencies import (
    db_available,
    get_standings_collector,
    get_team_transformer,
    rate_limit,
)
from fpl_advisor.services.standings import StandingsCollector
from fpl_advisor.services.subfetch import SubFetchStatus
from fpl_advisor.services.team_import import TeamTransformer
from fpl_advisor.services.team_store import save_team_record

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["teams"])


# =============================================================================
# Pydantic Models
# =============================================================================


class TeamImportRequest(BaseModel):
    """Body for POST /api/team/import."""

    team_id: int
    user_id: str | None = Field(
        default=None, description="Persist the imported team for this user"
    )


class TeamImportResponse(BaseModel):
    fpl_team_id: int
    team_name: str
    squad: list[int]
    squad_status: SubFetchStatus
    bank_value: float
    team_value: float
    total_points: int
    overall_rank: int
    free_transfers: int
    saved: bool = False


class StandingsRowResponse(BaseModel):
    entry: int
    entry_name: str
    player_name: str
    rank: int
    last_rank: int
    event_total: int
    total: int
    rank_sort: int


class LeagueStandingsResponse(BaseModel):
    """Response for GET /api/leagues/{league_id}/standings."""

    league_id: int
    league_name: str
    short_name: str
    pages_fetched: int
    truncated: bool
    total: int
    standings: list[StandingsRowResponse]


# =============================================================================
# Routes
# =============================================================================


@router.post(
    "/team/import",
    response_model=TeamImportResponse,
    dependencies=[Depends(rate_limit("fpl_import"))],
)
async def import_team(
    body: TeamImportRequest,
    transformer: TeamTransformer = Depends(get_team_transformer),
    has_db: bool = Depends(db_available),
) -> TeamImportResponse:
    """
    Import an FPL team by id.

    The squad comes from the current gameweek's picks; if those cannot be
    fetched the import still succeeds with an empty squad and
    squad_status "degraded".
    """
    record = await transformer.transform(body.team_id)

    saved = False
    if body.user_id and has_db:
        async with get_connection() as conn:
            await save_team_record(conn, body.user_id, record)
        saved = True
    elif body.user_id:
        logger.info(f"Database not configured, team {record.fpl_team_id} not saved")

    return TeamImportResponse(
        fpl_team_id=record.fpl_team_id,
        team_name=record.team_name,
        squad=record.squad_ids,
        squad_status=record.squad_status,
        bank_value=record.bank_value,
        team_value=record.team_value,
        total_points=record.total_points,
        overall_rank=record.overall_rank,
        free_transfers=record.free_transfers,
        saved=saved,
    )


@router.get(
    "/leagues/{league_id}/standings",
    response_model=LeagueStandingsResponse,
    dependencies=[Depends(rate_limit("read_only"))],
)
async def get_league_standings(
    league_id: int,
    max_pages: int | None = Query(
        default=None, ge=1, le=50, description="Page cap (50 managers per page)"
    ),
    collector: StandingsCollector = Depends(get_standings_collector),
) -> LeagueStandingsResponse:
    """Collect every page of a classic league's standings (up to max_pages)."""
    standings = await collector.collect(
        league_id, max_pages=max_pages or get_settings().standings_max_pages
    )
    return LeagueStandingsResponse(
        league_id=standings.league_id,
        league_name=standings.league_name,
        short_name=standings.short_name,
        pages_fetched=standings.pages_fetched,
        truncated=standings.truncated,
        total=len(standings.rows),
        standings=[
            StandingsRowResponse(
                entry=row.entry,
                entry_name=row.entry_name,
                player_name=row.player_name,
                rank=row.rank,
                last_rank=row.last_rank,
                event_total=row.event_total,
                total=row.total,
                rank_sort=row.rank_sort,
            )
            for row in standings.rows
        ],
    )
