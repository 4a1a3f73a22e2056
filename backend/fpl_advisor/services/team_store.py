"""Persistence for imported teams (user_teams table).

The schema is owned by the main application's migrations; this module only
reads and upserts rows.
"""

import logging

import asyncpg

from fpl_advisor.services.prompt import TeamInfo
from fpl_advisor.services.team_import import TransformedTeamRecord

logger = logging.getLogger(__name__)

SYNC_STATUS_SUCCESS = "success"


async def save_team_record(
    conn: asyncpg.Connection, user_id: str, record: TransformedTeamRecord
) -> int:
    """Insert or refresh a user's imported team. Returns the row id."""
    row_id = await conn.fetchval(
        """
        INSERT INTO user_teams (
            user_id, fpl_team_id, team_name, current_squad,
            bank_value, team_value, total_points, overall_rank,
            free_transfers, sync_status, last_sync_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, NOW())
        ON CONFLICT (user_id, fpl_team_id) DO UPDATE SET
            team_name = EXCLUDED.team_name,
            current_squad = EXCLUDED.current_squad,
            bank_value = EXCLUDED.bank_value,
            team_value = EXCLUDED.team_value,
            total_points = EXCLUDED.total_points,
            overall_rank = EXCLUDED.overall_rank,
            free_transfers = EXCLUDED.free_transfers,
            sync_status = EXCLUDED.sync_status,
            last_sync_at = NOW()
        RETURNING id
        """,
        user_id,
        record.fpl_team_id,
        record.team_name,
        record.current_squad,
        record.bank_value,
        record.team_value,
        record.total_points,
        record.overall_rank,
        record.free_transfers,
        SYNC_STATUS_SUCCESS,
    )
    logger.info(f"Saved team {record.fpl_team_id} for user {user_id}")
    return row_id


async def load_latest_team(conn: asyncpg.Connection, user_id: str) -> TeamInfo | None:
    """The user's most recently synced team, for the advisor prompt."""
    row = await conn.fetchrow(
        """
        SELECT team_name, team_value, bank_value, free_transfers,
               total_points, overall_rank
        FROM user_teams
        WHERE user_id = $1 AND sync_status = $2
        ORDER BY last_sync_at DESC
        LIMIT 1
        """,
        user_id,
        SYNC_STATUS_SUCCESS,
    )
    if row is None:
        return None
    return TeamInfo(
        team_name=row["team_name"] or "",
        team_value=float(row["team_value"] or 0),
        bank_value=float(row["bank_value"] or 0),
        free_transfers=row["free_transfers"] or 0,
        total_points=row["total_points"] or 0,
        overall_rank=row["overall_rank"],
    )
