"""Tests for user_teams persistence (mocked asyncpg connection)."""

from unittest.mock import AsyncMock

import pytest

from fpl_advisor.services.team_import import TransformedTeamRecord
from fpl_advisor.services.team_store import load_latest_team, save_team_record


@pytest.fixture
def record() -> TransformedTeamRecord:
    return TransformedTeamRecord(
        fpl_team_id=123,
        team_name="Tapas United",
        current_squad="[3, 1]",
        bank_value=1.5,
        team_value=102.3,
        total_points=456,
        overall_rank=98765,
        free_transfers=1,
    )


class TestSaveTeamRecord:
    async def test_upserts_and_returns_id(self, record: TransformedTeamRecord):
        conn = AsyncMock()
        conn.fetchval.return_value = 7

        row_id = await save_team_record(conn, "user-1", record)

        assert row_id == 7
        sql, *params = conn.fetchval.await_args.args
        assert "ON CONFLICT (user_id, fpl_team_id) DO UPDATE" in sql
        assert params == [
            "user-1",
            123,
            "Tapas United",
            "[3, 1]",
            1.5,
            102.3,
            456,
            98765,
            1,
            "success",
        ]


class TestLoadLatestTeam:
    async def test_returns_team_info(self):
        conn = AsyncMock()
        conn.fetchrow.return_value = {
            "team_name": "Tapas United",
            "team_value": 102.3,
            "bank_value": 1.5,
            "free_transfers": 1,
            "total_points": 456,
            "overall_rank": None,
        }

        team = await load_latest_team(conn, "user-1")

        assert team is not None
        assert team.team_name == "Tapas United"
        assert team.team_value == 102.3
        assert team.overall_rank is None
        assert conn.fetchrow.await_args.args[1:] == ("user-1", "success")

    async def test_no_rows_returns_none(self):
        conn = AsyncMock()
        conn.fetchrow.return_value = None

        assert await load_latest_team(conn, "user-1") is None
