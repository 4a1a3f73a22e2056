"""Tests for paginated league standings collection."""

from typing import Any
from unittest.mock import AsyncMock

import pytest
import respx
from httpx import Response

from fpl_advisor.services.errors import InvalidInputError, UpstreamUnavailableError
from fpl_advisor.services.fpl_client import FplApiClient
from fpl_advisor.services.standings import StandingsCollector


def standings_page(page: int, has_next: bool, rows_per_page: int = 2) -> dict[str, Any]:
    """Build one standings page with predictable entry ids."""
    start = (page - 1) * rows_per_page + 1
    return {
        "league": {"id": 42, "name": "Office League", "short_name": "office"},
        "standings": {
            "has_next": has_next,
            "page": page,
            "results": [
                {
                    "entry": 1000 + n,
                    "entry_name": f"Team {n}",
                    "player_name": f"Manager {n}",
                    "rank": n,
                    "last_rank": n,
                    "event_total": 50,
                    "total": 500 - n,
                    "rank_sort": n,
                }
                for n in range(start, start + rows_per_page)
            ],
        },
    }


@pytest.fixture
def mock_client() -> AsyncMock:
    client = AsyncMock()
    client.get_league_standings_page.side_effect = lambda league_id, page: standings_page(
        page, has_next=page < 3
    )
    return client


class TestCollect:
    """Tests for StandingsCollector.collect."""

    async def test_collects_all_pages_in_order(self, mock_client: AsyncMock):
        """Three pages should yield every row in page order."""
        standings = await StandingsCollector(mock_client).collect(42)

        assert [row.entry for row in standings.rows] == [1001, 1002, 1003, 1004, 1005, 1006]
        assert standings.pages_fetched == 3
        assert standings.truncated is False
        assert mock_client.get_league_standings_page.await_count == 3

    async def test_reads_league_name_from_first_page(self, mock_client: AsyncMock):
        """League name and short name come from the first page."""
        standings = await StandingsCollector(mock_client).collect(42)

        assert standings.league_name == "Office League"
        assert standings.short_name == "office"

    async def test_max_pages_stops_early(self, mock_client: AsyncMock):
        """max_pages below the page count should stop after max_pages fetches."""
        standings = await StandingsCollector(mock_client).collect(42, max_pages=2)

        assert mock_client.get_league_standings_page.await_count == 2
        assert len(standings.rows) == 4
        assert standings.truncated is True

    async def test_single_page_league(self):
        """has_next false on page 1 means exactly one fetch."""
        client = AsyncMock()
        client.get_league_standings_page.return_value = standings_page(1, has_next=False)

        standings = await StandingsCollector(client).collect(42)

        client.get_league_standings_page.assert_awaited_once_with(42, 1)
        assert len(standings.rows) == 2

    async def test_rows_are_not_sorted_or_deduplicated(self):
        """Upstream ordering and duplicates are kept as-is."""
        page = standings_page(1, has_next=False)
        page["standings"]["results"].append(dict(page["standings"]["results"][0]))
        client = AsyncMock()
        client.get_league_standings_page.return_value = page

        standings = await StandingsCollector(client).collect(42)

        assert [row.entry for row in standings.rows] == [1001, 1002, 1001]

    async def test_page_failure_aborts_collection(self, mock_client: AsyncMock):
        """A failure on any page propagates; no partial result."""
        mock_client.get_league_standings_page.side_effect = [
            standings_page(1, has_next=True),
            UpstreamUnavailableError("FPL API error: 503"),
        ]

        with pytest.raises(UpstreamUnavailableError):
            await StandingsCollector(mock_client).collect(42)

    async def test_missing_league_block_uses_default_name(self):
        """Without a league block the name falls back to the id."""
        client = AsyncMock()
        client.get_league_standings_page.return_value = {
            "standings": {"has_next": False, "results": []}
        }

        standings = await StandingsCollector(client).collect(7)

        assert standings.league_name == "League 7"
        assert standings.rows == []

    @pytest.mark.parametrize("league_id,max_pages", [(0, 10), (-1, 10), (42, 0)])
    async def test_invalid_input_rejected_before_fetching(
        self, mock_client: AsyncMock, league_id: int, max_pages: int
    ):
        """Bad ids or page caps should fail without any network call."""
        with pytest.raises(InvalidInputError):
            await StandingsCollector(mock_client).collect(league_id, max_pages=max_pages)

        mock_client.get_league_standings_page.assert_not_awaited()


class TestCollectOverHttp:
    """End-to-end collection through the real client and mocked HTTP."""

    @respx.mock
    async def test_walks_pages_via_page_query(self):
        """Each page is requested with its page_standings value."""
        base = "https://fantasy.premierleague.com/api/leagues-classic/42/standings/"
        page1 = respx.get(f"{base}?page_new_entries=1&page_standings=1").mock(
            return_value=Response(200, json=standings_page(1, has_next=True))
        )
        page2 = respx.get(f"{base}?page_new_entries=1&page_standings=2").mock(
            return_value=Response(200, json=standings_page(2, has_next=False))
        )
        client = FplApiClient(requests_per_second=1000.0)

        standings = await StandingsCollector(client).collect(42)
        await client.close()

        assert page1.call_count == 1
        assert page2.call_count == 1
        assert len(standings.rows) == 4
