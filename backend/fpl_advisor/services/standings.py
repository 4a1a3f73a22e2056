"""Classic league standings collection across paginated responses."""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from fpl_advisor.services.errors import InvalidInputError
from fpl_advisor.services.fpl_client import _safe_int

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 10  # 50 rows per page -> first 500 managers


class StandingsClientProtocol(Protocol):
    """Protocol for the FPL client dependency."""

    async def get_league_standings_page(
        self, league_id: int, page: int = 1
    ) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class StandingsRow:
    """One manager's row in a league table."""

    entry: int
    entry_name: str
    player_name: str
    rank: int
    last_rank: int
    event_total: int
    total: int
    rank_sort: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "StandingsRow":
        return cls(
            entry=_safe_int(data.get("entry")),
            entry_name=data.get("entry_name") or "",
            player_name=data.get("player_name") or "",
            rank=_safe_int(data.get("rank")),
            last_rank=_safe_int(data.get("last_rank")),
            event_total=_safe_int(data.get("event_total")),
            total=_safe_int(data.get("total")),
            rank_sort=_safe_int(data.get("rank_sort")),
        )


@dataclass(slots=True)
class LeagueStandings:
    """All collected rows for a league, in upstream page order."""

    league_id: int
    league_name: str
    short_name: str
    rows: list[StandingsRow] = field(default_factory=list)
    pages_fetched: int = 0
    truncated: bool = False  # True when max_pages stopped collection early


class StandingsCollector:
    """Walks the paginated standings resource to completion.

    Pages are fetched strictly one after another so the collection stays
    within the client's outbound throttle. Rows are neither sorted nor
    de-duplicated; upstream ordering is trusted. Any page failure aborts the
    whole collection.
    """

    def __init__(self, fpl_client: StandingsClientProtocol) -> None:
        self.fpl_client = fpl_client

    async def collect(
        self, league_id: int, max_pages: int = DEFAULT_MAX_PAGES
    ) -> LeagueStandings:
        """Collect standings pages until has_next is false or max_pages is hit.

        Args:
            league_id: FPL classic league ID
            max_pages: Upper bound on pages fetched

        Returns:
            LeagueStandings with every row from every fetched page

        Raises:
            InvalidInputError: If league_id or max_pages is not positive
            UpstreamError: If any page fetch fails
        """
        if league_id <= 0:
            raise InvalidInputError("League ID must be a positive integer")
        if max_pages < 1:
            raise InvalidInputError("max_pages must be at least 1")

        standings = LeagueStandings(
            league_id=league_id,
            league_name=f"League {league_id}",
            short_name="",
        )
        page = 1
        has_next = True

        while has_next and page <= max_pages:
            data = await self.fpl_client.get_league_standings_page(league_id, page)

            # League details only need reading once
            if page == 1:
                league_info = data.get("league") or {}
                standings.league_name = league_info.get("name") or standings.league_name
                standings.short_name = league_info.get("short_name") or ""

            page_data = data.get("standings") or {}
            standings.rows.extend(
                StandingsRow.from_api(entry) for entry in page_data.get("results", [])
            )
            standings.pages_fetched = page

            has_next = bool(page_data.get("has_next", False))
            page += 1

        if has_next:
            standings.truncated = True
            logger.warning(
                f"League {league_id} has more than {max_pages} pages, "
                f"stopped after {len(standings.rows)} rows"
            )

        return standings
